"""
Custom exceptions.

Everything raised on purpose by the game layers derives from GameError, so the caller (presentation layer) can catch
one type and show the message, while tests can assert on the specific type.
"""


class GameError(Exception):
    """Top-level exception for anything that goes wrong while playing."""


class IllegalMoveError(GameError):
    """Target cell is out of range or already occupied."""


class NotYourTurnError(GameError):
    """The actor proposing the move is not allowed to move right now."""


class GameStateError(GameError):
    """Operation is not allowed in the current state of the game (game over, nothing to undo, corrupt snapshot...)"""


class InvalidRequestError(GameError):
    """Boundary model received data it cannot interpret."""


class MalformedMessageError(GameError):
    """A line received from the peer does not follow the message vocabulary."""


class TransportError(GameError):
    """Socket could not be set up, or failed while the game was running."""


class RepositoryError(GameError):
    """Something went wrong while fetching/storing a saved game."""
