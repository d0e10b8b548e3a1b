"""
Messages exchanged with the remote peer.

One message per line, UTF-8 text. A message is a keyword, optionally followed by ':' and a payload:

* MOVE:7,8             the peer placed a stone on row 7, column 8
* START:black          (host -> guest) the game starts, the host plays black
* RESTART              the peer asks to restart
* RESTART:ACCEPT       ... and the answers
* RESTART:REJECT
* PLAYER_INFO:Alice    the peer's display name
* CHAT:good luck       free text
* GAME_OVER            the peer's last move ended the game
* DISCONNECT           the peer leaves
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Self

from src.core.exceptions import MalformedMessageError
from src.core.shared_types import Color
from src.gobang.moves import Coord

SEPARATOR = ":"
ENCODING = "utf-8"


class MessageType(StrEnum):
    MOVE = "MOVE"
    START = "START"
    RESTART = "RESTART"
    RESTART_ACCEPT = "RESTART:ACCEPT"
    RESTART_REJECT = "RESTART:REJECT"
    PLAYER_INFO = "PLAYER_INFO"
    CHAT = "CHAT"
    GAME_OVER = "GAME_OVER"
    DISCONNECT = "DISCONNECT"


# Messages that consist of the keyword only. (RESTART:ACCEPT contains a ':' but has no payload.)
BARE_MESSAGES: frozenset[MessageType] = frozenset(
    {
        MessageType.RESTART,
        MessageType.RESTART_ACCEPT,
        MessageType.RESTART_REJECT,
        MessageType.GAME_OVER,
        MessageType.DISCONNECT,
    }
)
PAYLOAD_MESSAGES: frozenset[MessageType] = frozenset(MessageType) - BARE_MESSAGES


@dataclass(frozen=True)
class Message:
    type: MessageType
    payload: str = ""

    @classmethod
    def parse(cls, line: str) -> Self:
        """Decode a single line (trailing newline allowed). Raises MalformedMessageError for anything unexpected."""
        text = line.rstrip("\r\n")

        # bare keywords first: otherwise "RESTART:ACCEPT" would read as RESTART with payload "ACCEPT"
        if text in BARE_MESSAGES:
            return cls(MessageType(text))

        keyword, separator, payload = text.partition(SEPARATOR)
        if not separator or keyword not in PAYLOAD_MESSAGES:
            raise MalformedMessageError(f"Unknown message: {text!r}")

        message = cls(MessageType(keyword), payload)
        # fail early on payloads the coordinator will need to interpret
        if message.type == MessageType.MOVE:
            _ = message.coord
        elif message.type == MessageType.START:
            _ = message.color
        return message

    def encode(self) -> str:
        """Text of the message, without the line terminator."""
        if self.type in BARE_MESSAGES:
            return self.type.value
        return f"{self.type.value}{SEPARATOR}{self.payload}"

    def to_line(self) -> bytes:
        return (self.encode() + "\n").encode(ENCODING)

    @property
    def coord(self) -> Coord:
        """(row, col) of a MOVE message"""
        if self.type != MessageType.MOVE:
            raise MalformedMessageError(f"{self.type} message has no coordinates.")
        parts = self.payload.split(",")
        if len(parts) != 2:
            raise MalformedMessageError(f"Cannot read coordinates from {self.payload!r}")
        try:
            row, col = (int(part) for part in parts)
        except ValueError as exc:
            raise MalformedMessageError(
                f"Cannot read coordinates from {self.payload!r}"
            ) from exc
        return (row, col)

    @property
    def color(self) -> Color:
        """Host color of a START message"""
        if self.type != MessageType.START:
            raise MalformedMessageError(f"{self.type} message has no color.")
        try:
            return Color(self.payload.strip().lower())
        except ValueError as exc:
            raise MalformedMessageError(f"Unknown color {self.payload!r}") from exc

    # -- constructors for the messages we send --
    @classmethod
    def move(cls, row: int, col: int) -> Self:
        return cls(MessageType.MOVE, f"{row},{col}")

    @classmethod
    def start(cls, host_color: Color) -> Self:
        return cls(MessageType.START, host_color.value)

    @classmethod
    def player_info(cls, name: str) -> Self:
        return cls(MessageType.PLAYER_INFO, _single_line(name))

    @classmethod
    def chat(cls, text: str) -> Self:
        return cls(MessageType.CHAT, _single_line(text))


def _single_line(text: str) -> str:
    """A newline inside the payload would split the message in two"""
    return " ".join(text.splitlines())
