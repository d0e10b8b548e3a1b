"""
Orchestration of the game session: local player, AI and network peer all go through here.

Every change to the session runs on one session thread, which drains a FIFO queue of commands.
Public methods called from another thread (presentation layer, socket listener, AI worker) queue their command and
block until it has run. Calls made from the session thread itself (e.g. by an event listener) run inline.

The AI searches on a single background worker, on a private copy of the board. Its answer is queued as a normal
command, tagged with the generation and move count it was computed for: anything that resets the session
(restart, undo, mode change, restore, network changes) bumps the generation, so a late answer is dropped.
"""

import logging
import queue
import random
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Optional
from uuid import UUID

from src.api.models import GameView, ModeRequest
from src.core.config import Settings
from src.core.exceptions import (
    GameError,
    GameStateError,
    MalformedMessageError,
    RepositoryError,
    TransportError,
)
from src.core.models import GameModel
from src.core.shared_types import Actor, AIDifficulty, Color, GameMode, PeerRole, Status
from src.db.repository import GameRepository
from src.gobang.ai import choose_move
from src.gobang.board import Board
from src.gobang.game import Game
from src.gobang.moves import NO_MOVE, Move
from src.network.peer import Transport, accept_peer, connect_to_peer, open_server
from src.network.protocol import Message, MessageType

logger = logging.getLogger(__name__)

AITag = tuple[int, int]  # (generation, number of moves) at dispatch time


class EventKind(StrEnum):
    MOVE_APPLIED = "move applied"
    GAME_OVER = "game over"
    MOVE_REJECTED = "move rejected"  # AI or peer move that did not pass validation
    AI_THINKING = "ai thinking"
    SESSION_RESET = "session reset"  # board changed without a move: undo, restart, new mode, restore, new peer
    RESTART_REQUESTED = "restart requested"
    RESTART_REJECTED = "restart rejected"
    PEER_INFO = "peer info"
    CHAT = "chat"
    PEER_DISCONNECTED = "peer disconnected"
    TRANSPORT_FAILURE = "transport failure"
    MALFORMED_MESSAGE = "malformed message"


@dataclass(frozen=True)
class SessionEvent:
    kind: EventKind
    view: GameView
    detail: Optional[str] = None


Listener = Callable[[SessionEvent], None]


class TurnCoordinator:
    """Owns the one game session of the application."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        repository: Optional[GameRepository] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.repo = repository
        self._rng = rng or random.Random()

        self._game = Game.new_game()
        self._generation = 0
        self._listeners: list[Listener] = []

        # network state
        self._transport: Optional[Transport] = None
        self._opponent_name: Optional[str] = None
        self._restart_pending = False  # we asked the peer, waiting for the answer
        self._restart_requested = False  # the peer asked us

        self._ai_future: Optional[Future] = None
        self._ai_worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gobang-ai")

        self._closed = False
        self._commands: queue.Queue = queue.Queue()
        self._session_thread = threading.Thread(
            target=self._run, name="gobang-session", daemon=True
        )
        self._session_thread.start()

    def __enter__(self) -> "TurnCoordinator":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -- PRESENTATION LAYER API ---
    def view(self) -> GameView:
        return self._call(self._view)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for session events. Returns a function that removes it again."""
        self._call(self._listeners.append, listener)
        return lambda: self._call(self._unsubscribe, listener)

    def submit_move(self, row: int, col: int) -> GameView:
        """Local player clicked a cell."""
        return self._call(self._submit_local_move, row, col)

    def undo(self) -> GameView:
        return self._call(self._undo)

    def restart(self) -> GameView:
        """New game in the same mode. Over the network this only sends the request: the peer has to accept."""
        return self._call(self._restart)

    def set_mode(
        self,
        mode: GameMode,
        difficulty: AIDifficulty = AIDifficulty.MEDIUM,
        local_color: Color = Color.BLACK,
    ) -> GameView:
        """Replace the session with a fresh local game."""
        request = ModeRequest(mode=mode, difficulty=difficulty, local_color=local_color)
        return self._call(self._set_mode, request)

    def wait_until_idle(self, timeout: float = 5.0) -> bool:
        """Block until no AI move is pending and all queued commands have run. False on timeout."""
        deadline = time.monotonic() + timeout
        while True:
            ai_future = self._ai_future
            if ai_future is not None:
                try:
                    ai_future.result(timeout=max(0.0, deadline - time.monotonic()))
                except TimeoutError:
                    return False
            # the AI answer was queued before its future completed: this runs after it
            self._call(_noop)
            if self._ai_future is ai_future:
                return True
            if time.monotonic() >= deadline:
                return False

    # -- PERSISTENCE ---
    def snapshot(self) -> GameModel:
        return self._call(self._game.to_model)

    def restore(self, model: GameModel) -> GameView:
        """Continue from a snapshot. Raises GameStateError if the snapshot is not consistent."""
        return self._call(self._restore, model)

    def save_game(self) -> UUID:
        repo = self._require_repository()
        _, game_id = repo.create_game(self.snapshot())
        return game_id

    def load_game(self, game_id: UUID) -> GameView:
        repo = self._require_repository()
        model = repo.get_game(game_id)
        if model is None:
            raise RepositoryError(f"No saved game with ID {game_id}.")
        return self.restore(model)

    # -- NETWORK ---
    def host_game(self, port: Optional[int] = None, timeout: Optional[float] = None) -> GameView:
        """Wait for a guest to connect (blocks the caller, not the session). Raises TransportError."""
        network = self.settings.network
        server = open_server(network.bind_address, port or network.port)
        transport = accept_peer(server, timeout or network.accept_timeout_seconds)
        return self.attach_peer(transport, PeerRole.HOST)

    def join_game(
        self, address: str, port: Optional[int] = None, timeout: Optional[float] = None
    ) -> GameView:
        network = self.settings.network
        transport = connect_to_peer(
            address, port or network.port, timeout or network.connect_timeout_seconds
        )
        return self.attach_peer(transport, PeerRole.GUEST)

    def attach_peer(self, transport: Transport, role: PeerRole) -> GameView:
        """Start a network game over an established connection."""
        return self._call(self._attach_peer, transport, role)

    def answer_restart(self, accept: bool) -> GameView:
        return self._call(self._answer_restart, accept)

    def send_chat(self, text: str) -> None:
        self._call(self._send_chat, text)

    def disconnect(self) -> GameView:
        """Leave the network game. The board stays, play continues as a local two player game."""
        return self._call(self._disconnect)

    def close(self) -> None:
        if self._closed:
            return
        self._call(self._shutdown)
        self._closed = True
        self._commands.put(None)
        self._session_thread.join(timeout=5.0)
        self._ai_worker.shutdown(wait=False, cancel_futures=True)

    # -- SESSION THREAD ---
    def _run(self) -> None:
        while True:
            command = self._commands.get()
            if command is None:
                break
            fn, args, future = command
            if future is not None and not future.set_running_or_notify_cancel():
                continue
            try:
                result = fn(*args)
            except Exception as exc:
                if future is None:
                    logger.exception("Session command %s failed", fn.__name__)
                else:
                    future.set_exception(exc)
            else:
                if future is not None:
                    future.set_result(result)

    def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run `fn` on the session thread and return its result (or raise its exception)."""
        if threading.current_thread() is self._session_thread:
            return fn(*args)
        if self._closed:
            raise GameStateError("Session is closed.")
        future: Future = Future()
        self._commands.put((fn, args, future))
        return future.result()

    def _post(self, fn: Callable[..., Any], *args: Any) -> None:
        """Queue `fn` for the session thread without waiting for it."""
        self._commands.put((fn, args, None))

    # -- COMMANDS (run on the session thread) ---
    def _view(self) -> GameView:
        game = self._game
        return GameView(
            board=game.board.to_rows(),
            turn=game.turn,
            status=game.status,
            winner=game.winner,
            game_over=game.is_over,
            reason=self._reason(),
            move_history=[move.to_notation() for move in game.moves],
            mode=game.mode,
            difficulty=game.difficulty,
            local_color=game.local_color,
            peer_role=game.peer_role,
            is_my_turn=self._accepts_local_move(),
            opponent_name=self._opponent_name,
        )

    def _unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _submit_local_move(self, row: int, col: int) -> GameView:
        move = self._game.submit_move(row, col, Actor.LOCAL)
        logger.info("Local move %s", move.to_notation())
        if self._transport is not None:
            self._send(Message.move(move.row, move.col))
            if self._game.is_over:
                self._send(Message(MessageType.GAME_OVER))
        self._after_move(move)
        return self._view()

    def _undo(self) -> GameView:
        taken_back = self._game.undo()
        logger.info("Took back %s", ", ".join(move.to_notation() for move in taken_back))
        self._reset_session()
        return self._view()

    def _restart(self) -> GameView:
        if self._transport is None:
            self._restart_local()
            return self._view()
        if self._restart_pending:
            raise GameStateError("Already waiting for the opponent to answer the restart request.")
        if self._send(Message(MessageType.RESTART)):
            self._restart_pending = True
        return self._view()

    def _restart_local(self) -> None:
        self._game.restart()
        logger.info("Game restarted (%s)", self._game.mode)
        self._reset_session()

    def _set_mode(self, request: ModeRequest) -> GameView:
        if self._transport is not None:
            self._disconnect()
        self._game = Game.new_game(
            mode=request.mode,
            difficulty=request.difficulty,
            local_color=request.local_color,
        )
        logger.info(
            "New %s game (difficulty %s, local player %s)",
            request.mode,
            request.difficulty,
            request.local_color,
        )
        self._reset_session()
        return self._view()

    def _restore(self, model: GameModel) -> GameView:
        game = Game.from_model(model)
        if self._transport is not None:
            self._disconnect()
        self._game = game
        logger.info("Restored %s game after %d moves", game.mode, len(game.moves))
        self._reset_session()
        return self._view()

    def _shutdown(self) -> None:
        if self._transport is not None:
            self._disconnect()
        self._generation += 1

    def _reset_session(self) -> None:
        """Board changed outside the normal flow of moves: drop pending AI work, tell listeners, maybe wake the AI."""
        self._generation += 1
        self._publish(EventKind.SESSION_RESET)
        self._dispatch_ai_if_needed()

    def _after_move(self, move: Move) -> None:
        self._publish(EventKind.MOVE_APPLIED, move.to_notation())
        if self._game.is_over:
            logger.info("Game over: %s", self._reason())
            self._publish(EventKind.GAME_OVER, self._reason())
        else:
            self._dispatch_ai_if_needed()

    # -- AI ---
    def _dispatch_ai_if_needed(self) -> None:
        game = self._game
        if not game.is_ai_turn or game.ai_color is None:
            return
        tag = (self._generation, len(game.moves))
        self._publish(EventKind.AI_THINKING)
        self._ai_future = self._ai_worker.submit(
            self._think, game.board.copy(), game.ai_color, game.difficulty, tag
        )

    def _think(self, board: Board, ai_color: Color, difficulty: AIDifficulty, tag: AITag) -> None:
        """Runs on the AI worker."""
        time.sleep(self.settings.think_time_seconds(difficulty.level))
        if tag[0] != self._generation:
            # session was reset while we were waiting, do not hold up the next search
            logger.debug("Skipping AI search for a stale position")
            return
        try:
            row, col = choose_move(board, ai_color, difficulty, self._rng)
        except Exception:
            logger.exception("AI (%s) failed to choose a move", difficulty)
            return
        self._post(self._apply_ai_move, row, col, tag)

    def _apply_ai_move(self, row: int, col: int, tag: AITag) -> None:
        if tag != (self._generation, len(self._game.moves)):
            logger.debug("Dropping stale AI move %d,%d", row, col)
            return
        if (row, col) == NO_MOVE:
            logger.warning("AI found no empty cell")
            return
        try:
            move = self._game.submit_move(row, col, Actor.AI)
        except GameError as exc:
            logger.error("AI move %d,%d rejected: %s", row, col, exc)
            self._publish(EventKind.MOVE_REJECTED, str(exc))
            return
        logger.info("AI move %s", move.to_notation())
        self._after_move(move)

    # -- PEER ---
    def _attach_peer(self, transport: Transport, role: PeerRole) -> GameView:
        if self._transport is not None:
            raise GameStateError("Already connected to a peer. Disconnect first.")

        local_color = Color.BLACK if role == PeerRole.HOST else Color.WHITE
        self._game = Game.new_game(
            mode=GameMode.NETWORK,
            difficulty=self._game.difficulty,
            local_color=local_color,
            peer_role=role,
        )
        self._transport = transport
        self._opponent_name = None
        self._restart_pending = self._restart_requested = False
        transport.start(
            on_line=lambda line: self._post(self._handle_line, transport, line),
            on_closed=lambda error: self._post(self._connection_lost, transport, error),
        )
        logger.info("Network game started as %s", role)

        try:
            transport.send(Message.player_info(self.settings.player_name))
            if role == PeerRole.HOST:
                transport.send(Message.start(local_color))
        except TransportError:
            self._transport = None
            transport.close()
            self._game.leave_network()
            raise
        self._reset_session()
        return self._view()

    def _handle_line(self, transport: Transport, line: str) -> None:
        if transport is not self._transport:
            logger.debug("Ignoring line from a closed connection: %r", line)
            return
        try:
            message = Message.parse(line)
        except MalformedMessageError as exc:
            logger.warning("Ignoring message from peer: %s", exc)
            self._publish(EventKind.MALFORMED_MESSAGE, str(exc))
            return

        match message.type:
            case MessageType.MOVE:
                self._apply_peer_move(message)
            case MessageType.START:
                self._start_from_host(message.color)
            case MessageType.RESTART:
                self._restart_requested = True
                self._publish(EventKind.RESTART_REQUESTED)
            case MessageType.RESTART_ACCEPT:
                if self._restart_pending:
                    self._restart_pending = False
                    self._restart_local()
            case MessageType.RESTART_REJECT:
                self._restart_pending = False
                self._publish(EventKind.RESTART_REJECTED)
            case MessageType.PLAYER_INFO:
                self._opponent_name = message.payload
                self._publish(EventKind.PEER_INFO, message.payload)
            case MessageType.CHAT:
                self._publish(EventKind.CHAT, message.payload)
            case MessageType.GAME_OVER:
                if not self._game.is_over:
                    self._game.abort()
                    logger.warning("Peer ended a game we still consider running")
                    self._publish(EventKind.GAME_OVER, self._reason())
            case MessageType.DISCONNECT:
                logger.info("Peer left the game")
                self._drop_connection(transport)
                self._publish(EventKind.PEER_DISCONNECTED, "The opponent left the game.")

    def _apply_peer_move(self, message: Message) -> None:
        row, col = message.coord
        try:
            move = self._game.submit_move(row, col, Actor.PEER)
        except GameError as exc:
            logger.warning("Peer move %d,%d rejected: %s", row, col, exc)
            self._publish(EventKind.MOVE_REJECTED, str(exc))
            return
        logger.info("Peer move %s", move.to_notation())
        self._after_move(move)

    def _start_from_host(self, host_color: Color) -> None:
        if self._game.peer_role != PeerRole.GUEST:
            logger.warning("Ignoring START, only the host starts the game")
            return
        self._game.start_network_game(host_color.opponent())
        logger.info("Host started the game, we play %s", self._game.local_color)
        self._reset_session()

    def _answer_restart(self, accept: bool) -> GameView:
        if not self._restart_requested:
            raise GameStateError("The opponent did not ask for a restart.")
        self._restart_requested = False
        answer = MessageType.RESTART_ACCEPT if accept else MessageType.RESTART_REJECT
        if self._send(Message(answer)) and accept:
            self._restart_local()
        return self._view()

    def _send_chat(self, text: str) -> None:
        if self._transport is None:
            raise GameStateError("Not connected to a peer.")
        if not self._send(Message.chat(text)):
            raise TransportError("Chat message could not be delivered.")

    def _disconnect(self) -> GameView:
        transport = self._transport
        if transport is None:
            return self._view()
        try:
            transport.send(Message(MessageType.DISCONNECT))
        except TransportError as exc:
            logger.info("Could not say goodbye to the peer: %s", exc)
        self._drop_connection(transport)
        self._publish(EventKind.PEER_DISCONNECTED, "Disconnected.")
        return self._view()

    def _send(self, message: Message) -> bool:
        """Send to the current peer. A broken connection ends the network game, the caller gets False."""
        transport = self._transport
        if transport is None:
            return False
        try:
            transport.send(message)
        except TransportError as exc:
            self._connection_lost(transport, exc)
            return False
        return True

    def _connection_lost(self, transport: Transport, error: Optional[Exception]) -> None:
        if transport is not self._transport:
            return
        self._drop_connection(transport)
        if error is None:
            self._publish(EventKind.PEER_DISCONNECTED, "The opponent closed the connection.")
        else:
            logger.error("Connection to peer failed: %s", error)
            self._publish(EventKind.TRANSPORT_FAILURE, str(error))

    def _drop_connection(self, transport: Transport) -> None:
        """Close the connection, keep the board, continue as local two player game."""
        transport.close()
        self._transport = None
        self._opponent_name = None
        self._restart_pending = self._restart_requested = False
        self._game.leave_network()
        self._generation += 1

    # -- PRIVATE HELPERS ---
    def _publish(self, kind: EventKind, detail: Optional[str] = None) -> None:
        if not self._listeners:
            return
        event = SessionEvent(kind=kind, view=self._view(), detail=detail)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Session listener failed on %s", kind)

    def _reason(self) -> Optional[str]:
        match self._game.status:
            case Status.WIN:
                return f"{self._game.winner} wins with five in a row."
            case Status.DRAW:
                return "The board is full."
            case Status.ABORTED:
                return "The opponent ended the game."
        return None

    def _accepts_local_move(self) -> bool:
        game = self._game
        if game.is_over:
            return False
        if game.mode == GameMode.NETWORK:
            return game.is_my_turn and game.local_color == game.turn
        return not game.is_ai_turn

    def _require_repository(self) -> GameRepository:
        if self.repo is None:
            raise RepositoryError("No repository configured for saved games.")
        return self.repo


def _noop() -> None:
    return None
