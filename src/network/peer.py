"""TCP transport to the remote player: setting up the connection, sending lines, and a listener thread for incoming lines."""

import logging
import socket
import threading
from typing import Callable, Optional, Protocol

from src.core.exceptions import TransportError
from src.network.protocol import ENCODING, Message

logger = logging.getLogger(__name__)

LineHandler = Callable[[str], None]
ClosedHandler = Callable[[Optional[Exception]], None]


class Transport(Protocol):
    """What the coordinator needs from a connection to the peer"""

    def start(self, on_line: LineHandler, on_closed: ClosedHandler) -> None:
        """Start delivering incoming lines."""
        ...

    def send(self, message: Message) -> None:
        """Send one message. Raises TransportError if the connection is broken."""
        ...

    def close(self) -> None:
        """Close the connection. No callbacks are fired for a deliberate close."""
        ...


class PeerConnection:
    """Transport over a connected TCP socket. Incoming lines are read on a dedicated thread."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._closing = False
        self._listener: Optional[threading.Thread] = None

    def start(self, on_line: LineHandler, on_closed: ClosedHandler) -> None:
        self._listener = threading.Thread(
            target=self._listen,
            args=(on_line, on_closed),
            name="gobang-peer-listener",
            daemon=True,
        )
        self._listener.start()

    def send(self, message: Message) -> None:
        logger.debug("Sending %s", message.encode())
        try:
            self._sock.sendall(message.to_line())
        except OSError as exc:
            raise TransportError(f"Could not send {message.type}: {exc}") from exc

    def close(self) -> None:
        self._closing = True
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # already disconnected from the other side
            pass
        self._sock.close()

    def _listen(self, on_line: LineHandler, on_closed: ClosedHandler) -> None:
        error: Optional[Exception] = None
        try:
            # undecodable bytes become U+FFFD: the line then fails to parse instead of ending the connection
            with self._sock.makefile(
                "r", encoding=ENCODING, errors="replace", newline="\n"
            ) as reader:
                for line in reader:
                    logger.debug("Received %s", line.rstrip())
                    on_line(line)
        except (OSError, ValueError) as exc:
            # ValueError: the socket was closed underneath the reader
            error = exc
        if self._closing:
            return
        if error is not None:
            logger.warning("Connection to peer lost: %s", error)
        else:
            logger.info("Peer closed the connection")
        on_closed(error)


def open_server(bind_address: str, port: int) -> socket.socket:
    """Listening socket for the host. Failing to bind is reported to the caller, there is no retry."""
    try:
        server = socket.create_server((bind_address, port))
    except OSError as exc:
        raise TransportError(f"Cannot listen on {bind_address}:{port}: {exc}") from exc
    logger.info("Waiting for a guest on %s:%d", bind_address, port)
    return server


def accept_peer(server: socket.socket, timeout: float) -> PeerConnection:
    """Block until a guest connects (or the timeout expires). The listening socket is closed afterwards."""
    server.settimeout(timeout)
    try:
        sock, address = server.accept()
    except TimeoutError as exc:
        raise TransportError(f"No guest connected within {timeout} seconds.") from exc
    except OSError as exc:
        raise TransportError(f"Accepting a guest failed: {exc}") from exc
    finally:
        server.close()
    sock.settimeout(None)
    logger.info("Guest connected from %s:%d", *address[:2])
    return PeerConnection(sock)


def connect_to_peer(address: str, port: int, timeout: float) -> PeerConnection:
    try:
        sock = socket.create_connection((address, port), timeout=timeout)
    except OSError as exc:
        raise TransportError(f"Cannot connect to {address}:{port}: {exc}") from exc
    sock.settimeout(None)
    logger.info("Connected to host %s:%d", address, port)
    return PeerConnection(sock)
