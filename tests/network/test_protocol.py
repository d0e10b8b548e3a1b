"""Unit tests for /src/network/protocol.py"""

import pytest

from src.core.exceptions import MalformedMessageError
from src.core.shared_types import Color
from src.network.protocol import Message, MessageType


# -- PARSING --
@pytest.mark.parametrize(
    "line, expected",
    [
        ("MOVE:7,8\n", Message(MessageType.MOVE, "7,8")),
        ("START:black", Message(MessageType.START, "black")),
        ("RESTART\n", Message(MessageType.RESTART)),
        ("RESTART:ACCEPT\n", Message(MessageType.RESTART_ACCEPT)),
        ("RESTART:REJECT\r\n", Message(MessageType.RESTART_REJECT)),
        ("PLAYER_INFO:Alice\n", Message(MessageType.PLAYER_INFO, "Alice")),
        ("CHAT:gg: well played\n", Message(MessageType.CHAT, "gg: well played")),
        ("GAME_OVER\n", Message(MessageType.GAME_OVER)),
        ("DISCONNECT\n", Message(MessageType.DISCONNECT)),
    ],
)
def test_parse(line: str, expected: Message) -> None:
    assert Message.parse(line) == expected


@pytest.mark.parametrize(
    "line",
    [
        "",
        "HELLO\n",
        "MOVE\n",  # payload missing
        "MOVE:7\n",
        "MOVE:a,b\n",
        "MOVE:1,2,3\n",
        "START:red\n",
        "move:7,7\n",  # keywords are case sensitive
    ],
)
def test_parse_malformed(line: str) -> None:
    with pytest.raises(MalformedMessageError):
        _ = Message.parse(line)


def test_move_coordinates_are_not_range_checked() -> None:
    """Off-board coordinates are a rule violation, handled by the game, not a protocol error."""
    assert Message.parse("MOVE:20,-1").coord == (20, -1)


def test_start_color() -> None:
    assert Message.parse("START:white").color == Color.WHITE
    assert Message.parse("START:BLACK").color == Color.BLACK


def test_payload_accessors_check_the_type() -> None:
    with pytest.raises(MalformedMessageError):
        _ = Message(MessageType.CHAT, "7,7").coord
    with pytest.raises(MalformedMessageError):
        _ = Message(MessageType.MOVE, "black").color


# -- ENCODING --
def test_encode() -> None:
    assert Message.move(7, 8).encode() == "MOVE:7,8"
    assert Message.start(Color.BLACK).encode() == "START:black"
    assert Message(MessageType.RESTART_ACCEPT).encode() == "RESTART:ACCEPT"
    assert Message(MessageType.DISCONNECT).encode() == "DISCONNECT"
    assert Message.player_info("Bob").encode() == "PLAYER_INFO:Bob"


def test_to_line() -> None:
    assert Message.move(0, 14).to_line() == b"MOVE:0,14\n"
    assert Message.chat("héllo").to_line() == "CHAT:héllo\n".encode("utf-8")


def test_newlines_in_text_payloads() -> None:
    """A payload must never split the message over two lines."""
    message = Message.chat("good\nluck\r\nhave fun")
    assert message.payload == "good luck have fun"
    assert Message.parse(message.to_line().decode("utf-8")) == message
    assert "\n" not in Message.player_info("Al\nice").payload
