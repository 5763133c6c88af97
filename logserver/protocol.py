"""Wire protocol: newline-terminated text messages and two reply tokens."""

LINE_TERMINATOR = b"\n"

ACK = "OK"
SHUTDOWN_NOTICE = "SERVER_SHUTDOWN"


def encode_reply(token: str) -> bytes:
    """Encode a reply token as a newline-terminated ASCII line."""
    return token.encode("ascii") + LINE_TERMINATOR


def encode_message(text: str) -> bytes:
    """Encode a client message as a newline-terminated UTF-8 line."""
    return text.encode("utf-8") + LINE_TERMINATOR


def is_shutdown_notice(reply: str) -> bool:
    return SHUTDOWN_NOTICE in reply
