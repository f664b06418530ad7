# Wire format
#
# CHAT_SERVER_HERE     (server -> UDP broadcast, discovery port)
#
# <text>[\n]           (peer -> server, one message per read, <= BUFFER_SIZE)
# <host:port> <text>   (server -> peers, no trailing delimiter)
# Server is full...\n  (server -> rejected peer, then close)

from common.config import DISCOVERY_MSG

BEACON = DISCOVERY_MSG.encode("ascii")


def addr_str(addr) -> str:
    return f"{addr[0]}:{addr[1]}"


def strip_newline(data: bytes) -> bytes:
    """Drop exactly one trailing newline, if there is one."""
    if data.endswith(b"\n"):
        return data[:-1]
    return data


def format_relay(sender: str, payload: bytes) -> bytes:
    return sender.encode("ascii") + b" " + payload


def parse_relay(data: bytes):
    """
    Split a relayed line into (sender, text).
    Lines without a space are server notices: (None, text).
    """
    text = data.decode("utf-8", errors="replace")
    sender, sep, rest = text.partition(" ")
    if not sep:
        return None, text
    return sender, rest


def is_beacon(data: bytes) -> bool:
    return data == BEACON
