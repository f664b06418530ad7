# common/syslog.py
import socket
from datetime import datetime, timezone

from common.config import (
    SYSLOG_ENABLED,
    SYSLOG_HOST,
    SYSLOG_PORT,
    SYSLOG_FACILITY,
)

APP_NAME = "lan-chat"

# ------------------------------
# UDP socket (reused)
# ------------------------------
_sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)


# ------------------------------
# Helpers
# ------------------------------
def _ts():
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _get_lan_ip():
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        s.connect(("8.8.8.8", 80))
        return s.getsockname()[0]
    except OSError:
        return "127.0.0.1"
    finally:
        s.close()


def _pri(severity: int):
    # PRI = facility * 8 + severity
    return (SYSLOG_FACILITY * 8) + severity


def _fmt(v):
    if v is None:
        return "-"
    if isinstance(v, tuple) and len(v) == 2:
        return f"{v[0]}:{v[1]}"
    return str(v)


def build_record(*, severity: int, level: str, message: str, server_id: str,
                 event=None, slot=None, peer=None, peers=None, **extra) -> str:
    payload_parts = [
        f"event={_fmt(event)}",
        f"level={level}",
        f"server_id={server_id}",
        f'msg="{message}"',
    ]

    structured = {
        "slot": slot,
        "peer": peer,
        "peers": peers,
    }
    for k, v in structured.items():
        if v is not None:
            payload_parts.append(f"{k}={_fmt(v)}")

    for k in sorted(extra.keys()):
        payload_parts.append(f"{k}={_fmt(extra[k])}")

    # RFC5424 header, no structured-data block
    return (
        f"<{_pri(severity)}>1 "
        f"{_ts()} "
        f"{server_id} "
        f"{APP_NAME} "
        f"- - - "
        f"{' '.join(payload_parts)}"
    )


# ------------------------------
# Core syslog sender
# ------------------------------
def _send_syslog(*, severity: int, level: str, message: str, server_id: str = "server", **fields):
    if not SYSLOG_ENABLED:
        return

    host = SYSLOG_HOST
    if host == "auto":
        host = _get_lan_ip()

    record = build_record(
        severity=severity,
        level=level,
        message=message,
        server_id=server_id,
        **fields,
    )

    try:
        _sock.sendto(record.encode("utf-8", errors="replace"), (host, SYSLOG_PORT))
    except OSError:
        # the collector is optional
        pass


# ------------------------------
# SIP-STYLE PUBLIC API
# ------------------------------
def LOG_INFO(message: str, **fields):
    _send_syslog(severity=6, level="INFO", message=message, **fields)


def LOG_WARN(message: str, **fields):
    _send_syslog(severity=4, level="WARN", message=message, **fields)


def LOG_ERROR(message: str, **fields):
    _send_syslog(severity=3, level="ERROR", message=message, **fields)
