import os
import sys
import time

NO_COLOR = os.getenv("NO_COLOR") == "1"

COL = {
    "RESET": "\033[0m",
    "RED": "\033[31m",
    "GREEN": "\033[32m",
    "YELLOW": "\033[33m",
    "CYAN": "\033[36m",
}

LEVEL_COLOR = {
    "ERROR": "RED",
    "WARN": "YELLOW",
    "OK": "GREEN",
}


def _color(s: str, c: str) -> str:
    if NO_COLOR or not sys.stdout.isatty():
        return s
    return f"{COL[c]}{s}{COL['RESET']}"


def _value(v):
    # (host, port) -> host:port, payload bytes -> quoted text
    if isinstance(v, tuple) and len(v) == 2:
        return f"{v[0]}:{v[1]}"
    if isinstance(v, bytes):
        return '"' + v.decode("utf-8", errors="replace") + '"'
    return v


def log(role: str, node_id: str, event: str, level: str = "INFO", **fields):
    ts = f"{time.time():.3f}"
    line = f"ts={ts} role={role} id={node_id} lvl={level} event={event}"

    if fields:
        parts = [f"{k}={_value(fields[k])}" for k in sorted(fields.keys())]
        line += " " + " ".join(parts)

    print(_color(line, LEVEL_COLOR.get(level, "CYAN")), flush=True)
