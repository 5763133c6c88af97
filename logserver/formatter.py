"""Formatting for log records and console event lines."""

from datetime import datetime, timezone


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def format_peer(addr) -> str:
    """Render a socket address as host:port."""
    if isinstance(addr, tuple) and len(addr) >= 2:
        return f"{addr[0]}:{addr[1]}"
    return str(addr) if addr else "unknown"


def format_record(session_id: int, peer: str, payload: str,
                  timestamp: str | None = None) -> str:
    """Build one log line: `{timestamp} [#{session}] {peer} {payload}`."""
    ts = timestamp or utc_timestamp()
    return f"{ts} [#{session_id}] {peer} {payload.strip()}"


def format_event(event: str, session_id: int | None = None,
                 peer: str | None = None, **details) -> str:
    """Render a console event as `[event] #id peer key=value ...`."""
    parts = [f"[{event}]"]
    if session_id is not None:
        parts.append(f"#{session_id}")
    if peer:
        parts.append(peer)
    for key in sorted(details):
        parts.append(f"{key}={details[key]}")
    return " ".join(parts)
