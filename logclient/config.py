"""Client configuration loaded from environment variables."""

import os
from dataclasses import dataclass


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class ClientConfig:
    server_host: str = "127.0.0.1"
    server_port: int = 5000
    workers: int = 1
    message_count: int = 0  # 0 = until the server shuts down
    send_interval: float = 0.3
    response_timeout: float = 5.0
    buffer_size: int = 1024
    keep_alive: bool = True
    client_id: str = "1"

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Create a ClientConfig from environment variables with defaults."""
        return cls(
            server_host=os.environ.get("SERVER_HOST", cls.server_host),
            server_port=int(os.environ.get("SERVER_PORT", cls.server_port)),
            workers=int(os.environ.get("CLIENT_WORKERS", cls.workers)),
            message_count=int(os.environ.get("MESSAGE_COUNT", cls.message_count)),
            send_interval=float(os.environ.get("SEND_INTERVAL", cls.send_interval)),
            response_timeout=float(
                os.environ.get("RESPONSE_TIMEOUT", cls.response_timeout)
            ),
            buffer_size=int(os.environ.get("BUFFER_SIZE", cls.buffer_size)),
            keep_alive=_parse_bool(os.environ.get("KEEP_ALIVE", "true")),
            client_id=os.environ.get("CLIENT_ID", cls.client_id),
        )
