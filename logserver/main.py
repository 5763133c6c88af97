"""Entry point for the central log server."""

import logging
import signal
import sys
import threading

from logserver.config import load_config
from logserver.errors import ConfigError
from logserver.server import LogServer


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        stream=sys.stderr,
    )
    logger = logging.getLogger(__name__)

    try:
        config = load_config(argv)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2
    logging.getLogger().setLevel(config.log_level.upper())

    try:
        server = LogServer(config)
    except OSError as exc:
        logger.error("Cannot open log file %s: %s", config.log_path, exc)
        return 1

    def signal_handler(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        # The main thread may hold the coordinator lock; trigger from another
        threading.Thread(target=server.stop, name="signal-stop", daemon=True).start()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if config.dashboard_port:
        from logserver.dashboard import create_dashboard_app, run_dashboard

        app = create_dashboard_app(server)
        dash_thread = threading.Thread(
            target=run_dashboard,
            args=(app, config.host, config.dashboard_port),
            daemon=True,
        )
        dash_thread.start()
        logger.info("Dashboard running on port %d", config.dashboard_port)

    try:
        server.start()
    except OSError as exc:
        logger.error("Cannot listen on %s:%d: %s", config.host, config.port, exc)
        server.sink.close()
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
