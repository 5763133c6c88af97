"""Entry point for the log client load generator."""

import argparse
import logging
import signal
import sys
from dataclasses import asdict

from logclient.config import ClientConfig
from logclient.load_generator import LoadGenerator

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Client workers for the log server")
    parser.add_argument("--host", default=None, help="Server host")
    parser.add_argument("--port", type=int, default=None, help="Server port")
    parser.add_argument(
        "--workers", type=int, default=None, help="Number of concurrent workers"
    )
    parser.add_argument(
        "--count",
        type=int,
        default=None,
        help="Messages per worker (0 = until the server shuts down)",
    )
    parser.add_argument(
        "--interval", type=float, default=None, help="Delay between messages (s)"
    )
    parser.add_argument(
        "--timeout", type=float, default=None, help="Reply timeout (s)"
    )
    parser.add_argument(
        "--no-keep-alive",
        action="store_true",
        help="Open a new connection for every message",
    )
    parser.add_argument("--client-id", default=None, help="Client identifier")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ClientConfig:
    """Start with env-based config, then override with CLI args."""
    config = ClientConfig.from_env()

    overrides = {}
    if args.host is not None:
        overrides["server_host"] = args.host
    if args.port is not None:
        overrides["server_port"] = args.port
    if args.workers is not None:
        overrides["workers"] = args.workers
    if args.count is not None:
        overrides["message_count"] = args.count
    if args.interval is not None:
        overrides["send_interval"] = args.interval
    if args.timeout is not None:
        overrides["response_timeout"] = args.timeout
    if args.no_keep_alive:
        overrides["keep_alive"] = False
    if args.client_id is not None:
        overrides["client_id"] = args.client_id

    if overrides:
        d = asdict(config)
        d.update(overrides)
        config = ClientConfig(**d)
    return config


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        stream=sys.stderr,
    )
    config = build_config(parse_args(argv))
    if config.workers < 1:
        logger.error("workers must be at least 1")
        return 2

    generator = LoadGenerator(config)

    def signal_handler(signum, frame):
        logger.info("Received signal %d, stopping workers...", signum)
        generator.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info(
        "Starting %d worker(s) against %s:%d",
        config.workers, config.server_host, config.server_port,
    )
    generator.run()
    logger.info("Client exited gracefully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
