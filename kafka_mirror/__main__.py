#!/usr/bin/env python3
"""
Kafka Mirror - Main Entry Point

Mirrors every topic of a source cluster to a destination cluster until
SIGINT or SIGTERM is received.
"""

import signal
import sys

from loguru import logger

from .config import MirrorConfig
from .errors import ConfigurationError
from .health import start_health_server
from .supervisor import TopicsReplicator


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def setup_logging(log_level: str):
    """Send loguru output to stderr at the configured level."""
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=log_level)


def main() -> int:
    """Main entry point."""
    try:
        config = MirrorConfig.from_env()
    except ConfigurationError as e:
        setup_logging('INFO')
        logger.error(f"Invalid configuration: {e}")
        return 1

    setup_logging(config.log_level)

    replicator = TopicsReplicator(config)

    def signal_handler(signum, frame):
        logger.info(f"Received shutdown signal {signum}")
        replicator.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    server = start_health_server(replicator, config.health_port)
    try:
        replicator.start()
    finally:
        server.shutdown()

    return 0


if __name__ == '__main__':
    sys.exit(main())
