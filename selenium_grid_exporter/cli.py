"""
Command-line entry point.
"""
from typing import List, Optional

from prometheus_client import CollectorRegistry

from . import __version__
from .collector import GridCollector
from .config import ExporterConfig
from .fetcher import GridFetcher
from .logger import setup_logging
from .server import ExporterServer


def build_registry(config: ExporterConfig) -> CollectorRegistry:
    """Registry holding only the grid collector; no process or platform collectors."""
    registry = CollectorRegistry()
    fetcher = GridFetcher(config.scrape_uri, timeout=config.http_timeout)
    registry.register(GridCollector(fetcher))
    return registry


def main(argv: Optional[List[str]] = None) -> int:
    config, args = ExporterConfig.from_args(argv)

    if args.version:
        print(f"Selenium Grid Exporter v{__version__}")
        return 0

    logger = setup_logging(config)
    logger.info("Starting Selenium Grid Exporter", version=__version__)
    logger.info("Exporter configuration",
                listen_address=config.listen_address,
                scrape_uri=config.scrape_uri,
                telemetry_path=config.telemetry_path,
                http_timeout_seconds=config.http_timeout)

    server = ExporterServer(config, build_registry(config))
    try:
        server.bind()
    except (OSError, ValueError) as e:
        logger.critical("Failed to bind listen address",
                        listen_address=config.listen_address, error=str(e))
        return 1

    logger.info("Listening", listen_address=config.listen_address)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.server.server_close()
    return 0
