"""
Structured logging for the exporter.
"""
import logging
import sys
from typing import Optional

import structlog
from pythonjsonlogger import jsonlogger

from .config import ExporterConfig


def setup_logging(config: ExporterConfig) -> structlog.stdlib.BoundLogger:
    """Configure structlog over the standard library and return the root logger."""
    renderer = (
        structlog.dev.ConsoleRenderer(colors=False)
        if config.log_format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
    logging.getLogger().setLevel(level)
    # Per-request chatter from urllib3 is noise at INFO.
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    if config.log_file:
        file_handler = logging.FileHandler(config.log_file)
        if config.log_format == "json":
            formatter = jsonlogger.JsonFormatter(
                '%(asctime)s %(name)s %(levelname)s %(message)s'
            )
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
        file_handler.setFormatter(formatter)
        logging.getLogger().addHandler(file_handler)

    return get_logger()


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a logger, bound to ``component`` when a name is given."""
    logger = structlog.get_logger("selenium_grid_exporter")
    if name:
        return logger.bind(component=name)
    return logger
