"""
Selenium Grid Exporter

Republishes the status of a Selenium Grid hub/router as Prometheus metrics:
- Grid capacity: slots, sessions, queue depth, node count, version
- Per-node health: status, version and session load
- Scrape-driven refresh with a single fetch per Prometheus pull
"""

from .config import ExporterConfig, parse_duration
from .errors import (
    ExporterError,
    FetchError,
    TransportError,
    FetchTimeout,
    BadStatus,
    DecodeError,
)
from .snapshot import NodeStatus, StatusSnapshot, decode_snapshot
from .fetcher import GridFetcher
from .metrics import GridMetrics
from .collector import GridCollector
from .logger import setup_logging, get_logger

__version__ = "1.0.0"
__all__ = [
    "ExporterConfig",
    "parse_duration",
    "ExporterError",
    "FetchError",
    "TransportError",
    "FetchTimeout",
    "BadStatus",
    "DecodeError",
    "NodeStatus",
    "StatusSnapshot",
    "decode_snapshot",
    "GridFetcher",
    "GridMetrics",
    "GridCollector",
    "setup_logging",
    "get_logger",
]
