"""
Configuration management for the exporter.
Values come from, in order of precedence: command-line flags, environment
variables, built-in defaults.
"""
import argparse
import logging
import os
import re
from dataclasses import dataclass, fields
from typing import Optional, Dict, Any, List, Tuple

DEFAULT_HTTP_TIMEOUT = 5.0

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|us|µs|ns|h|m|s)")
_DURATION_UNITS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 1e-3,
    "us": 1e-6,
    "µs": 1e-6,
    "ns": 1e-9,
}

logger = logging.getLogger(__name__)


def parse_duration(value: str) -> float:
    """
    Parse a duration such as ``5s``, ``1500ms`` or ``1m30s`` into seconds.
    A bare number is read as seconds.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty duration")
    try:
        seconds = float(text)
    except ValueError:
        seconds = None
    if seconds is None:
        pos = 0
        seconds = 0.0
        for match in _DURATION_PART.finditer(text):
            if match.start() != pos:
                break
            seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
            pos = match.end()
        if pos != len(text):
            raise ValueError(f"invalid duration {value!r}")
    if not seconds > 0:
        raise ValueError(f"duration must be positive, got {value!r}")
    return seconds


def _timeout_from_env(raw: Optional[str], fallback: float) -> float:
    if raw is None:
        return fallback
    try:
        return parse_duration(raw)
    except ValueError as e:
        logger.warning(
            "Invalid duration format for HTTP_TIMEOUT: %s, defaulting to %ss",
            e, DEFAULT_HTTP_TIMEOUT,
        )
        return DEFAULT_HTTP_TIMEOUT


@dataclass
class ExporterConfig:
    """Configuration for the Selenium Grid exporter."""

    # HTTP exposition
    listen_address: str = ":8080"
    telemetry_path: str = "/metrics"

    # Upstream grid
    scrape_uri: str = "http://grid.local"
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or console
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, **overrides) -> 'ExporterConfig':
        """Create config from environment variables, falling back to defaults."""
        config = cls(**overrides)
        config.listen_address = os.getenv("LISTEN_ADDRESS", config.listen_address)
        config.telemetry_path = os.getenv("TELEMETRY_PATH", config.telemetry_path)
        config.scrape_uri = os.getenv("SCRAPE_URI", config.scrape_uri)
        config.http_timeout = _timeout_from_env(os.getenv("HTTP_TIMEOUT"), config.http_timeout)
        config.log_level = os.getenv("LOG_LEVEL", config.log_level)
        config.log_format = os.getenv("LOG_FORMAT", config.log_format)
        config.log_file = os.getenv("LOG_FILE", config.log_file)
        return config

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'ExporterConfig':
        """Create config from dictionary."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in config_dict.items() if k in known})

    @classmethod
    def from_args(cls, argv: Optional[List[str]] = None) -> Tuple['ExporterConfig', argparse.Namespace]:
        """Parse command-line flags; environment values act as flag defaults."""
        defaults = cls.from_env()
        args = build_arg_parser(defaults).parse_args(argv)
        config = cls(
            listen_address=args.listen_address,
            telemetry_path=args.telemetry_path,
            scrape_uri=args.scrape_uri,
            http_timeout=args.http_timeout,
            log_level=args.log_level,
            log_format=args.log_format,
            log_file=defaults.log_file,
        )
        return config, args

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            'listen_address': self.listen_address,
            'telemetry_path': self.telemetry_path,
            'scrape_uri': self.scrape_uri,
            'http_timeout': self.http_timeout,
            'log_level': self.log_level,
            'log_format': self.log_format,
            'log_file': self.log_file,
        }

    def parse_listen_address(self) -> Tuple[str, int]:
        """Split ``host:port`` (host may be empty or a bracketed IPv6 address)."""
        host, sep, port = self.listen_address.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"invalid listen address {self.listen_address!r}")
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        return host, int(port)


def build_arg_parser(defaults: ExporterConfig) -> argparse.ArgumentParser:
    """Build the command-line parser seeded with ``defaults``."""
    parser = argparse.ArgumentParser(
        prog="selenium-grid-exporter",
        description="Prometheus exporter for Selenium Grid.",
    )
    parser.add_argument("--version", action="store_true",
                        help="Prints the version and exits.")
    parser.add_argument("--listen-address", default=defaults.listen_address,
                        help="Address on which to expose metrics.")
    parser.add_argument("--telemetry-path", default=defaults.telemetry_path,
                        help="Path under which to expose metrics.")
    parser.add_argument("--scrape-uri", default=defaults.scrape_uri,
                        help="URI on which to scrape Selenium Grid.")
    parser.add_argument("--http-timeout", type=parse_duration, default=defaults.http_timeout,
                        help="HTTP client timeout for scraping Selenium Grid (e.g. 5s, 1500ms).")
    parser.add_argument("--log-level", default=defaults.log_level,
                        help="Log level (DEBUG, INFO, WARNING, ERROR).")
    parser.add_argument("--log-format", default=defaults.log_format, choices=["json", "console"],
                        help="Log output format.")
    return parser
