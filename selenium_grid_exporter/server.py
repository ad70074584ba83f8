"""
HTTP endpoints: metrics exposition, liveness probe and a landing page.
"""
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
from urllib.parse import urlparse

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from .config import ExporterConfig
from .logger import get_logger


class ExporterServer:
    """Serves the exporter registry on the configured address and path."""

    def __init__(self, config: ExporterConfig, registry: CollectorRegistry):
        self.config = config
        self.registry = registry
        self.logger = get_logger("server")
        self.server: Optional[ThreadingHTTPServer] = None
        self.server_thread: Optional[threading.Thread] = None

    def bind(self) -> ThreadingHTTPServer:
        """Bind the listen address. Raises ``OSError`` if it is unavailable."""
        if self.server is None:
            host, port = self.config.parse_listen_address()
            self.server = ThreadingHTTPServer((host, port), self._create_handler())
            self.server.daemon_threads = True
        return self.server

    @property
    def port(self) -> int:
        return self.bind().server_address[1]

    def serve_forever(self):
        self.bind().serve_forever()

    def start(self):
        """Serve from a background thread."""
        if self.server_thread is None:
            server = self.bind()
            self.server_thread = threading.Thread(target=server.serve_forever, daemon=True)
            self.server_thread.start()

    def stop(self):
        if self.server:
            self.server.shutdown()
            self.server.server_close()
            self.server = None
        if self.server_thread:
            self.server_thread.join()
            self.server_thread = None

    def _create_handler(self):
        """Create HTTP request handler."""
        exporter = self

        class ExporterHandler(BaseHTTPRequestHandler):
            def do_GET(self):
                path = urlparse(self.path).path
                if path == exporter.config.telemetry_path:
                    self._reply(200, generate_latest(exporter.registry), CONTENT_TYPE_LATEST)
                elif path == "/healthz":
                    self._reply(200, b"OK")
                elif path == "/":
                    landing = ("Welcome to Selenium Grid Exporter! Metrics are available at "
                               + exporter.config.telemetry_path)
                    self._reply(200, landing.encode())
                else:
                    self._reply(404, b"Not Found")

            def _reply(self, status: int, body: bytes, content_type: str = "text/plain; charset=utf-8"):
                self.send_response(status)
                self.send_header("Content-Type", content_type)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, format, *args):
                exporter.logger.debug("HTTP request", client=self.client_address[0],
                                      request=format % args)

        return ExporterHandler
