"""
HTTP client for the grid's GraphQL status endpoint.
"""
import json
from typing import Optional

import requests

from .config import DEFAULT_HTTP_TIMEOUT
from .errors import BadStatus, FetchTimeout, TransportError

STATUS_QUERY = (
    "{ grid { totalSlots, maxSession, sessionCount, sessionQueueSize, nodeCount, version }, "
    "nodesInfo { nodes { id, uri, status, maxSession, slotCount, sessionCount, version } } }"
)


class GridFetcher:
    """Issues one status query per call. No retries, no caching, no logging."""

    def __init__(self, scrape_uri: str, timeout: float = DEFAULT_HTTP_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.url = scrape_uri.rstrip("/") + "/graphql"
        self.timeout = timeout
        self.session = session or requests.Session()
        self._body = json.dumps({"query": STATUS_QUERY})

    def fetch(self) -> bytes:
        """
        Return the raw response body.

        Raises:
            FetchTimeout: no response within ``timeout`` seconds.
            BadStatus: the grid answered with a non-2xx status.
            TransportError: connection, DNS or TLS failure.
        """
        try:
            response = self.session.post(
                self.url,
                data=self._body,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise FetchTimeout(self.timeout) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(e) from e

        try:
            if not 200 <= response.status_code < 300:
                raise BadStatus(response.status_code, response.reason or "")
            return response.content
        finally:
            response.close()

    def close(self):
        self.session.close()
