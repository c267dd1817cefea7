"""
HTTP transport to the shared message store.

    POST {base_url}{message_id}   body: sealed bytes (application/octet-stream)
    GET  {base_url}{message_id}   200 with the bytes, 404 if absent

No retries; callers log TransportError and move on.
"""

from __future__ import annotations

from typing import Protocol

import httpx

from backend_riskshare.core.exceptions import NotFoundError, TransportError
from backend_riskshare.riskshare_logging import get_logger

logger = get_logger(__name__)

CONTENT_TYPE = "application/octet-stream"


class Transport(Protocol):
    def transmit(self, message_id: str, payload: bytes) -> None: ...

    def retrieve(self, message_id: str) -> bytes: ...


class HttpTransport:
    """
    httpx-based transport. Pass `client` to reuse a connection pool or to
    route through a test client; otherwise one client is created per call.
    """

    def __init__(
        self,
        base_url: str,
        *,
        client: httpx.Client | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.client = client
        self.timeout = timeout

    def _url(self, message_id: str) -> str:
        return self.base_url + message_id

    def _request(self, method: str, message_id: str, **kwargs) -> httpx.Response:
        url = self._url(message_id)
        try:
            if self.client is not None:
                return self.client.request(method, url, **kwargs)
            with httpx.Client(timeout=self.timeout) as client:
                return client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("transport_request_failed", method=method, message_id=message_id, error=str(e))
            raise TransportError(f"{method} {url} failed: {e}") from e

    def transmit(self, message_id: str, payload: bytes) -> None:
        response = self._request(
            "POST",
            message_id,
            content=payload,
            headers={"Content-Type": CONTENT_TYPE},
        )
        if response.status_code != 200:
            logger.warning(
                "transport_transmit_rejected",
                message_id=message_id,
                status_code=response.status_code,
            )
            raise TransportError(
                f"Store rejected message {message_id}: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        logger.info("transport_transmitted", message_id=message_id, size=len(payload))

    def retrieve(self, message_id: str) -> bytes:
        response = self._request("GET", message_id)
        if response.status_code == 404:
            raise NotFoundError(f"No message stored under {message_id}", status_code=404)
        if response.status_code != 200:
            logger.warning(
                "transport_retrieve_failed",
                message_id=message_id,
                status_code=response.status_code,
            )
            raise TransportError(
                f"Fetching {message_id} failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response.content
