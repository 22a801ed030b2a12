"""HTTP client for the webhook fax transport."""
from __future__ import annotations

import mimetypes
from urllib.parse import urlparse

import httpx
from pydantic import ValidationError

from faxbridge.core.schema import SubmitResponse


class TransportError(RuntimeError):
    """Raised when the remote transport answers with an unusable response."""


class WebhookFaxClient:
    """Submits outbound faxes as multipart uploads with Basic authentication."""

    def __init__(
        self,
        url: str,
        username: str = "",
        password: str = "",
        *,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("send webhook url must include scheme and host")

        self._url = url
        self._auth = httpx.BasicAuth(username, password) if username or password else None
        self._client = http_client or httpx.Client(timeout=timeout)
        self._owns_client = http_client is None
        self._timeout = timeout

    @property
    def url(self) -> str:
        return self._url

    @staticmethod
    def _content_type(filename: str) -> str:
        guessed, _ = mimetypes.guess_type(filename)
        return guessed or "application/octet-stream"

    def send_fax(
        self,
        *,
        caller_number: str,
        callee_number: str,
        filename: str,
        document: bytes,
    ) -> SubmitResponse:
        """Send one document and return the transport's acknowledgement.

        Network failures and timeouts surface as :class:`httpx.HTTPError`; a
        non-success status raises :class:`httpx.HTTPStatusError`; a body
        without a ``job_uuid`` raises :class:`TransportError`.
        """

        response = self._client.post(
            self._url,
            data={"callee_number": callee_number, "caller_number": caller_number},
            files={"file": (filename, document, self._content_type(filename))},
            auth=self._auth or httpx.USE_CLIENT_DEFAULT,
            timeout=self._timeout,
        )
        response.raise_for_status()

        try:
            return SubmitResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TransportError(f"unexpected response from fax transport: {exc}") from exc

    def close(self) -> None:  # pragma: no cover - best effort cleanup
        if self._owns_client:
            self._client.close()


__all__ = ["TransportError", "WebhookFaxClient"]
