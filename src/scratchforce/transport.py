"""Synchronous HTTP transport for the platform REST API.

Every request is authenticated with the Session's bearer token. The Session
is checked before any I/O. Errors are mapped onto TransportError with the
platform's own message and error code; nothing is retried here. Polling
loops in the workflows retry status checks, never mutating calls.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import SessionExpiredError, TransportError
from .session import Session, require_authenticated

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 60.0

# multipart part: (filename or None, content, content type)
MultipartPart = tuple[str | None, bytes | str, str]


class Transport:
    """Authenticated request helper bound to one Session.

    The underlying ``httpx.Client`` may be shared between transports (tests
    inject one built on ``httpx.MockTransport``); only a client created here
    is closed by :meth:`close`.
    """

    def __init__(
        self,
        session: Session,
        *,
        http_client: httpx.Client | None = None,
        timeout_seconds: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._session = session
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client()
        self._timeout = float(timeout_seconds)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def http_client(self) -> httpx.Client:
        return self._client

    def for_session(self, session: Session) -> Transport:
        """Transport for another Session sharing the same HTTP client."""
        return Transport(session, http_client=self._client, timeout_seconds=self._timeout)

    def close(self) -> None:
        if self._owns_client and not self._client.is_closed:
            self._client.close()

    def __enter__(self) -> Transport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._session.access_token}"}

    def url(self, path: str) -> str:
        return self._session.data_url(path)

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        params: dict[str, str] | None = None,
        expected_status: int | None = None,
    ) -> Any:
        """Issue an authenticated request and return the decoded JSON body.

        Returns None for empty bodies (e.g. 204).
        """
        require_authenticated(self._session)
        url = self.url(path)
        try:
            resp = self._client.request(
                method,
                url,
                headers=self._auth_headers(),
                json=json,
                params=params,
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise TransportError(0, f"{method} {path} failed: {exc}") from exc
        return self._decode(resp, expected_status=expected_status)

    def multipart(
        self,
        path: str,
        parts: dict[str, MultipartPart],
        *,
        expected_status: int | None = None,
    ) -> Any:
        """POST a ``multipart/form-data`` body and return the decoded JSON."""
        require_authenticated(self._session)
        url = self.url(path)
        try:
            resp = self._client.post(
                url,
                headers=self._auth_headers(),
                files=parts,
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise TransportError(0, f"POST {path} failed: {exc}") from exc
        return self._decode(resp, expected_status=expected_status)

    def _decode(self, resp: httpx.Response, *, expected_status: int | None) -> Any:
        raise_for_status(resp)
        if expected_status is not None and resp.status_code != expected_status:
            logger.warning(
                "Unexpected status %d (wanted %d) from %s",
                resp.status_code,
                expected_status,
                resp.request.url.path,
            )
            raise TransportError(
                resp.status_code,
                f"bad status: {resp.status_code}",
                response_body=resp.text,
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError(
                resp.status_code,
                "response is not valid JSON",
                response_body=resp.text[:200],
            ) from exc


def raise_for_status(resp: httpx.Response) -> None:
    """Map an HTTP error response onto TransportError.

    The platform reports errors as ``[{"message": ..., "errorCode": ...}]``;
    the first entry's fields are preserved verbatim.
    """
    if resp.status_code < 400:
        return

    body = resp.text
    message = body[:200] if body else f"HTTP {resp.status_code}"
    error_code: str | None = None

    try:
        payload = resp.json()
        if isinstance(payload, list) and payload and isinstance(payload[0], dict):
            payload = payload[0]
        if isinstance(payload, dict):
            message = payload.get("message", payload.get("error_description", message))
            error_code = payload.get("errorCode", payload.get("error"))
    except ValueError:
        pass

    if resp.status_code == 401:
        raise SessionExpiredError(message=message, error_code=error_code, response_body=body)

    raise TransportError(
        resp.status_code,
        message,
        error_code=error_code,
        response_body=body,
    )
