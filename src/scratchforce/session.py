"""Authenticated session state.

A Session is an immutable capability: an instance URL plus a bearer token.
Workflows that create a new environment build a second Session for it and
pass both explicitly; a Session is never re-pointed at another instance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

from .errors import AuthenticationError, TransportError
from .settings import DEFAULT_API_VERSION

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Session:
    """Authenticated identity for one platform instance."""

    instance_url: str
    access_token: str
    api_version: str = DEFAULT_API_VERSION
    issued_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "instance_url", (self.instance_url or "").rstrip("/"))

    def is_authenticated(self) -> bool:
        return bool(self.instance_url) and bool(self.access_token)

    def data_url(self, path: str) -> str:
        """Absolute REST data URL for ``path`` (relative or ``/services/...``)."""
        if path.startswith("/services/"):
            return f"{self.instance_url}{path}"
        return f"{self.instance_url}/services/data/v{self.api_version}/{path.lstrip('/')}"

    def __repr__(self) -> str:
        # Keep tokens out of tracebacks and log lines.
        return (
            f"Session(instance_url={self.instance_url!r}, "
            f"api_version={self.api_version!r}, authenticated={self.is_authenticated()})"
        )


def require_authenticated(session: Session | None) -> Session:
    """Return ``session`` or raise AuthenticationError if it cannot be used."""
    if session is None or not session.is_authenticated():
        raise AuthenticationError()
    return session


def login_with_auth_code(
    login_url: str,
    auth_code: str,
    *,
    client_id: str,
    redirect_uri: str,
    http_client: httpx.Client | None = None,
    api_version: str = DEFAULT_API_VERSION,
    timeout_seconds: float = 60.0,
) -> Session:
    """Exchange a one-time authorization code for a new Session.

    Uses the OAuth2 ``authorization_code`` grant against
    ``{login_url}/services/oauth2/token``.

    Raises:
        AuthenticationError: If inputs are missing or the token response
            lacks an access token or instance URL.
        TransportError: On HTTP or network failure.
    """
    if not login_url or not auth_code:
        raise AuthenticationError("login_url and auth_code are required")
    if not client_id:
        raise AuthenticationError("client_id is required for auth code login")

    url = f"{login_url.rstrip('/')}/services/oauth2/token"
    form = {
        "grant_type": "authorization_code",
        "code": auth_code,
        "client_id": client_id,
        "redirect_uri": redirect_uri,
    }

    owns_client = http_client is None
    client = http_client or httpx.Client()
    try:
        try:
            resp = client.post(url, data=form, timeout=timeout_seconds)
        except httpx.HTTPError as exc:
            raise TransportError(0, f"auth code exchange failed: {exc}") from exc
    finally:
        if owns_client:
            client.close()

    if resp.status_code >= 400:
        message = f"HTTP {resp.status_code}"
        error_code = None
        try:
            payload = resp.json()
            if isinstance(payload, dict):
                error_code = payload.get("error")
                message = payload.get("error_description", error_code or message)
        except ValueError:
            pass
        raise TransportError(
            resp.status_code,
            message,
            error_code=error_code,
            response_body=resp.text,
        )

    try:
        payload = resp.json()
    except ValueError as exc:
        raise TransportError(resp.status_code, "token response is not JSON") from exc

    access_token = payload.get("access_token") if isinstance(payload, dict) else None
    instance_url = payload.get("instance_url") if isinstance(payload, dict) else None
    if not access_token or not instance_url:
        raise AuthenticationError("token response missing access_token or instance_url")

    logger.info(
        "Authenticated with auth code: instance=%s",
        instance_url,
        extra={"instance_url": instance_url},
    )
    return Session(
        instance_url=instance_url,
        access_token=access_token,
        api_version=api_version,
        issued_at=datetime.now(timezone.utc),
    )
