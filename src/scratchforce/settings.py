"""Client configuration settings.

ClientSettings is the single configuration object accepted by the transport,
deployer and provisioner. It is a plain dataclass (not env-coupled) so tests
can inject config without touching os.environ.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_API_VERSION = "53.0"


@dataclass(frozen=True, slots=True)
class ClientSettings:
    """Tunables for the remote API client.

    All fields have defaults suitable for interactive use. The OAuth
    ``client_id`` must be supplied before provisioning, because new
    environments are created bound to that connected app.
    """

    # ── API ────────────────────────────────────────────────────────
    api_version: str = DEFAULT_API_VERSION
    """Version segment used in ``/services/data/v{api_version}``."""

    http_timeout_seconds: float = 60.0

    # ── OAuth (connected app) ──────────────────────────────────────
    client_id: str = ""
    """Connected app consumer key. Never log alongside tokens."""

    redirect_uri: str = "https://login.salesforce.com/services/oauth2/success"

    # ── Metadata deploy polling ────────────────────────────────────
    deploy_poll_interval_seconds: float = 1.0
    deploy_max_attempts: int = 120
    deploy_timeout_seconds: float | None = 180.0

    # ── Environment provisioning polling ──────────────────────────
    provision_poll_interval_seconds: float = 10.0
    provision_timeout_seconds: float = 360.0

    # ── New environment defaults ───────────────────────────────────
    default_edition: str = "Developer"
    default_duration_days: int = 30
    default_language: str = "en_US"

    # ── Generated password composition ─────────────────────────────
    password_length: int = 16
    password_min_special: int = 2
    password_min_numeric: int = 2
    password_min_upper: int = 2

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if not self.api_version:
            errors.append("api_version is required")
        if self.http_timeout_seconds <= 0:
            errors.append("http_timeout_seconds must be > 0")
        if self.deploy_poll_interval_seconds < 0:
            errors.append("deploy_poll_interval_seconds must be >= 0")
        if self.deploy_max_attempts < 1:
            errors.append("deploy_max_attempts must be >= 1")
        if self.deploy_timeout_seconds is not None and self.deploy_timeout_seconds <= 0:
            errors.append("deploy_timeout_seconds must be > 0 or unset")
        if self.provision_poll_interval_seconds < 0:
            errors.append("provision_poll_interval_seconds must be >= 0")
        if self.provision_timeout_seconds <= 0:
            errors.append("provision_timeout_seconds must be > 0")

        # Password composition
        for name in (
            "password_length",
            "password_min_special",
            "password_min_numeric",
            "password_min_upper",
        ):
            if getattr(self, name) < 0:
                errors.append(f"{name} must be >= 0")
        minimums = (
            self.password_min_special
            + self.password_min_numeric
            + self.password_min_upper
        )
        if minimums > self.password_length:
            errors.append(
                f"password minimums ({minimums}) exceed password_length "
                f"({self.password_length})"
            )
        return errors

    def validate_for_provisioning(self) -> list[str]:
        errors = self.validate()
        if not self.client_id:
            errors.append("client_id is required for provisioning")
        if not self.redirect_uri:
            errors.append("redirect_uri is required for provisioning")
        return errors

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> ClientSettings:
        """Build settings from ``SCRATCHFORCE_*`` environment variables.

        Unset variables keep the dataclass default. Tests should construct
        ClientSettings directly.
        """
        if env is None:
            env = dict(os.environ)

        def _get(name: str) -> str | None:
            value = env.get(f"SCRATCHFORCE_{name}", "").strip()
            return value or None

        overrides: dict[str, object] = {}
        for name in ("API_VERSION", "CLIENT_ID", "REDIRECT_URI", "DEFAULT_EDITION"):
            value = _get(name)
            if value is not None:
                overrides[name.lower()] = value

        for name in (
            "HTTP_TIMEOUT_SECONDS",
            "DEPLOY_POLL_INTERVAL_SECONDS",
            "DEPLOY_TIMEOUT_SECONDS",
            "PROVISION_POLL_INTERVAL_SECONDS",
            "PROVISION_TIMEOUT_SECONDS",
        ):
            value = _get(name)
            if value is not None:
                overrides[name.lower()] = float(value)

        for name in ("DEPLOY_MAX_ATTEMPTS", "DEFAULT_DURATION_DAYS", "PASSWORD_LENGTH"):
            value = _get(name)
            if value is not None:
                overrides[name.lower()] = int(value)

        return cls(**overrides)  # type: ignore[arg-type]
