"""Service broker configuration settings.

BrokerSettings is the single configuration object accepted by create_broker().
It is a plain dataclass (not env-coupled) so tests can inject config without
touching os.environ.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .vault import DEFAULT_CLIENT_IDENTIFIER


@dataclass(frozen=True, slots=True)
class BrokerSettings:
    """Configuration for the broker.

    All fields have defaults suitable for local development, which runs on
    in-memory stores. Non-local environments must supply Supabase settings.
    """

    # ── Environment ────────────────────────────────────────────────
    environment: str = "local"
    """One of: local, dev, staging, production."""

    # ── Supabase ───────────────────────────────────────────────────
    supabase_url: str = ""
    """Supabase project URL (e.g. https://xyz.supabase.co)."""

    supabase_service_role_key: str = field(default="", repr=False)
    """Supabase service-role key for PostgREST calls. Never log this."""

    supabase_schema: str = "public"

    # ── CredHub ────────────────────────────────────────────────────
    credhub_url: str = ""
    """CredHub base URL. Empty disables the vault: bindings return raw credentials."""

    uaa_url: str = ""
    credhub_client_id: str = ""
    credhub_client_secret: str = field(default="", repr=False)

    credential_client_identifier: str = DEFAULT_CLIENT_IDENTIFIER
    """First path segment under /c/ for stored binding credentials."""

    # ── Catalog ────────────────────────────────────────────────────
    enabled_services: tuple[str, ...] | None = None
    """Service IDs or names listed in the catalog. None lists all."""

    # ── Logging ────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = True
    """JSON lines when True, human-readable console output otherwise."""

    @property
    def is_local(self) -> bool:
        return self.environment == "local"

    @property
    def vault_enabled(self) -> bool:
        return bool(self.credhub_url)

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if not self.is_local:
            if not self.supabase_url:
                errors.append(f"{self.environment}: supabase_url is required")
            if not self.supabase_service_role_key:
                errors.append(
                    f"{self.environment}: supabase_service_role_key is required"
                )

        credhub = {
            "credhub_url": self.credhub_url,
            "uaa_url": self.uaa_url,
            "credhub_client_id": self.credhub_client_id,
            "credhub_client_secret": self.credhub_client_secret,
        }
        if any(credhub.values()):
            for name, value in credhub.items():
                if not value:
                    errors.append(f"{name} is required when CredHub is configured")

        if not self.credential_client_identifier:
            errors.append("credential_client_identifier must not be empty")
        if self.log_level.upper() not in logging.getLevelNamesMapping():
            errors.append(f"log_level {self.log_level!r} is not a logging level")
        return errors

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> BrokerSettings:
        """Build settings from environment variables.

        This is a convenience factory for production use. Tests should
        construct BrokerSettings directly.
        """
        if env is None:
            env = dict(os.environ)

        enabled_raw = env.get("ENABLED_SERVICES", "")
        enabled = (
            tuple(s.strip() for s in enabled_raw.split(",") if s.strip())
            if enabled_raw
            else None
        )

        return cls(
            environment=env.get("ENVIRONMENT", "local"),
            supabase_url=env.get("SUPABASE_URL", ""),
            supabase_service_role_key=env.get("SUPABASE_SERVICE_ROLE_KEY", ""),
            supabase_schema=env.get("SUPABASE_SCHEMA", "public"),
            credhub_url=env.get("CREDHUB_URL", ""),
            uaa_url=env.get("UAA_URL", ""),
            credhub_client_id=env.get("CREDHUB_CLIENT_ID", ""),
            credhub_client_secret=env.get("CREDHUB_CLIENT_SECRET", ""),
            credential_client_identifier=env.get(
                "CREDENTIAL_CLIENT_IDENTIFIER", DEFAULT_CLIENT_IDENTIFIER
            ),
            enabled_services=enabled,
            log_level=env.get("LOG_LEVEL", "INFO"),
            log_json=env.get("LOG_FORMAT", "json") == "json",
        )
