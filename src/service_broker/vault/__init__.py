"""Credential vault adapters and vault naming."""

from .credhub import (
    CredHubAuthError,
    CredHubError,
    CredHubNotFoundError,
    CredHubVault,
)

DEFAULT_CLIENT_IDENTIFIER = "csb"
READ_OPERATIONS = ("read",)
CREDENTIAL_REF_KEY = "credhub-ref"


def credential_name(
    service_name: str,
    binding_id: str,
    *,
    client_identifier: str = DEFAULT_CLIENT_IDENTIFIER,
) -> str:
    """Deterministic vault path for a binding's credentials."""
    return f"/c/{client_identifier}/{service_name}/{binding_id}/secrets-and-services"


def app_actor(app_guid: str) -> str:
    """Vault actor identity of a bound application."""
    return f"mtls-app:{app_guid}"


__all__ = [
    "CREDENTIAL_REF_KEY",
    "CredHubAuthError",
    "CredHubError",
    "CredHubNotFoundError",
    "CredHubVault",
    "DEFAULT_CLIENT_IDENTIFIER",
    "READ_OPERATIONS",
    "app_actor",
    "credential_name",
]
