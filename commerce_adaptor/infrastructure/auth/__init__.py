"""Authentication mechanisms for commerce back-end integrations."""

from commerce_adaptor.infrastructure.auth.oauth import (
    CLIENT_CREDENTIAL_FIELDS,
    AuthSession,
    AuthState,
    OAuthClientConfig,
    OAuthRestClient,
)

__all__ = [
    "CLIENT_CREDENTIAL_FIELDS",
    "AuthSession",
    "AuthState",
    "OAuthClientConfig",
    "OAuthRestClient",
]
