from typing import Any, ClassVar, FrozenSet, Mapping, Optional

from commerce_adaptor.adapters.interfaces.commerce import CommerceAdaptor
from commerce_adaptor.infrastructure.auth import CLIENT_CREDENTIAL_FIELDS, OAuthRestClient


class ClientCredentialsAdaptor(CommerceAdaptor):
    """
    Base for adaptors whose vendor API is protected by client-credentials OAuth.

    The OAuthRestClient is created on first use from the ``auth_url``,
    ``api_url``, ``client_id``, ``client_secret`` (and optional ``scope``)
    configuration fields and lives as long as the adaptor.
    """

    CONFIG_SCHEMA: ClassVar[FrozenSet[str]] = CLIENT_CREDENTIAL_FIELDS

    def __init__(self, config: Mapping[str, Any]):
        super().__init__(config)
        self._rest: Optional[OAuthRestClient] = None

    @property
    def rest(self) -> OAuthRestClient:
        if self._rest is None:
            self._rest = self.build_rest_client()
        return self._rest

    def build_rest_client(self) -> OAuthRestClient:
        """Create the adaptor's REST client. Override to pass transport or header options."""
        return OAuthRestClient.from_config(self.config)

    async def aclose(self) -> None:
        if self._rest is not None:
            await self._rest.aclose()
            self._rest = None
