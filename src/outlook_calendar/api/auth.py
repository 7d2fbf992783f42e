"""
Credential provider for Microsoft Graph.

Handles:
- Validation of the client-credential environment keys
- Bearer token acquisition via azure-identity (tokens cached by the SDK)
"""

import logging
from typing import Optional, Protocol

from azure.identity.aio import ClientSecretCredential

from outlook_calendar.settings import Settings


GRAPH_SCOPE = "https://graph.microsoft.com/.default"


logger = logging.getLogger(__name__)


class MissingConfigurationError(Exception):
    """Required environment configuration is absent."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            f"Missing required environment variables: {', '.join(self.missing)}. "
            "Please check your environment or .env file."
        )


class TokenProvider(Protocol):
    """Anything that can hand out a bearer token for the Graph audience."""

    async def get_token(self) -> str:
        ...

    async def close(self) -> None:
        ...


class AzureCredentialProvider:
    """
    Client-credential token provider.

    The credential object is created on first use so a server can start
    without configuration and report the missing keys per call.
    """

    def __init__(self, settings: Settings, scope: str = GRAPH_SCOPE):
        self._settings = settings
        self._scope = scope
        self._credential: Optional[ClientSecretCredential] = None

    def validate(self) -> None:
        """Raise MissingConfigurationError naming every absent key."""
        missing = self._settings.missing_credentials()
        if missing:
            raise MissingConfigurationError(missing)

    def _get_credential(self) -> ClientSecretCredential:
        if self._credential is None:
            self.validate()
            self._credential = ClientSecretCredential(
                tenant_id=self._settings.azure_tenant_id,
                client_id=self._settings.azure_client_id,
                client_secret=self._settings.azure_client_secret,
            )
            logger.debug(f"Created client credential for tenant '{self._settings.azure_tenant_id}'")
        return self._credential

    async def get_token(self) -> str:
        credential = self._get_credential()
        access_token = await credential.get_token(self._scope)
        return access_token.token

    async def close(self) -> None:
        if self._credential is not None:
            await self._credential.close()
            self._credential = None

