"""
Application settings with environment variable support.

Values come from the process environment (or a local .env file).
Supports both local (stdio) and cloud (http) modes.
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


# Environment keys required by the client-credential flow
CREDENTIAL_KEYS = ("AZURE_TENANT_ID", "AZURE_CLIENT_ID", "AZURE_CLIENT_SECRET")


class Settings(BaseSettings):
    """Outlook Calendar MCP configuration."""

    # Transport mode
    transport_mode: Literal["stdio", "http"] = "stdio"
    host: str = "0.0.0.0"
    port: int = 3000

    # Shared bearer token for HTTP transport (optional)
    auth_token: Optional[str] = None

    # Azure AD app registration (client credentials)
    azure_tenant_id: Optional[str] = None
    azure_client_id: Optional[str] = None
    azure_client_secret: Optional[str] = None

    # Mailbox used when a tool is called with user_id="me"
    user_id: Optional[str] = None

    graph_base_url: str = "https://graph.microsoft.com/v1.0"
    default_timezone: str = "Asia/Manila"
    log_level: str = Field(default="INFO")

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }

    def missing_credentials(self) -> list[str]:
        """Names of credential environment keys that are not set."""
        values = {
            "AZURE_TENANT_ID": self.azure_tenant_id,
            "AZURE_CLIENT_ID": self.azure_client_id,
            "AZURE_CLIENT_SECRET": self.azure_client_secret,
        }
        return [key for key in CREDENTIAL_KEYS if not values[key]]

    def is_http_mode(self) -> bool:
        return self.transport_mode == "http"


def get_settings() -> Settings:
    """Read settings from the environment on demand."""
    return Settings()

