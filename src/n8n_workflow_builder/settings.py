"""Runtime settings, read from the environment and an optional ``.env`` file."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PORT = 1937

TransportMode = Literal["stdio", "http"]


class Settings(BaseSettings):
    """Server settings.

    Variables are read without a prefix so that the names used by existing
    deployments keep working, e.g. ``N8N_HOST``, ``N8N_API_KEY`` and ``PORT``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # n8n API settings
    n8n_host: str = "http://localhost:5678"
    n8n_api_key: str = ""
    n8n_timeout: float = Field(default=30.0, gt=0)

    # HTTP settings
    host: str = "0.0.0.0"
    port: int | None = Field(default=None, ge=1, le=65535)
    """Preferred listening port. Setting it also selects the HTTP transport."""
    max_port_attempts: int = Field(default=10, ge=1)
    mcp_path: str = "/mcp"

    # StreamableHTTP settings
    json_response: bool = False
    session_close_timeout: float = Field(default=5.0, gt=0)

    # transport selection
    use_http: bool = False
    railway_environment: str | None = None

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @property
    def preferred_port(self) -> int:
        return self.port if self.port is not None else DEFAULT_PORT

    def transport_mode(self) -> TransportMode:
        """Pick the transport the way hosted deployments expect.

        HTTP is used when explicitly requested, when a port is configured, or when
        running on Railway; stdio otherwise.
        """
        if self.use_http or self.port is not None or self.railway_environment is not None:
            return "http"
        return "stdio"
