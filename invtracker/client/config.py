"""
Client configuration.

Read from ``INVTRACKER_``-prefixed environment variables (or .env), separate
from the server ``Settings`` so a client never needs database credentials.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Where the backend lives and how long one intent may take."""

    API_BASE_URL: str = "http://127.0.0.1:8000"
    CLIENT_TIMEOUT: float = Field(default=10.0, gt=0)

    model_config = SettingsConfigDict(env_prefix="INVTRACKER_", env_file=".env", extra="ignore")
