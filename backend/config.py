"""
Relay configuration.

Everything comes from environment variables (a .env file is loaded by main.py
before the app is built). Defaults match the values the browser tracker
assumes when it talks to a locally running relay:

  PORT=3000
  ALLOWED_ORIGINS=http://localhost:8080
  RATE_LIMIT_WINDOW_MS=60000
  RATE_LIMIT_MAX_REQUESTS=100
  JWT_EXPIRATION_SECONDS=600

The GitHub App credentials (GITHUB_APP_PRIVATE_KEY_PATH, GITHUB_APP_ID,
GITHUB_APP_INSTALLATION_ID) and the dispatch target (GITHUB_OWNER,
GITHUB_REPO) have no defaults. Missing values are reported per request,
not at startup, so /health keeps answering on a half-configured relay.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel

DEFAULT_ALLOWED_ORIGINS = ["http://localhost:8080"]
GITHUB_API_URL = "https://api.github.com"


class RelaySettings(BaseModel):
    port: int = 3000
    allowed_origins: list[str] = list(DEFAULT_ALLOWED_ORIGINS)
    rate_limit_window_ms: int = 60_000
    rate_limit_max_requests: int = 100

    github_app_private_key_path: Optional[str] = None
    github_app_id: Optional[str] = None
    github_app_installation_id: Optional[str] = None
    jwt_expiration_seconds: int = 600
    github_owner: Optional[str] = None
    github_repo: Optional[str] = None
    github_api_url: str = GITHUB_API_URL

    log_level: str = "INFO"


def _split_origins(raw: Optional[str]) -> list[str]:
    if not raw:
        return list(DEFAULT_ALLOWED_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def load_settings(environ: Optional[Mapping[str, str]] = None) -> RelaySettings:
    """Build RelaySettings from the process environment (or a given mapping)."""
    env = os.environ if environ is None else environ

    # Unset and empty are treated the same way; pydantic coerces the numbers
    values = {
        "port": env.get("PORT"),
        "rate_limit_window_ms": env.get("RATE_LIMIT_WINDOW_MS"),
        "rate_limit_max_requests": env.get("RATE_LIMIT_MAX_REQUESTS"),
        "github_app_private_key_path": env.get("GITHUB_APP_PRIVATE_KEY_PATH"),
        "github_app_id": env.get("GITHUB_APP_ID"),
        "github_app_installation_id": env.get("GITHUB_APP_INSTALLATION_ID"),
        "jwt_expiration_seconds": env.get("JWT_EXPIRATION_SECONDS"),
        "github_owner": env.get("GITHUB_OWNER"),
        "github_repo": env.get("GITHUB_REPO"),
        "github_api_url": env.get("GITHUB_API_URL"),
        "log_level": env.get("LOG_LEVEL"),
    }
    settings = {key: value for key, value in values.items() if value}
    settings["allowed_origins"] = _split_origins(env.get("ALLOWED_ORIGINS"))
    return RelaySettings(**settings)
