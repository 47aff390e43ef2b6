"""
GitHub App authentication.

Two steps, run fresh for every relay request:
  1. Sign a short-lived App JWT (iat / exp / iss) with the App's private key (RS256)
  2. Exchange it for an installation access token

Installation tokens are never cached. Every /token and /events request pays for
one round-trip to GitHub, which keeps the relay stateless and sidesteps any
token-expiry bookkeeping.

Failure modes:
  - Private key path unset or file missing      -> GitHubAppConfigError
  - GITHUB_APP_ID / installation ID unset       -> GitHubAppConfigError
  - Network error or non-2xx from GitHub        -> GitHubAuthError
  - 2xx response without a token field          -> GitHubAuthError
"""

import logging
import os
import time
from typing import Optional

import httpx
import jwt
from pydantic import BaseModel

from config import RelaySettings
from github_app.config import GITHUB_ACCEPT, INSTALLATION_TOKEN_PATH, JWT_ALGORITHM
from github_app.errors import GitHubAppConfigError, GitHubAuthError

logger = logging.getLogger(__name__)


class InstallationToken(BaseModel):
    token: str
    expires_at: Optional[str] = None    # ISO-8601, as issued by GitHub


# ─── App JWT ───────────────────────────────────────────────────────────

def _read_private_key(path: Optional[str]) -> str:
    if not path or not os.path.isfile(path):
        logger.error("Private key file not found at %s", path)
        raise GitHubAppConfigError(f"Private key file not found at {path}")
    with open(path, encoding="utf-8") as f:
        return f.read()


def build_app_jwt(settings: RelaySettings, now: Optional[int] = None) -> str:
    """Sign the App-level JWT used to ask GitHub for an installation token."""
    private_key = _read_private_key(settings.github_app_private_key_path)

    if not settings.github_app_id:
        logger.error("GITHUB_APP_ID not set in environment variables")
        raise GitHubAppConfigError("GITHUB_APP_ID not set")

    issued_at = int(time.time()) if now is None else now
    claims = {
        "iat": issued_at,
        "exp": issued_at + settings.jwt_expiration_seconds,
        "iss": settings.github_app_id,
    }
    return jwt.encode(claims, private_key, algorithm=JWT_ALGORITHM)


# ─── Installation token exchange ───────────────────────────────────────

async def mint_installation_token(
    settings: RelaySettings,
    client: httpx.AsyncClient,
) -> InstallationToken:
    """
    Exchange a freshly signed App JWT for an installation access token.
    `client` must have base_url set to the GitHub API root.
    """
    app_jwt = build_app_jwt(settings)

    installation_id = settings.github_app_installation_id
    if not installation_id:
        logger.error("GITHUB_APP_INSTALLATION_ID not set")
        raise GitHubAppConfigError("GITHUB_APP_INSTALLATION_ID not set")

    try:
        response = await client.post(
            INSTALLATION_TOKEN_PATH.format(installation_id=installation_id),
            json={},
            headers={
                "Authorization": f"Bearer {app_jwt}",
                "Accept": GITHUB_ACCEPT,
            },
        )
    except httpx.HTTPError as exc:
        logger.error("Error getting installation token: %s", exc)
        raise GitHubAuthError(str(exc)) from exc

    if response.is_error:
        logger.error(
            "Error getting installation token: %s %s",
            response.status_code, response.text,
        )
        raise GitHubAuthError(f"GitHub returned {response.status_code}")

    data = response.json()
    if not data.get("token"):
        raise GitHubAuthError("GitHub response did not include a token")

    return InstallationToken(token=data["token"], expires_at=data.get("expires_at"))
