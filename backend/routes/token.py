import logging

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config import RelaySettings
from deps import get_github_client, get_settings
from github_app.auth import mint_installation_token
from github_app.errors import GitHubAppError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["token"])


# ---------- Response schema ----------

class TokenResponse(BaseModel):
    token: str
    expires_in: int         # seconds, mirrors JWT_EXPIRATION_SECONDS
    token_type: str = "bearer"


# ---------- Endpoint ----------

@router.post("/token", response_model=TokenResponse)
async def issue_token(
    settings: RelaySettings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_github_client),
):
    """
    Mints a fresh installation access token for the browser tracker.
    Nothing is cached: every call signs a new App JWT and asks GitHub again.
    """
    try:
        installation = await mint_installation_token(settings, client)
    except GitHubAppError as exc:
        logger.error("Token generation failed: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to generate installation token"},
        )

    return TokenResponse(
        token=installation.token,
        expires_in=settings.jwt_expiration_seconds,
    )
