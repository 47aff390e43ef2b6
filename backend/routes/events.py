import logging
from typing import Any, Optional

import httpx
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config import RelaySettings
from deps import get_github_client, get_settings
from github_app.auth import mint_installation_token
from github_app.dispatch import dispatch_event
from github_app.errors import GitHubAppError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])


# ---------- Request / Response schemas ----------

class DispatchRequest(BaseModel):
    event_type: Optional[str] = None            # "card_interaction_event"
    client_payload: Optional[dict[str, Any]] = None


class DispatchResponse(BaseModel):
    message: str


# ---------- Endpoint ----------

@router.post("/events", status_code=202, response_model=DispatchResponse)
async def forward_event(
    body: Optional[DispatchRequest] = Body(default=None),
    settings: RelaySettings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_github_client),
):
    """
    Forwards a tracker batch to GitHub as a repository_dispatch event.

    Validation happens before any GitHub call, and the dispatch is only
    attempted once an installation token has been minted for this request.
    """
    if body is None or not body.event_type or body.client_payload is None:
        return JSONResponse(status_code=400, content={"error": "Missing required parameters"})

    try:
        installation = await mint_installation_token(settings, client)
    except GitHubAppError as exc:
        logger.error("Could not authenticate with GitHub: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Failed to authenticate with GitHub"})

    try:
        await dispatch_event(
            settings,
            client,
            token=installation.token,
            event_type=body.event_type,
            client_payload=body.client_payload,
        )
    except GitHubAppError as exc:
        logger.error("Error forwarding event: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Failed to forward event to GitHub"})

    return DispatchResponse(message="Event forwarded successfully")
