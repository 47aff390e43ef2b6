"""
Forwarding to GitHub's repository_dispatch API.

GitHub answers 204 No Content on success. Anything else, including a network
error, is a GitHubDispatchError; the relay reports it and does not retry.
"""

import logging

import httpx

from config import RelaySettings
from github_app.config import DISPATCH_PATH, GITHUB_ACCEPT
from github_app.errors import GitHubAppConfigError, GitHubDispatchError

logger = logging.getLogger(__name__)


async def dispatch_event(
    settings: RelaySettings,
    client: httpx.AsyncClient,
    token: str,
    event_type: str,
    client_payload: dict,
) -> None:
    if not settings.github_owner or not settings.github_repo:
        raise GitHubAppConfigError("GITHUB_OWNER and GITHUB_REPO must both be set")

    path = DISPATCH_PATH.format(owner=settings.github_owner, repo=settings.github_repo)
    try:
        response = await client.post(
            path,
            json={"event_type": event_type, "client_payload": client_payload},
            headers={
                "Authorization": f"token {token}",
                "Accept": GITHUB_ACCEPT,
            },
        )
    except httpx.HTTPError as exc:
        logger.error("Error forwarding event: %s", exc)
        raise GitHubDispatchError(str(exc)) from exc

    if response.is_error:
        logger.error(
            "Error forwarding event: %s %s", response.status_code, response.text
        )
        raise GitHubDispatchError(f"GitHub returned {response.status_code}")

    logger.info("Forwarded %s to %s/%s", event_type, settings.github_owner, settings.github_repo)
