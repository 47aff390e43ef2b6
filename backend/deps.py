"""
FastAPI dependencies shared by the relay routes.

Tests swap these out through app.dependency_overrides: settings to point at a
throwaway key file, the GitHub client to route calls into httpx.MockTransport.
"""

from typing import AsyncIterator

import httpx
from fastapi import Depends, Request

from config import RelaySettings


def get_settings(request: Request) -> RelaySettings:
    return request.app.state.settings


async def get_github_client(
    settings: RelaySettings = Depends(get_settings),
) -> AsyncIterator[httpx.AsyncClient]:
    # One client per request; nothing (tokens included) outlives the request
    async with httpx.AsyncClient(base_url=settings.github_api_url) as client:
        yield client
