"""
Delivery of tracker batches through the relay.

Each batch costs two sequential calls:
  1. POST token_endpoint                   -> {"token": ...}
  2. POST events_endpoint (Bearer <token>) -> repository_dispatch via the relay

Tokens are never reused between batches. Neither call is retried: a failed
batch is logged and dropped. send() never raises, since it runs inside card
event handling and a tracking failure must not break the card.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

EVENT_TYPE = "card_interaction_event"

# Short enough that the atexit final send of a tracker cannot stall shutdown for long
DEFAULT_TIMEOUT = 2.0


class DeliveryError(Exception):
    """A token request or event post did not succeed."""


class DeliveryClient:
    def __init__(
        self,
        token_endpoint: str,
        events_endpoint: str,
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.token_endpoint = token_endpoint
        self.events_endpoint = events_endpoint
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def request_token(self) -> str:
        try:
            response = self._client.post(self.token_endpoint)
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Token request failed: {exc}") from exc

        if response.is_error:
            raise DeliveryError(
                f"Token request failed: {response.status_code} {response.reason_phrase}"
            )

        data = response.json()
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise DeliveryError("Token response did not include a token")
        return token

    def post_events(self, token: str, payload: dict) -> None:
        try:
            response = self._client.post(
                self.events_endpoint,
                json={"event_type": EVENT_TYPE, "client_payload": payload},
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Event post failed: {exc}") from exc

        if response.is_error:
            raise DeliveryError(
                f"Event post failed: {response.status_code} {response.reason_phrase}"
            )

    def send(self, payload: dict) -> bool:
        """Deliver one batch. Returns True if the relay accepted it."""
        try:
            token = self.request_token()
            self.post_events(token, payload)
        except (DeliveryError, ValueError) as exc:
            # ValueError covers a token body that is not JSON
            logger.error("Failed to send card event data for %s: %s", payload.get("sessionId"), exc)
            return False
        return True
