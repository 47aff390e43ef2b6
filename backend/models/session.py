from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny
from pydantic.alias_generators import to_camel

from models.capabilities import DeviceCapabilities
from models.interaction import Interaction


class TrackingSession(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    interactions: list[SerializeAsAny[Interaction]] = Field(default_factory=list)
    device_capabilities: DeviceCapabilities
    session_start: int                      # Unix timestamp in milliseconds
    session_duration: Optional[int] = None  # set once, when the session ends

    def to_payload(self, is_final: bool) -> dict:
        """
        Detached JSON-ready copy of the session for one delivery attempt.
        Nothing in the returned dict is shared with this session.
        """
        exclude = {"session_duration"} if self.session_duration is None else None
        payload = self.model_dump(mode="json", by_alias=True, exclude=exclude)
        payload["isFinal"] = is_final
        return payload
