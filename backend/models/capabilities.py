from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ConnectionInfo(BaseModel):
    type: Optional[str] = None          # effective type: "4g", "3g", ...
    rtt: Optional[int] = None
    downlink: Optional[float] = None


class DeviceCapabilities(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    touch: bool
    pointer: bool
    hover: bool
    reduced_motion: bool
    dark_mode: bool
    high_contrast: bool
    screen_width: int
    screen_height: int
    pixel_ratio: float = 1.0
    connection: Optional[ConnectionInfo] = None
    language: Optional[str] = None
    timezone: Optional[str] = None
    user_agent: str
