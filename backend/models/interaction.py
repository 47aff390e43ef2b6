from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Interaction(BaseModel):
    """One recorded card interaction. Unknown types keep their extra fields."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    type: str
    timestamp: int      # Unix timestamp in milliseconds, stamped at record time


class FlipInteraction(Interaction):
    type: Literal["flip"] = "flip"
    is_flipped: bool
    trigger_method: str = "unknown"     # "click" | "keyboard" | "touch" | "unknown"


class HoverStartInteraction(Interaction):
    type: Literal["hoverStart"] = "hoverStart"


class HoverEndInteraction(Interaction):
    type: Literal["hoverEnd"] = "hoverEnd"
    duration: int       # ms since the matching hoverStart


class TouchInteraction(Interaction):
    type: Literal["touch"] = "touch"
    touch_points: int


INTERACTION_TYPES: dict[str, type[Interaction]] = {
    "flip": FlipInteraction,
    "hoverStart": HoverStartInteraction,
    "hoverEnd": HoverEndInteraction,
    "touch": TouchInteraction,
}


def parse_interaction(data: dict) -> Interaction:
    model = INTERACTION_TYPES.get(data.get("type"), Interaction)
    return model.model_validate(data)
