from models.capabilities import ConnectionInfo, DeviceCapabilities
from models.interaction import (
    FlipInteraction,
    HoverEndInteraction,
    HoverStartInteraction,
    Interaction,
    TouchInteraction,
    parse_interaction,
)
from models.session import TrackingSession

__all__ = [
    "ConnectionInfo",
    "DeviceCapabilities",
    "FlipInteraction",
    "HoverEndInteraction",
    "HoverStartInteraction",
    "Interaction",
    "TouchInteraction",
    "TrackingSession",
    "parse_interaction",
]
