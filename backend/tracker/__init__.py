from tracker.capabilities import ClientEnvironment, anonymize_user_agent, capture_capabilities
from tracker.delivery import DeliveryClient, DeliveryError
from tracker.options import TrackerOptions, TrackingToggle
from tracker.recorder import CardEventTracker, generate_session_id

__all__ = [
    "CardEventTracker",
    "ClientEnvironment",
    "DeliveryClient",
    "DeliveryError",
    "TrackerOptions",
    "TrackingToggle",
    "anonymize_user_agent",
    "capture_capabilities",
    "generate_session_id",
]
