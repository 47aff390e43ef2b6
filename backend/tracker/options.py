import threading

from pydantic import BaseModel


class TrackerOptions(BaseModel):
    token_endpoint: str = "http://localhost:3000/token"
    events_endpoint: str = "http://localhost:3000/events"
    track_flips: bool = True
    track_hover: bool = True
    track_session: bool = True
    anonymize_data: bool = True
    batch_interval: int = 60_000        # ms between inactivity checks
    session_timeout: int = 1_800_000    # ms of inactivity before the session ends
    send_threshold: int = 5             # send after N interactions, or on session end
    enable_data_sending: bool = False
    debug_events: bool = False          # log every outgoing payload at DEBUG


class TrackingToggle:
    """
    Page-wide on/off switch for delivery, shared by every tracker given it.

    While both this toggle and a tracker's enable_data_sending are off, the
    tracker keeps recording but makes no network calls.
    """

    def __init__(self, enabled: bool = False) -> None:
        self._enabled = threading.Event()
        if enabled:
            self._enabled.set()

    @property
    def enabled(self) -> bool:
        return self._enabled.is_set()

    def enable(self) -> None:
        self._enabled.set()

    def disable(self) -> None:
        self._enabled.clear()
