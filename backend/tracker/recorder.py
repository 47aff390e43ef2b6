"""
Card event tracker.

One CardEventTracker per tracked card. It listens to the card's events
(cardFlip, mouseenter, mouseleave, touchstart), turns them into interaction
records on a TrackingSession and ships them in batches through a
DeliveryClient:

  - every send_threshold interactions            -> intermediate batch, buffer cleared
  - on end_session (destroy, unload or inactivity) -> final batch (isFinal), buffer kept

Delivery is at-most-once and best effort. An intermediate batch is cleared as
soon as it is handed to delivery, whether or not the relay accepts it, and
nothing is retried.

The card only needs add_event_listener(name, callback) and
remove_event_listener(name, callback). Callbacks receive the event detail as
a mapping: {"isFlipped": bool} for cardFlip, {"touches": int} for touchstart.
"""

import atexit
import logging
import secrets
import threading
import time
from concurrent.futures import Executor
from typing import Any, Callable, Iterable, Mapping, Optional

from models.interaction import parse_interaction
from models.session import TrackingSession
from tracker.capabilities import ClientEnvironment, capture_capabilities
from tracker.delivery import DeliveryClient
from tracker.options import TrackerOptions, TrackingToggle

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_session_id(now_ms: Optional[int] = None) -> str:
    """session-<base36 epoch ms>-<13 random base36 chars>"""
    now_ms = _now_ms() if now_ms is None else now_ms
    suffix = "".join(secrets.choice(_BASE36) for _ in range(13))
    return f"session-{_to_base36(now_ms)}-{suffix}"


class CardEventTracker:
    """
    Tracks one card until destroy().

    Until then the tracker stays registered with atexit, so an undestroyed
    tracker makes its final send (one token request and one event post) while
    the interpreter shuts down. The DeliveryClient a tracker builds for itself
    uses a short timeout (DEFAULT_TIMEOUT) to bound that wait; pass your own
    delivery to choose a different one.
    """

    def __init__(
        self,
        card: Any,
        options: Optional[TrackerOptions] = None,
        *,
        toggle: Optional[TrackingToggle] = None,
        delivery: Optional[DeliveryClient] = None,
        environment: Optional[ClientEnvironment] = None,
        executor: Optional[Executor] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.card = card
        self.options = options or TrackerOptions()
        self.toggle = toggle or TrackingToggle()
        self._owns_delivery = delivery is None
        self.delivery = delivery or DeliveryClient(
            self.options.token_endpoint, self.options.events_endpoint
        )
        self._executor = executor
        self._clock = clock or _now_ms
        self._lock = threading.RLock()
        self._timer: Optional[threading.Timer] = None
        self._listeners: list[tuple[str, Callable]] = []

        started = self._clock()
        self.session_id = generate_session_id(started)
        self.session = TrackingSession(
            session_id=self.session_id,
            device_capabilities=capture_capabilities(
                environment or ClientEnvironment(), anonymize=self.options.anonymize_data
            ),
            session_start=started,
        )
        self.last_interaction = started
        self.hover_start_time: Optional[int] = None
        self.session_ended = False

        self._setup_listeners()
        if self.options.track_session:
            self._schedule_check()

        logger.info("Card event tracking initialized %s", self.session_id)

    @classmethod
    def track_all(
        cls,
        cards: Iterable[Any],
        options: Optional[TrackerOptions] = None,
        **kwargs,
    ) -> list["CardEventTracker"]:
        return [cls(card, options, **kwargs) for card in cards]

    @property
    def interactions(self) -> list:
        return self.session.interactions

    @property
    def sending_enabled(self) -> bool:
        return self.options.enable_data_sending or self.toggle.enabled

    # ─── Listener wiring ───────────────────────────────────────────────

    def _listen(self, name: str, handler: Callable) -> None:
        self.card.add_event_listener(name, handler)
        self._listeners.append((name, handler))

    def _setup_listeners(self) -> None:
        if self.options.track_flips:
            self._listen("cardFlip", self.handle_flip)
        if self.options.track_hover:
            self._listen("mouseenter", self.handle_hover_start)
            self._listen("mouseleave", self.handle_hover_end)
        self._listen("touchstart", self.handle_touch)

        # Interpreter exit stands in for page unload
        atexit.register(self.handle_before_unload)

    # ─── Card event handlers ───────────────────────────────────────────

    def _record_safely(self, data: dict) -> None:
        # Handlers run inside the card's own event dispatch
        try:
            self.record_interaction(data)
        except Exception:
            logger.exception("Failed to record %s interaction", data.get("type"))

    def handle_flip(self, event: Mapping[str, Any]) -> None:
        self._record_safely({
            "type": "flip",
            "isFlipped": bool(event.get("isFlipped")),
            "triggerMethod": getattr(self.card, "input_method", None) or "unknown",
        })

    def handle_hover_start(self, event: Optional[Mapping[str, Any]] = None) -> None:
        self.hover_start_time = self._clock()
        self._record_safely({"type": "hoverStart"})

    def handle_hover_end(self, event: Optional[Mapping[str, Any]] = None) -> None:
        if self.hover_start_time is None:
            return
        duration = self._clock() - self.hover_start_time
        self.hover_start_time = None
        self._record_safely({"type": "hoverEnd", "duration": duration})

    def handle_touch(self, event: Mapping[str, Any]) -> None:
        self._record_safely({"type": "touch", "touchPoints": event.get("touches", 1)})

    def handle_before_unload(self) -> None:
        self.end_session()

    # ─── Session lifecycle ─────────────────────────────────────────────

    def record_interaction(self, data: dict) -> None:
        now = self._clock()
        with self._lock:
            self.last_interaction = now
            self.session.interactions.append(parse_interaction({**data, "timestamp": now}))
            payload = None
            if len(self.session.interactions) >= self.options.send_threshold:
                payload = self._take_batch(is_final=False)

        if payload is not None:
            self._deliver(payload)

    def check_session(self) -> None:
        if self.session_ended:
            return
        if self._clock() - self.last_interaction > self.options.session_timeout:
            self.end_session()

    def end_session(self) -> None:
        with self._lock:
            if self.session_ended:
                return
            self.session_ended = True
            self._cancel_check()
            self.session.session_duration = self._clock() - self.session.session_start

        self.send_data(is_final=True)
        logger.info("Card event tracking session ended %s", self.session_id)

    def send_data(self, is_final: bool = False) -> None:
        """
        Hand the current batch to delivery.

        The payload is a detached copy taken under the lock, so interactions
        recorded while a send is in flight land in the next batch. When
        sending is disabled the buffer is left alone and keeps growing.
        """
        with self._lock:
            payload = self._take_batch(is_final)
        if payload is not None:
            self._deliver(payload)

    def _take_batch(self, is_final: bool) -> Optional[dict]:
        # Caller holds self._lock
        if not self.sending_enabled:
            logger.debug("Sending disabled, holding %d interactions", len(self.session.interactions))
            return None

        payload = self.session.to_payload(is_final)
        if not is_final:
            self.session.interactions = []
        return payload

    def _deliver(self, payload: dict) -> None:
        if self.options.debug_events:
            logger.debug("Card event data: %s", payload)

        if self._executor is not None:
            self._executor.submit(self.delivery.send, payload)
        else:
            self.delivery.send(payload)

    def destroy(self) -> None:
        self.end_session()

        for name, handler in self._listeners:
            self.card.remove_event_listener(name, handler)
        self._listeners.clear()
        atexit.unregister(self.handle_before_unload)
        if self._owns_delivery and self._executor is None:
            self.delivery.close()

        logger.info("Card event tracking destroyed %s", self.session_id)

    # ─── Inactivity timer ──────────────────────────────────────────────

    def _schedule_check(self) -> None:
        self._timer = threading.Timer(self.options.batch_interval / 1000, self._on_check)
        self._timer.daemon = True
        self._timer.start()

    def _on_check(self) -> None:
        self.check_session()
        with self._lock:
            if not self.session_ended:
                self._schedule_check()

    def _cancel_check(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
