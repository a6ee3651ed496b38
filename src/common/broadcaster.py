from __future__ import annotations

import asyncio
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator, List, Literal, Optional, Protocol

from pydantic import BaseModel

from .log import get_logger


logger = get_logger("broadcaster")

MessageType = Literal["success", "error", "info"]

AUTO_CLEAR_DELAY = 3.0
FADE_DELAY = 0.3


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Schedules callbacks on the running asyncio loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class MessagePhase(str, Enum):
    IDLE = "idle"
    VISIBLE = "visible"
    FADING_OUT = "fading_out"


class UIState(BaseModel):
    loading: bool = False
    message: Optional[str] = None
    message_type: Optional[MessageType] = None
    visible: bool = False


Listener = Callable[[UIState], None]


class UIBroadcaster:
    """
    Shared UI state: the "request in flight" indicator and a transient toast.

    Notes
    - Loading is a counter of in-flight requests, so overlapping requests keep the
      indicator on until the last one settles.
    - A message auto-clears after `auto_clear_delay`; clearing hides it at once and
      drops the text after `fade_delay`. Setting a new message cancels both pending
      timers, so a stale timer can never wipe a newer message.
    - Not thread-safe; meant to be driven from one event loop.
    """

    def __init__(
        self,
        *,
        scheduler: Optional[Scheduler] = None,
        auto_clear_delay: float = AUTO_CLEAR_DELAY,
        fade_delay: float = FADE_DELAY,
    ) -> None:
        self._scheduler = scheduler or LoopScheduler()
        self._auto_clear_delay = auto_clear_delay
        self._fade_delay = fade_delay
        self._in_flight = 0
        self._message: Optional[str] = None
        self._message_type: Optional[MessageType] = None
        self._visible = False
        self._auto_clear_timer: Optional[TimerHandle] = None
        self._fade_timer: Optional[TimerHandle] = None
        self._listeners: List[Listener] = []

    # --------------- Loading ---------------
    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def begin_request(self) -> None:
        self._in_flight += 1
        if self._in_flight == 1:
            self._notify()

    def end_request(self) -> None:
        if self._in_flight == 0:
            logger.debug("end_request called with nothing in flight")
            return
        self._in_flight -= 1
        if self._in_flight == 0:
            self._notify()

    def set_loading(self, value: bool) -> None:
        if value:
            self.begin_request()
        else:
            self.end_request()

    @contextmanager
    def request_in_flight(self) -> Iterator[None]:
        self.begin_request()
        try:
            yield
        finally:
            self.end_request()

    # --------------- Messages ---------------
    @property
    def message(self) -> Optional[str]:
        return self._message

    @property
    def message_type(self) -> Optional[MessageType]:
        return self._message_type

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def phase(self) -> MessagePhase:
        if self._visible:
            return MessagePhase.VISIBLE
        if self._fade_timer is not None:
            return MessagePhase.FADING_OUT
        return MessagePhase.IDLE

    def set_message(self, text: str, message_type: MessageType = "info") -> None:
        """
        Show `text` and schedule its auto-clear.

        The timer is scheduled before any state changes, so a scheduler that
        raises (e.g. `LoopScheduler` outside a running loop) leaves the previous
        message and its timers untouched.
        """
        timer = self._scheduler.call_later(self._auto_clear_delay, self.clear_message)
        self._cancel_timers()
        self._message = text
        self._message_type = message_type
        self._visible = True
        self._auto_clear_timer = timer
        self._notify()

    def clear_message(self) -> None:
        try:
            fade = self._scheduler.call_later(self._fade_delay, self._finish_fade)
        except RuntimeError:
            logger.warning("Could not schedule message fade; clearing immediately", exc_info=True)
            self._cancel_timers()
            self._visible = False
            self._finish_fade()
            return
        self._cancel_timers()
        self._visible = False
        self._fade_timer = fade
        self._notify()

    def _finish_fade(self) -> None:
        self._fade_timer = None
        self._message = None
        self._message_type = None
        self._notify()

    def _cancel_timers(self) -> None:
        if self._auto_clear_timer is not None:
            self._auto_clear_timer.cancel()
            self._auto_clear_timer = None
        if self._fade_timer is not None:
            self._fade_timer.cancel()
            self._fade_timer = None

    # --------------- Observers ---------------
    @property
    def state(self) -> UIState:
        return UIState(
            loading=self.loading,
            message=self._message,
            message_type=self._message_type,
            visible=self._visible,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener` for state snapshots; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("UI state listener failed")


__all__ = [
    "LoopScheduler",
    "MessagePhase",
    "MessageType",
    "Scheduler",
    "UIBroadcaster",
    "UIState",
]
