"""
Notification Signal

A single-slot, auto-expiring user-facing message.

Every ``show`` bumps a generation counter and arms a timer for that
generation. A timer only clears the slot if its generation is still the
current one, so an old timer can never wipe a newer message.

Expiry is also checked on read against a monotonic deadline. The
Streamlit shell runs each action in a short-lived event loop, where
scheduled timers may never fire.
"""

import asyncio
import time
from typing import Callable, Optional


DEFAULT_SUCCESS_MESSAGE = "Alteração gravada com sucesso"


class NotificationSignal:
    """Holds at most one message at a time."""

    def __init__(
        self,
        ttl_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._message: Optional[str] = None
        self._deadline: float = 0.0
        self._generation = 0
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def message(self) -> Optional[str]:
        """The visible message, or None once it has expired or been cleared."""
        if self._message is not None and self._clock() >= self._deadline:
            self._message = None
        return self._message

    def show(self, message: str = DEFAULT_SUCCESS_MESSAGE) -> int:
        """
        Replace the current message and restart the expiry timer.

        Returns:
            The generation of this message
        """
        self._generation += 1
        self._message = message
        self._deadline = self._clock() + self._ttl

        self._cancel_timer()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the lazy check in ``message`` handles expiry
            return self._generation
        self._timer = loop.call_later(self._ttl, self._expire, self._generation)
        return self._generation

    def clear(self) -> None:
        """Remove the message immediately."""
        self._generation += 1
        self._message = None
        self._cancel_timer()

    def _expire(self, generation: int) -> None:
        if generation == self._generation:
            self._message = None
            self._timer = None

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
