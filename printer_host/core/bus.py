"""
Response Bus - multicast stream of lines received from the firmware.

Every active subscriber sees every line received after it subscribed, in
arrival order. Lines received before a subscription are not replayed.
"""

from __future__ import annotations

import asyncio
from typing import Callable, List, Optional

from .logger import log_critical


LineCallback = Callable[[str], None]
LinePredicate = Callable[[str], bool]


class Subscription:
    """Handle for one subscriber. unsubscribe() is safe from inside the callback."""

    def __init__(self, bus: ResponseBus, callback: LineCallback,
                 predicate: Optional[LinePredicate] = None):
        self._bus = bus
        self._callback = callback
        self._predicate = predicate
        self.active = True

    def deliver(self, line: str) -> None:
        if not self.active:
            return
        if self._predicate is not None and not self._predicate(line):
            return
        self._callback(line)

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._bus._remove(self)


class ResponseBus:
    """Publish/subscribe channel for incoming lines."""

    def __init__(self):
        self._subscribers: List[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: LineCallback,
                  predicate: Optional[LinePredicate] = None) -> Subscription:
        """Deliver subsequent lines (optionally filtered) to callback."""
        sub = Subscription(self, callback, predicate)
        self._subscribers.append(sub)
        return sub

    def publish(self, line: str) -> None:
        """Fan a line out to every subscriber active at the time of arrival."""
        for sub in list(self._subscribers):
            try:
                sub.deliver(line)
            except Exception as e:
                log_critical(f"Subscriber failed on line {line!r}: {e}")

    def wait_for(self, predicate: LinePredicate) -> asyncio.Future:
        """
        One-shot subscription.

        Returns a future resolved with the first matching line. The
        subscription removes itself on match, and also when the future is
        cancelled (e.g. by asyncio.wait_for timing out).
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def on_line(line: str) -> None:
            sub.unsubscribe()
            if not future.done():
                future.set_result(line)

        sub = self.subscribe(on_line, predicate)
        future.add_done_callback(lambda _: sub.unsubscribe())
        return future

    def _remove(self, sub: Subscription) -> None:
        try:
            self._subscribers.remove(sub)
        except ValueError:
            pass
