"""Callback registry announcing that persisted state changed."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from logging import getLogger

log = getLogger(__name__)

type ChangeCallback = Callable[[], Awaitable[None] | None]
type Unsubscribe = Callable[[], None]


class ChangeNotifier:
    """Tell subscribers to reload after a mutation; callbacks may be sync or async."""

    def __init__(self) -> None:
        self._subscribers: dict[int, ChangeCallback] = {}
        self._next_token = 0

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = callback

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def notify(self) -> None:
        # Callbacks may unsubscribe while we iterate.
        for callback in list(self._subscribers.values()):
            result = callback()
            if inspect.isawaitable(result):
                await result
        log.debug("Notified %d subscriber(s)", len(self._subscribers))
