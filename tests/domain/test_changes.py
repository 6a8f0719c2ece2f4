from __future__ import annotations

from furnitrack.domain.changes import ChangeNotifier


async def test_notify_calls_sync_and_async_subscribers() -> None:
    notifier = ChangeNotifier()
    calls: list[str] = []

    async def reload_async() -> None:
        calls.append("async")

    notifier.subscribe(lambda: calls.append("sync"))
    notifier.subscribe(reload_async)

    await notifier.notify()

    assert calls == ["sync", "async"]


async def test_unsubscribe_stops_notifications_and_is_idempotent() -> None:
    notifier = ChangeNotifier()
    calls: list[int] = []
    unsubscribe = notifier.subscribe(lambda: calls.append(1))

    await notifier.notify()
    unsubscribe()
    unsubscribe()
    await notifier.notify()

    assert calls == [1]
    assert notifier.subscriber_count == 0


async def test_subscriber_may_unsubscribe_during_notify() -> None:
    notifier = ChangeNotifier()
    calls: list[str] = []

    def once() -> None:
        calls.append("once")
        unsubscribe_once()

    unsubscribe_once = notifier.subscribe(once)
    notifier.subscribe(lambda: calls.append("always"))

    await notifier.notify()
    await notifier.notify()

    assert calls == ["once", "always", "always"]
