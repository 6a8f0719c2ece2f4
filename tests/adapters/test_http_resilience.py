from __future__ import annotations

import httpx

from furnitrack.adapters.http_resilience import (
    RateLimit,
    ResilienceConfig,
    ResilientClient,
    RetryPolicy,
    build_retry,
)


def test_build_retry_copies_policy() -> None:
    policy = RetryPolicy(total=2, backoff_factor=1.5, status_forcelist=frozenset({429}))

    retry = build_retry(policy)

    assert retry.total == 2
    assert retry.backoff_factor == 1.5


async def test_client_applies_default_headers_and_limiter() -> None:
    seen: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    config = ResilienceConfig(
        name="test",
        base_url="https://remote.test/",
        default_headers={"Authorization": "Bearer token"},
        ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
    )
    client = ResilientClient(config)
    assert client._limiter is not None  # noqa: SLF001  # type: ignore[reportPrivateUsage]
    client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        base_url="https://remote.test/",
        headers=config.default_headers,
        transport=httpx.MockTransport(handler),
    )

    async with client:
        response = await client.patch("records", json={"a": 1})

    assert response.json() == {"ok": True}
    assert seen[0].method == "PATCH"
    assert str(seen[0].url) == "https://remote.test/records"
    assert seen[0].headers["Authorization"] == "Bearer token"
