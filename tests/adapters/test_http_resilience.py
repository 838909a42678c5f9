from __future__ import annotations

import asyncio

import httpx

from userbridge.adapters.http_resilience import (
    RateLimit,
    ResilienceConfig,
    ResilientClient,
    RetryPolicy,
    build_retry,
)


def test_build_retry_never_retries_post() -> None:
    retry = build_retry(RetryPolicy(total=5, backoff_factor=0.1))

    methods = {str(method).upper() for method in retry.allowed_methods}
    assert retry.total == 5
    assert {"GET", "PUT", "DELETE"} <= methods
    assert "POST" not in methods
    assert 503 in retry.status_forcelist
    assert 409 not in retry.status_forcelist


def test_resilient_client_applies_base_url_headers_and_hooks() -> None:
    seen: list[httpx.Request] = []
    hooked: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    async def hook(response: httpx.Response) -> None:
        hooked.append(response.status_code)

    config = ResilienceConfig(
        name="test",
        base_url="https://api.test",
        default_headers={"X-Client": "userbridge"},
        response_hooks=(hook,),
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
    )

    async def run() -> httpx.Response:
        async with ResilientClient(config) as client:
            client._client = httpx.AsyncClient(  # noqa: SLF001
                base_url=config.base_url or "",
                headers=config.default_headers,
                event_hooks={"response": list(config.response_hooks)},
                transport=httpx.MockTransport(handler),
            )
            return await client.get("/ping", params={"q": "1"})

    response = asyncio.run(run())

    assert response.json() == {"ok": True}
    assert str(seen[0].url) == "https://api.test/ping?q=1"
    assert seen[0].headers["X-Client"] == "userbridge"
    assert hooked == [200]
