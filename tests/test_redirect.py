"""Redirect and record lookup endpoint tests."""

import pytest
from httpx import AsyncClient

from conftest import T0

TWELVE_HOURS_MS = 12 * 60 * 60 * 1000


@pytest.mark.asyncio
async def test_redirect_valid_path(client: AsyncClient) -> None:
    await client.post("/api/urls", json={"url": "https://example.com/a", "shortPath": "te4t"})

    # httpx won't follow by default
    response = await client.get("/te4t", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "https://example.com/a"


@pytest.mark.asyncio
async def test_redirect_unknown_path(client: AsyncClient) -> None:
    response = await client.get("/zzzz", follow_redirects=False)
    assert response.status_code == 404
    assert response.text == "Link not found"


@pytest.mark.asyncio
async def test_redirect_malformed_path(client: AsyncClient) -> None:
    response = await client.get("/nonexistent", follow_redirects=False)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_redirect_expired_path(client: AsyncClient, clock) -> None:
    await client.post(
        "/api/urls",
        json={"url": "https://example.com/a", "shortPath": "gone", "expiration": "12h"},
    )
    clock.advance(TWELVE_HOURS_MS + 1)

    response = await client.get("/gone", follow_redirects=False)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_record(client: AsyncClient) -> None:
    await client.post(
        "/api/urls",
        json={"url": "https://example.com/a", "shortPath": "te4t", "expiration": "7d"},
    )

    response = await client.get("/api/urls/te4t")
    assert response.status_code == 200
    assert response.json() == {
        "shortPath": "te4t",
        "originalUrl": "https://example.com/a",
        "createdAt": T0,
        "expiresAt": T0 + 604_800_000,
    }


@pytest.mark.asyncio
async def test_get_record_not_found(client: AsyncClient) -> None:
    response = await client.get("/api/urls/zzzz")
    assert response.status_code == 404
    assert response.json() == {"error": "URL not found"}


@pytest.mark.asyncio
async def test_get_record_store_unavailable(client: AsyncClient, store) -> None:
    store.available = False
    response = await client.get("/api/urls/zzzz")
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_exists(client: AsyncClient, clock) -> None:
    await client.post(
        "/api/urls",
        json={"url": "https://example.com/a", "shortPath": "here", "expiration": "12h"},
    )

    assert (await client.get("/api/urls/exists/here")).json() == {"exists": True}
    assert (await client.get("/api/urls/exists/nope")).json() == {"exists": False}

    clock.advance(TWELVE_HOURS_MS)
    assert (await client.get("/api/urls/exists/here")).json() == {"exists": False}
