from fnmatch import fnmatch

import pytest
from httpx import AsyncClient

from sms_api.core.cache import cache_manager


class FakeRedis:
    """In-memory stand-in for the handful of redis.asyncio calls the cache uses"""

    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value):
        self.store[key] = value
        return True

    async def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0

    async def scan_iter(self, match="*"):
        for key in list(self.store):
            if fnmatch(key, match):
                yield key

    async def ping(self):
        return True


@pytest.fixture
def fake_cache(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(cache_manager, "enabled", True)
    monkeypatch.setattr(cache_manager, "redis", fake)
    return fake


@pytest.mark.asyncio
async def test_count_students(client: AsyncClient, admin_headers, make_student):
    await make_student(grade_level=7)
    await make_student(grade_level=8)

    response = await client.get("/api/v1/students/count?grade_level=7", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"status": "success", "total": 1, "cached": False}
    assert response.headers["X-Total-Count"] == "1"
    assert response.headers["X-Cache"] == "MISS"


@pytest.mark.asyncio
async def test_head_count(client: AsyncClient, admin_headers, make_class):
    await make_class()

    response = await client.head("/api/v1/classes/count", headers=admin_headers)

    assert response.status_code == 204
    assert response.headers["X-Total-Count"] == "1"


@pytest.mark.asyncio
async def test_count_ignores_unknown_filters(client: AsyncClient, admin_headers, make_student):
    await make_student()

    response = await client.get("/api/v1/students/count?email=nobody@example.edu", headers=admin_headers)

    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_count_requires_auth(client: AsyncClient):
    response = await client.get("/api/v1/students/count")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_count_served_from_cache(client: AsyncClient, admin_headers, make_teacher, fake_cache):
    await make_teacher()

    first = await client.get("/api/v1/teachers/count", headers=admin_headers)
    await make_teacher()
    second = await client.get("/api/v1/teachers/count", headers=admin_headers)

    assert first.headers["X-Cache"] == "MISS"
    assert second.headers["X-Cache"] == "HIT"
    assert second.json()["total"] == 1
    assert "Teacher:" in fake_cache.store


@pytest.mark.asyncio
async def test_create_invalidates_count_cache(client: AsyncClient, admin_headers, fake_cache):
    await client.get("/api/v1/teachers/count", headers=admin_headers)

    await client.post(
        "/api/v1/teachers",
        json={"first_name": "Ada", "last_name": "Byron", "email": "ada@example.edu", "sex": "FEMALE"},
        headers=admin_headers,
    )
    response = await client.get("/api/v1/teachers/count", headers=admin_headers)

    assert response.headers["X-Cache"] == "MISS"
    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_cache_health(client: AsyncClient, fake_cache):
    response = await client.get("/api/v1/cache/health")

    assert response.json()["data"] == {"enabled": True, "available": True}


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_health_full(client: AsyncClient):
    response = await client.get("/health/full")

    body = response.json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"] is True
    assert body["checks"]["cache"] == {"enabled": False, "available": False}


@pytest.mark.asyncio
async def test_process_time_header(client: AsyncClient):
    response = await client.get("/health")

    assert "X-Process-Time" in response.headers


@pytest.mark.asyncio
async def test_unknown_route(client: AsyncClient):
    response = await client.get("/api/v1/nothing-here")

    assert response.status_code == 404
    assert response.json() == {"status": "fail", "message": "Can't find /api/v1/nothing-here on this server!"}
