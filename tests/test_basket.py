"""
Tests for the basket endpoints on top of the optional cache.
"""

from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from conftest import FakePool, FakeRedis
from core import cache, db
from main import create_app

BASKET = {
    "id": "basket-7",
    "items": [
        {"product_id": 3, "product_name": "Compost", "unit_price": "0.35", "quantity": 40},
        {"product_id": 5, "product_name": "Neem Oil", "unit_price": "9.90", "quantity": 1},
    ],
}


@pytest.fixture
def redis_client() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def client(settings, store, monkeypatch, redis_client):
    async def create_pool(raw_url: str):
        return FakePool()

    monkeypatch.setattr(db, "create_pool", create_pool)
    monkeypatch.setattr(cache.aioredis, "from_url", lambda url, **kwargs: redis_client)

    app = create_app(replace(settings, redis_url="redis://cache:6379/0", basket_ttl_days=2))
    with TestClient(app) as c:
        yield c


class TestBasketWithCache:
    def test_health_reports_cache(self, client):
        assert client.get("/health").json()["cache"] == "available"

    def test_missing_basket_is_empty(self, client):
        resp = client.get("/basket/unknown")
        assert resp.status_code == 200
        assert resp.json() == {"id": "unknown", "items": []}

    def test_store_and_read_back(self, client, redis_client):
        saved = client.post("/basket", json=BASKET)
        assert saved.status_code == 200

        resp = client.get("/basket/basket-7")
        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] == "basket-7"
        assert [i["product_id"] for i in body["items"]] == [3, 5]
        assert redis_client.expiry["basket:basket-7"] == 2 * 24 * 60 * 60

    def test_delete(self, client, redis_client):
        client.post("/basket", json=BASKET)

        assert client.delete("/basket/basket-7").json() == {"ok": True}
        assert client.delete("/basket/basket-7").json() == {"ok": False}
        assert "basket:basket-7" not in redis_client.data

    def test_invalid_item_rejected(self, client):
        bad = {"id": "b", "items": [{"product_id": 1, "product_name": "x", "unit_price": "1", "quantity": 0}]}
        assert client.post("/basket", json=bad).status_code == 422

    def test_unreadable_value_reads_as_empty(self, client, redis_client):
        redis_client.data["basket:basket-7"] = '{"id": "basket-7", "items": [{"sku": 1}]}'

        resp = client.get("/basket/basket-7")

        assert resp.status_code == 200
        assert resp.json() == {"id": "basket-7", "items": []}

        assert client.post("/basket", json=BASKET).status_code == 200
        assert len(client.get("/basket/basket-7").json()["items"]) == 2

    def test_cache_error_at_request_time(self, client, redis_client):
        redis_client.op_error = RedisConnectionError("Connection reset by peer")

        resp = client.get("/basket/basket-7")

        assert resp.status_code == 503
        assert resp.json()["detail"] == "Cart storage is unreachable."

    def test_client_closed_on_shutdown(self, settings, store, monkeypatch, redis_client):
        async def create_pool(raw_url: str):
            return FakePool()

        monkeypatch.setattr(db, "create_pool", create_pool)
        monkeypatch.setattr(cache.aioredis, "from_url", lambda url, **kwargs: redis_client)

        with TestClient(create_app(replace(settings, redis_url="redis://cache:6379/0"))):
            assert redis_client.closed is False
        assert redis_client.closed is True


class TestBasketWithoutCache:
    @pytest.fixture
    def client(self, settings, store, monkeypatch):
        async def create_pool(raw_url: str):
            return FakePool()

        monkeypatch.setattr(db, "create_pool", create_pool)
        with TestClient(create_app(settings)) as c:
            yield c

    @pytest.mark.parametrize(
        "method,path",
        [("get", "/basket/b-1"), ("delete", "/basket/b-1")],
    )
    def test_disabled(self, client, method, path):
        resp = getattr(client, method)(path)
        assert resp.status_code == 503
        assert resp.json()["detail"] == "Cart functionality is disabled."

    def test_post_disabled(self, client):
        resp = client.post("/basket", json=BASKET)
        assert resp.status_code == 503

    def test_rest_of_api_still_works(self, client):
        assert client.get("/").status_code == 200
        assert client.get("/health").status_code == 200
