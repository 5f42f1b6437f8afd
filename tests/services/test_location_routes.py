# tests/services/test_location_routes.py
"""
Тесты HTTP API сервиса геолокации.
Приложение поднимается без lifespan: контейнер собирается на моках и in-memory двойниках.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from src.core.geo.service import GeoService
from src.core.matching.cache import NearbyQueryCache
from src.core.matching.proximity import ProximityIndex
from src.core.notifications.fanout import FanoutNotifier
from src.core.notifications.subscriptions import SubscriptionRegistry
from src.core.tracking.service import LocationService
from src.services.location_service.app import app
from src.services.location_service.dependencies import LocationContainer, set_container
from tests.fakes import FakeRealtimeStore, InMemoryLocations, InMemoryUsers

PRO = {"X-User-Id": "pro-1"}
CUSTOMER = {"X-User-Id": "cust-1"}
SF = {"latitude": 37.7749, "longitude": -122.4194}


def _geocoder(request: httpx.Request) -> httpx.Response:
    if request.url.params["latlng"].startswith("0.0"):
        return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})
    return httpx.Response(200, json={
        "status": "OK",
        "results": [{"formatted_address": "1 Market St, San Francisco, CA"}],
    })


@pytest.fixture
def container(
    mock_db: AsyncMock,
    mock_redis: AsyncMock,
    mock_event_bus: AsyncMock,
    mock_dispatcher: AsyncMock,
    users_repo: InMemoryUsers,
    locations_repo: InMemoryLocations,
    realtime_store: FakeRealtimeStore,
):
    geo = GeoService(
        api_key="test_key",
        client=httpx.AsyncClient(transport=httpx.MockTransport(_geocoder)),
    )
    c = LocationContainer(
        mock_db, mock_redis, mock_event_bus,
        store=realtime_store, dispatcher=mock_dispatcher, geo=geo,
    )

    # Репозитории на БД заменяются in-memory двойниками
    c.users = users_repo
    c.locations = locations_repo
    c.location_service = LocationService(locations_repo, users_repo, c.bridge, history_default_limit=50)
    c.proximity = ProximityIndex(locations_repo, users_repo, max_radius_m=100000)
    c.nearby_cache = NearbyQueryCache(c.proximity, mock_redis, ttl=60)
    c.registry = SubscriptionRegistry(realtime_store, users_repo, locations_repo, mock_dispatcher)
    c.fanout = FanoutNotifier(c.registry, c.bridge, mock_dispatcher, users_repo)

    set_container(c)
    yield c
    set_container(None)


@pytest.fixture
def client(container: LocationContainer) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)


def _go_online(client: TestClient, headers: dict = PRO) -> None:
    assert client.post("/api/v1/location/update", json=SF, headers=headers).status_code == 200
    assert client.post("/api/v1/location/tracking", json={"enabled": True}, headers=headers).status_code == 200
    assert client.post("/api/v1/location/status", json={"status": "available"}, headers=headers).status_code == 200


class TestCallerIdentity:
    """Тесты идентификации вызывающего."""

    def test_missing_header(self, client: TestClient) -> None:
        response = client.post("/api/v1/location/update", json=SF)

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_customer_cannot_update(self, client: TestClient) -> None:
        response = client.post("/api/v1/location/update", json=SF, headers=CUSTOMER)

        assert response.status_code == 403
        assert response.json()["error_code"] == "ROLE_INVALID"

    def test_unknown_user(self, client: TestClient) -> None:
        response = client.post("/api/v1/location/update", json=SF, headers={"X-User-Id": "ghost"})

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"


class TestWriteEndpoints:
    """Тесты записи геолокации, статуса и настроек."""

    def test_update_location(self, client: TestClient, locations_repo: InMemoryLocations) -> None:
        response = client.post(
            "/api/v1/location/update",
            json={**SF, "accuracy": 5.0, "speed": 1.2},
            headers=PRO,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["professional_id"] == "pro-1"
        assert body["current"]["accuracy"] == 5.0
        assert body["history_size"] == 0
        assert "pro-1" in locations_repo.records

    def test_invalid_latitude(self, client: TestClient) -> None:
        response = client.post("/api/v1/location/update", json={"latitude": 91.0, "longitude": 0.0}, headers=PRO)

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"]["field"] == "latitude"

    def test_malformed_body(self, client: TestClient) -> None:
        response = client.post("/api/v1/location/update", json={"latitude": "north"}, headers=PRO)

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_non_finite_accuracy(self, client: TestClient, locations_repo: InMemoryLocations) -> None:
        response = client.post(
            "/api/v1/location/update",
            content='{"latitude": 0.0, "longitude": 0.0, "accuracy": Infinity}',
            headers={**PRO, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"]["field"] == "accuracy"
        assert "pro-1" not in locations_repo.records

    def test_status_without_record(self, client: TestClient) -> None:
        response = client.post("/api/v1/location/status", json={"status": "busy"}, headers=PRO)

        assert response.status_code == 404
        assert response.json()["error_code"] == "LOCATION_NOT_INITIALIZED"

    def test_status_invalid_value(self, client: TestClient) -> None:
        client.post("/api/v1/location/update", json=SF, headers=PRO)

        response = client.post("/api/v1/location/status", json={"status": "sleeping"}, headers=PRO)

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "status"

    def test_status_sets_availability(self, client: TestClient, users_repo: InMemoryUsers) -> None:
        _go_online(client)

        assert users_repo.users["pro-1"].is_available is True

    def test_tracking_off_forces_offline(self, client: TestClient, users_repo: InMemoryUsers) -> None:
        _go_online(client)

        response = client.post("/api/v1/location/tracking", json={"enabled": False}, headers=PRO)

        assert response.status_code == 200
        assert response.json()["status"] == "offline"
        assert response.json()["tracking_enabled"] is False
        assert users_repo.users["pro-1"].is_available is False

    def test_settings_partial_merge(self, client: TestClient) -> None:
        client.post("/api/v1/location/update", json=SF, headers=PRO)

        response = client.post("/api/v1/location/settings", json={"max_history_items": 5}, headers=PRO)

        assert response.status_code == 200
        settings = response.json()["settings"]
        assert settings["max_history_items"] == 5
        assert settings["update_interval_ms"] > 0

    def test_settings_negative_limit(self, client: TestClient) -> None:
        client.post("/api/v1/location/update", json=SF, headers=PRO)

        response = client.post("/api/v1/location/settings", json={"max_history_items": -1}, headers=PRO)

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"


class TestReadEndpoints:
    """Тесты чтения геолокации и истории."""

    def test_get_location(self, client: TestClient) -> None:
        client.post("/api/v1/location/update", json=SF, headers=PRO)

        response = client.get("/api/v1/location/professional/pro-1")

        assert response.status_code == 200
        body = response.json()
        assert body["current"]["latitude"] == 37.7749
        assert body["professional"]["id"] == "pro-1"

    def test_get_location_missing(self, client: TestClient) -> None:
        response = client.get("/api/v1/location/professional/pro-2")

        assert response.status_code == 404
        assert response.json()["message"] == "Location not found for this professional"

    def test_history_newest_first(self, client: TestClient) -> None:
        for lat in (1.0, 2.0, 3.0):
            client.post("/api/v1/location/update", json={"latitude": lat, "longitude": 0.0}, headers=PRO)

        response = client.get("/api/v1/location/professional/pro-1/history", params={"limit": 1})

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["history"][0]["latitude"] == 3.0

    def test_history_empty(self, client: TestClient) -> None:
        client.post("/api/v1/location/update", json=SF, headers=PRO)

        response = client.get("/api/v1/location/professional/pro-1/history")

        assert response.status_code == 404
        assert response.json()["error_code"] == "LOCATION_HISTORY_EMPTY"

    def test_history_bad_limit(self, client: TestClient) -> None:
        response = client.get("/api/v1/location/professional/pro-1/history", params={"limit": 0})

        assert response.status_code == 400


class TestNearby:
    """Тесты поиска ближайших."""

    def test_nearby_available(self, client: TestClient, mock_redis: AsyncMock) -> None:
        _go_online(client)
        _go_online(client, {"X-User-Id": "pro-2"})

        response = client.get("/api/v1/location/nearby", params={**SF, "radius": 1000})

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert {r["professional_id"] for r in body["results"]} == {"pro-1", "pro-2"}
        mock_redis.set_json.assert_awaited_once()

    def test_nearby_excludes_other_status(self, client: TestClient) -> None:
        _go_online(client)
        client.post("/api/v1/location/status", json={"status": "busy"}, headers=PRO)

        response = client.get("/api/v1/location/nearby", params=SF)

        assert response.json()["count"] == 0

    def test_nearby_radius_too_large(self, client: TestClient) -> None:
        response = client.get("/api/v1/location/nearby", params={**SF, "radius": 200000})

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "max_distance"

    def test_nearby_missing_latitude(self, client: TestClient) -> None:
        response = client.get("/api/v1/location/nearby", params={"longitude": 0.0})

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"


class TestSubscriptions:
    """Тесты подписок и рассылки."""

    def test_subscribe_requires_tracking(self, client: TestClient) -> None:
        client.post("/api/v1/location/update", json=SF, headers=PRO)

        response = client.post("/api/v1/location/subscribe/pro-1", headers=CUSTOMER)

        assert response.status_code == 400
        assert response.json()["error_code"] == "TRACKING_DISABLED"

    def test_subscribe_and_list(self, client: TestClient) -> None:
        _go_online(client)

        first = client.post("/api/v1/location/subscribe/pro-1", headers=CUSTOMER)
        second = client.post("/api/v1/location/subscribe/pro-1", headers=CUSTOMER)
        listing = client.get("/api/v1/location/subscriptions", headers=CUSTOMER)

        assert first.status_code == 200
        assert first.json()["already_subscribed"] is False
        assert second.json()["already_subscribed"] is True
        assert listing.json()["count"] == 1
        assert listing.json()["subscriptions"][0]["professional_id"] == "pro-1"

    def test_unsubscribe_twice(self, client: TestClient) -> None:
        _go_online(client)
        client.post("/api/v1/location/subscribe/pro-1", headers=CUSTOMER)

        first = client.post("/api/v1/location/unsubscribe/pro-1", headers=CUSTOMER)
        second = client.post("/api/v1/location/unsubscribe/pro-1", headers=CUSTOMER)

        assert first.status_code == 200
        assert second.status_code == 404
        assert second.json()["error_code"] == "SUBSCRIPTION_NOT_FOUND"

    def test_update_notifies_subscribers(self, client: TestClient, mock_dispatcher: AsyncMock) -> None:
        _go_online(client)
        client.post("/api/v1/location/subscribe/pro-1", headers=CUSTOMER)
        mock_dispatcher.send.reset_mock()

        response = client.post("/api/v1/location/update", json={"latitude": 1.0, "longitude": 2.0}, headers=PRO)

        assert response.status_code == 200
        message, recipient = mock_dispatcher.send.call_args.args
        assert recipient == "cust-1"
        assert message.action_params["location"]["latitude"] == 1.0

    def test_notify_subscribers(self, client: TestClient, mock_dispatcher: AsyncMock) -> None:
        _go_online(client)
        client.post("/api/v1/location/subscribe/pro-1", headers=CUSTOMER)
        client.post("/api/v1/location/subscribe/pro-1", headers={"X-User-Id": "cust-2"})
        mock_dispatcher.send.reset_mock()

        response = client.post("/api/v1/location/notify", json={"latitude": 1.0, "longitude": 2.0}, headers=PRO)

        assert response.status_code == 200
        assert response.json() == {"notified_count": 2, "subscriber_count": 2}
        assert mock_dispatcher.send.await_count == 2


class TestReverseGeocode:
    """Тесты обратного геокодирования."""

    def test_address_found(self, client: TestClient) -> None:
        response = client.get("/api/v1/location/geocode/reverse", params=SF)

        assert response.status_code == 200
        assert response.json()["address"] == "1 Market St, San Francisco, CA"

    def test_no_address(self, client: TestClient) -> None:
        response = client.get("/api/v1/location/geocode/reverse", params={"latitude": 0.0, "longitude": 0.0})

        assert response.status_code == 404

    def test_invalid_coordinates(self, client: TestClient) -> None:
        response = client.get("/api/v1/location/geocode/reverse", params={"latitude": 0.0, "longitude": 181.0})

        assert response.status_code == 400


class TestServiceEndpoints:
    """Тесты /health и /stats."""

    def test_health_degraded(self, client: TestClient, container: LocationContainer) -> None:
        container.db.health_check = AsyncMock(return_value=True)
        container.redis.health_check = AsyncMock(return_value=False)
        container.event_bus.health_check = AsyncMock(return_value=True)

        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["dependencies"]["redis"] == "unhealthy"

    def test_health_postgres_down(self, client: TestClient, container: LocationContainer) -> None:
        container.db.health_check = AsyncMock(return_value=False)
        container.redis.health_check = AsyncMock(return_value=True)
        container.event_bus.health_check = AsyncMock(return_value=True)

        assert client.get("/health").json()["status"] == "unhealthy"

    def test_stats(self, client: TestClient) -> None:
        _go_online(client)
        client.get("/api/v1/location/nearby", params=SF)

        response = client.get("/stats")

        assert response.status_code == 200
        body = response.json()
        assert body["professionals_by_status"]["available"] == 1
        assert body["cache"]["misses"] == 1
