# tests/core/test_subscriptions.py
"""
Тесты реестра подписок на геолокацию.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from src.common.constants import NotificationType
from src.core.errors import ErrorKind, LocationError
from src.core.notifications.subscriptions import SubscriptionRegistry, reverse_path
from src.core.realtime.store import subscriber_path
from tests.fakes import FakeRealtimeStore, InMemoryLocations, InMemoryUsers

ORIGIN = (37.7749, -122.4194)


@pytest.fixture
def registry(
    realtime_store: FakeRealtimeStore,
    users_repo: InMemoryUsers,
    locations_repo: InMemoryLocations,
    mock_dispatcher: AsyncMock,
) -> SubscriptionRegistry:
    locations_repo.put("pro-1", *ORIGIN)
    return SubscriptionRegistry(realtime_store, users_repo, locations_repo, mock_dispatcher)


class TestSubscribe:
    """Тесты подписки."""

    @pytest.mark.asyncio
    async def test_subscribe_writes_both_paths(
        self, registry: SubscriptionRegistry, realtime_store: FakeRealtimeStore
    ) -> None:
        result = await registry.subscribe("cust-1", "pro-1")

        assert result.already_subscribed is False
        assert result.subscription.professional_id == "pro-1"
        assert realtime_store.data[subscriber_path("pro-1", "cust-1")]["subscriber_id"] == "cust-1"
        assert realtime_store.data[reverse_path("cust-1", "pro-1")]["professional_id"] == "pro-1"
        # Обе записи пишутся одной пакетной операцией
        assert len(realtime_store.batches) == 1

    @pytest.mark.asyncio
    async def test_subscribe_notifies_professional(
        self, registry: SubscriptionRegistry, mock_dispatcher: AsyncMock
    ) -> None:
        await registry.subscribe("cust-1", "pro-1")

        message, recipient = mock_dispatcher.send.call_args.args
        assert recipient == "pro-1"
        assert message.type is NotificationType.SUBSCRIPTION_ADDED
        assert message.action_params == {"subscriber_id": "cust-1"}

    @pytest.mark.asyncio
    async def test_subscribe_twice_is_idempotent(
        self, registry: SubscriptionRegistry, mock_dispatcher: AsyncMock
    ) -> None:
        first = await registry.subscribe("cust-1", "pro-1")
        second = await registry.subscribe("cust-1", "pro-1")

        assert second.already_subscribed is True
        assert second.subscription.created_at == first.subscription.created_at
        assert mock_dispatcher.send.await_count == 1
        assert len(await registry.list_subscribers("pro-1")) == 1

    @pytest.mark.asyncio
    async def test_tracking_disabled(
        self, registry: SubscriptionRegistry, locations_repo: InMemoryLocations
    ) -> None:
        locations_repo.put("pro-1", *ORIGIN, tracking_enabled=False)

        with pytest.raises(LocationError) as exc_info:
            await registry.subscribe("cust-1", "pro-1")

        assert exc_info.value.kind is ErrorKind.TRACKING_DISABLED

    @pytest.mark.asyncio
    async def test_no_location_record(self, registry: SubscriptionRegistry) -> None:
        with pytest.raises(LocationError) as exc_info:
            await registry.subscribe("cust-1", "pro-2")

        assert exc_info.value.kind is ErrorKind.TRACKING_DISABLED

    @pytest.mark.asyncio
    async def test_target_not_professional(self, registry: SubscriptionRegistry) -> None:
        with pytest.raises(LocationError) as exc_info:
            await registry.subscribe("cust-1", "cust-2")

        assert exc_info.value.kind is ErrorKind.ROLE_INVALID

    @pytest.mark.asyncio
    async def test_unknown_subscriber(self, registry: SubscriptionRegistry) -> None:
        with pytest.raises(LocationError) as exc_info:
            await registry.subscribe("ghost", "pro-1")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert exc_info.value.entity == "subscriber"

    @pytest.mark.asyncio
    async def test_push_failure_keeps_subscription(
        self, registry: SubscriptionRegistry, mock_dispatcher: AsyncMock
    ) -> None:
        mock_dispatcher.send.side_effect = RuntimeError("broker down")

        result = await registry.subscribe("cust-1", "pro-1")

        assert result.already_subscribed is False
        assert len(await registry.list_subscribers("pro-1")) == 1


class TestUnsubscribe:
    """Тесты отписки."""

    @pytest.mark.asyncio
    async def test_unsubscribe_removes_both_paths(
        self, registry: SubscriptionRegistry, realtime_store: FakeRealtimeStore, mock_dispatcher: AsyncMock
    ) -> None:
        await registry.subscribe("cust-1", "pro-1")

        subscription = await registry.unsubscribe("cust-1", "pro-1")

        assert subscription.subscriber_id == "cust-1"
        assert realtime_store.paths("locations/pro-1/subscribers") == []
        assert realtime_store.paths("subscriptions/cust-1") == []
        message = mock_dispatcher.send.call_args.args[0]
        assert message.type is NotificationType.SUBSCRIPTION_REMOVED

    @pytest.mark.asyncio
    async def test_unsubscribe_twice(self, registry: SubscriptionRegistry) -> None:
        await registry.subscribe("cust-1", "pro-1")
        await registry.unsubscribe("cust-1", "pro-1")

        with pytest.raises(LocationError) as exc_info:
            await registry.unsubscribe("cust-1", "pro-1")

        assert exc_info.value.kind is ErrorKind.SUBSCRIPTION_NOT_FOUND

    @pytest.mark.asyncio
    async def test_unsubscribe_after_tracking_disabled(
        self, registry: SubscriptionRegistry, locations_repo: InMemoryLocations
    ) -> None:
        """Отписка не требует включённого трекинга."""
        await registry.subscribe("cust-1", "pro-1")
        locations_repo.put("pro-1", *ORIGIN, tracking_enabled=False)

        await registry.unsubscribe("cust-1", "pro-1")

    @pytest.mark.asyncio
    async def test_unknown_professional(self, registry: SubscriptionRegistry) -> None:
        with pytest.raises(LocationError) as exc_info:
            await registry.unsubscribe("cust-1", "ghost")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert exc_info.value.entity == "professional"


class TestListing:
    """Тесты выборок подписок."""

    @pytest.mark.asyncio
    async def test_list_subscribers(self, registry: SubscriptionRegistry) -> None:
        await registry.subscribe("cust-1", "pro-1")
        await registry.subscribe("cust-2", "pro-1")

        subscribers = await registry.list_subscribers("pro-1")

        assert [s.subscriber_id for s in subscribers] == ["cust-1", "cust-2"]

    @pytest.mark.asyncio
    async def test_list_subscribers_empty(self, registry: SubscriptionRegistry) -> None:
        assert await registry.list_subscribers("pro-2") == []

    @pytest.mark.asyncio
    async def test_list_subscriptions(
        self, registry: SubscriptionRegistry, locations_repo: InMemoryLocations
    ) -> None:
        locations_repo.put("pro-2", *ORIGIN)
        await registry.subscribe("cust-1", "pro-1")
        await registry.subscribe("cust-1", "pro-2")

        subscriptions = await registry.list_subscriptions("cust-1")

        assert {s.professional_id for s in subscriptions} == {"pro-1", "pro-2"}

    @pytest.mark.asyncio
    async def test_list_subscriptions_unknown_user(self, registry: SubscriptionRegistry) -> None:
        with pytest.raises(LocationError) as exc_info:
            await registry.list_subscriptions("ghost")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND
