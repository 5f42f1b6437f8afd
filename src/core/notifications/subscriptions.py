# src/core/notifications/subscriptions.py
"""
Реестр подписок клиентов на геолокацию специалистов.

Подписки хранятся в realtime-дереве:
    locations/{professional_id}/subscribers/{subscriber_id}
и в обратном индексе для выборки "кого я отслеживаю":
    subscriptions/{subscriber_id}/{professional_id}
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info
from src.core.errors import ErrorKind, LocationError
from src.core.notifications.service import (
    PushDispatcher,
    PushMessage,
    subscription_added_message,
    subscription_removed_message,
)
from src.core.realtime.store import RealtimeStore, subscriber_path, subscribers_path
from src.core.tracking.repository import LocationRepository
from src.core.users.checks import require_professional, require_user
from src.core.users.repository import UserRepository


def reverse_path(subscriber_id: str, professional_id: str | None = None) -> str:
    base = f"subscriptions/{subscriber_id}"
    return f"{base}/{professional_id}" if professional_id else base


class Subscription(BaseModel):
    """Подписка клиента на геолокацию специалиста."""

    subscriber_id: str
    professional_id: str
    created_at: datetime


class SubscribeResult(BaseModel):
    subscription: Subscription
    already_subscribed: bool = False


def _parse_created_at(value: Any) -> datetime:
    if isinstance(value, dict):
        value = value.get("created_at")
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return datetime.now(timezone.utc)


class SubscriptionRegistry:
    """
    Реестр подписок.

    Ошибки realtime-хранилища здесь не глушатся: наличие подписки
    определяет результат операции.
    """

    def __init__(
        self,
        store: RealtimeStore,
        users: UserRepository,
        locations: LocationRepository,
        dispatcher: PushDispatcher,
    ) -> None:
        self._store = store
        self._users = users
        self._locations = locations
        self._dispatcher = dispatcher

    async def subscribe(self, subscriber_id: str, professional_id: str) -> SubscribeResult:
        """
        Подписывает клиента. Повторная подписка не создаёт дубликат и не шлёт уведомление.

        Raises:
            LocationError: NOT_FOUND, ROLE_INVALID, TRACKING_DISABLED
        """
        await require_user(self._users, subscriber_id, entity="subscriber")
        professional = await require_professional(self._users, professional_id)

        location = await self._locations.get(professional_id)
        if location is None or not location.tracking_enabled:
            raise LocationError(
                ErrorKind.TRACKING_DISABLED,
                "Location tracking is not enabled for this professional",
                entity="professional",
                field="tracking_enabled",
            )

        existing = await self._store.read(subscriber_path(professional_id, subscriber_id))
        if existing is not None:
            return SubscribeResult(
                subscription=Subscription(
                    subscriber_id=subscriber_id,
                    professional_id=professional_id,
                    created_at=_parse_created_at(existing),
                ),
                already_subscribed=True,
            )

        created_at = datetime.now(timezone.utc)
        entry = {"subscriber_id": subscriber_id, "created_at": created_at.isoformat()}
        await self._store.batch_write({
            subscriber_path(professional_id, subscriber_id): entry,
            reverse_path(subscriber_id, professional_id): {
                "professional_id": professional_id,
                "created_at": created_at.isoformat(),
            },
        })

        await log_info(
            f"Подписка: {subscriber_id} -> {professional_id}",
            type_msg=TypeMsg.INFO,
        )
        await self._notify(
            subscription_added_message(subscriber_id, professional.language),
            professional_id,
        )

        return SubscribeResult(
            subscription=Subscription(
                subscriber_id=subscriber_id,
                professional_id=professional_id,
                created_at=created_at,
            )
        )

    async def unsubscribe(self, subscriber_id: str, professional_id: str) -> Subscription:
        """
        Отписывает клиента.

        Raises:
            LocationError: NOT_FOUND, SUBSCRIPTION_NOT_FOUND
        """
        await require_user(self._users, subscriber_id, entity="subscriber")
        professional = await require_user(self._users, professional_id, entity="professional")

        existing = await self._store.read(subscriber_path(professional_id, subscriber_id))
        if existing is None:
            raise LocationError(
                ErrorKind.SUBSCRIPTION_NOT_FOUND,
                "Subscription not found",
                entity="subscription",
            )

        await self._store.remove(subscriber_path(professional_id, subscriber_id))
        await self._store.remove(reverse_path(subscriber_id, professional_id))

        await log_info(
            f"Отписка: {subscriber_id} -> {professional_id}",
            type_msg=TypeMsg.INFO,
        )
        await self._notify(
            subscription_removed_message(subscriber_id, professional.language),
            professional_id,
        )

        return Subscription(
            subscriber_id=subscriber_id,
            professional_id=professional_id,
            created_at=_parse_created_at(existing),
        )

    async def list_subscribers(self, professional_id: str) -> list[Subscription]:
        """Подписчики специалиста, по времени подписки."""
        children = await self._store.read(subscribers_path(professional_id)) or {}
        subscriptions = [
            Subscription(
                subscriber_id=subscriber_id,
                professional_id=professional_id,
                created_at=_parse_created_at(value),
            )
            for subscriber_id, value in children.items()
        ]
        return sorted(subscriptions, key=lambda s: s.created_at)

    async def list_subscriptions(self, subscriber_id: str) -> list[Subscription]:
        """Специалисты, которых отслеживает клиент."""
        await require_user(self._users, subscriber_id, entity="subscriber")

        children = await self._store.read(reverse_path(subscriber_id)) or {}
        subscriptions = [
            Subscription(
                subscriber_id=subscriber_id,
                professional_id=professional_id,
                created_at=_parse_created_at(value),
            )
            for professional_id, value in children.items()
        ]
        return sorted(subscriptions, key=lambda s: s.created_at)

    async def _notify(self, message: PushMessage, recipient_id: str) -> None:
        """Уведомление специалиста: ошибка доставки не отменяет подписку."""
        try:
            await self._dispatcher.send(message, recipient_id)
        except Exception as e:
            await log_error(f"Ошибка push для {recipient_id}: {e}", exc_info=True)
