# src/core/notifications/service.py
"""
Push-уведомления.
Сервис публикует запросы на доставку в шину событий;
токены устройств и доставку на платформы обслуживает внешний шлюз.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

from src.common.constants import NotificationType, TypeMsg
from src.common.localization import get_text
from src.common.logger import log_error, log_info
from src.infra.event_bus import DomainEvent, EventBus, EventTypes


@dataclass
class PushMessage:
    """Push-сообщение."""
    title: str
    message: str
    type: NotificationType
    action_params: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "action_params": self.action_params,
        }


class PushDispatcher(Protocol):
    """Контракт доставки push-уведомлений."""

    async def send(self, message: PushMessage, recipient_id: str) -> bool: ...

    async def send_many(self, message: PushMessage, recipient_ids: Iterable[str]) -> dict[str, bool]: ...


class EventBusPushDispatcher:
    """
    Доставка через шину событий.
    Каждый получатель: отдельное событие notification.push_requested.
    """

    def __init__(self, event_bus: EventBus) -> None:
        """
        Args:
            event_bus: Шина событий
        """
        self._event_bus = event_bus

    async def send(self, message: PushMessage, recipient_id: str) -> bool:
        """
        Returns:
            True если событие принято брокером
        """
        published = await self._event_bus.publish(DomainEvent(
            event_type=EventTypes.NOTIFICATION_PUSH_REQUESTED,
            payload={"recipient_id": recipient_id, **message.to_payload()},
        ))

        if published:
            await log_info(
                f"Push поставлен в очередь: recipient={recipient_id}, type={message.type.value}",
                type_msg=TypeMsg.DEBUG,
            )
        else:
            await log_error(f"Push не поставлен в очередь: recipient={recipient_id}, type={message.type.value}")
        return published

    async def send_many(self, message: PushMessage, recipient_ids: Iterable[str]) -> dict[str, bool]:
        """Параллельная отправка; ошибка одного получателя не мешает остальным."""
        ids = list(recipient_ids)
        results = await asyncio.gather(
            *(self.send(message, rid) for rid in ids),
            return_exceptions=True,
        )
        return {rid: result is True for rid, result in zip(ids, results)}


# =============================================================================
# ШАБЛОНЫ СООБЩЕНИЙ
# =============================================================================

def subscription_added_message(subscriber_id: str, language: str = "en") -> PushMessage:
    return PushMessage(
        title=get_text("SUBSCRIPTION_ADDED_TITLE", language),
        message=get_text("SUBSCRIPTION_ADDED_MESSAGE", language),
        type=NotificationType.SUBSCRIPTION_ADDED,
        action_params={"subscriber_id": subscriber_id},
    )


def subscription_removed_message(subscriber_id: str, language: str = "en") -> PushMessage:
    return PushMessage(
        title=get_text("SUBSCRIPTION_REMOVED_TITLE", language),
        message=get_text("SUBSCRIPTION_REMOVED_MESSAGE", language),
        type=NotificationType.SUBSCRIPTION_REMOVED,
        action_params={"subscriber_id": subscriber_id},
    )


def location_update_message(
    professional_id: str,
    professional_name: str | None,
    location: dict[str, Any],
    language: str = "en",
) -> PushMessage:
    name = professional_name or get_text("PROFESSIONAL_DEFAULT_NAME", language)
    return PushMessage(
        title=get_text("LOCATION_UPDATE_TITLE", language, name=name),
        message=get_text("LOCATION_UPDATE_MESSAGE", language),
        type=NotificationType.LOCATION_UPDATE,
        action_params={"professional_id": professional_id, "location": location},
    )
