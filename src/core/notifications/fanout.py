# src/core/notifications/fanout.py
"""
Рассылка live-позиции специалиста его подписчикам.
Доставка best effort: без outbox и повторов, ошибки по получателю изолированы.
"""

from __future__ import annotations

from pydantic import BaseModel

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info
from src.core.notifications.service import PushDispatcher, PushMessage, location_update_message
from src.core.notifications.subscriptions import SubscriptionRegistry
from src.core.realtime.bridge import RealtimeBridge
from src.core.tracking.models import Position
from src.core.users.checks import require_professional
from src.core.users.repository import UserRepository


class FanoutResult(BaseModel):
    notified_count: int
    subscriber_count: int


class FanoutNotifier:
    """Рассылка уведомлений о смене позиции."""

    def __init__(
        self,
        registry: SubscriptionRegistry,
        bridge: RealtimeBridge,
        dispatcher: PushDispatcher,
        users: UserRepository,
    ) -> None:
        self._registry = registry
        self._bridge = bridge
        self._dispatcher = dispatcher
        self._users = users

    async def notify_subscribers(
        self,
        professional_id: str,
        position: Position,
        push_position: bool = True,
    ) -> FanoutResult:
        """
        Пишет позицию в realtime-дерево и рассылает push подписчикам.

        Один подписчик: прямая отправка. Несколько: одна пакетная запись
        уведомлений и параллельная отправка через send_many диспетчера.

        Args:
            push_position: False, если позиция уже зеркалирована записью в БД

        Returns:
            Число подписчиков, которым отправка удалась
        """
        professional = await require_professional(self._users, professional_id)
        position.validate_bounds()

        if push_position:
            await self._bridge.push_live_position(professional_id, position)

        subscriber_ids = [s.subscriber_id for s in await self._registry.list_subscribers(professional_id)]
        if not subscriber_ids:
            return FanoutResult(notified_count=0, subscriber_count=0)

        message = location_update_message(
            professional_id,
            professional.name,
            position.model_dump(mode="json", exclude_none=True),
        )

        if len(subscriber_ids) == 1:
            delivered = await self._send(message, subscriber_ids[0])
            return FanoutResult(notified_count=int(delivered), subscriber_count=1)

        await self._bridge.record_notifications(subscriber_ids, message.to_payload())

        try:
            results = await self._dispatcher.send_many(message, subscriber_ids)
        except Exception as e:
            await log_error(f"Ошибка пакетной рассылки подписчикам {professional_id}: {e}", exc_info=True)
            results = {}
        notified = sum(1 for sid in subscriber_ids if results.get(sid) is True)

        await log_info(
            f"Позиция {professional_id} разослана: {notified}/{len(subscriber_ids)}",
            type_msg=TypeMsg.INFO,
        )
        return FanoutResult(notified_count=notified, subscriber_count=len(subscriber_ids))

    async def notify_after_update(self, professional_id: str, position: Position) -> FanoutResult:
        """
        Рассылка после принятого update_location.
        Запись в БД уже состоялась, поэтому ошибки рассылки только логируются.
        """
        try:
            return await self.notify_subscribers(professional_id, position, push_position=False)
        except Exception as e:
            await log_error(f"Ошибка рассылки позиции {professional_id}: {e}", exc_info=True)
            return FanoutResult(notified_count=0, subscriber_count=0)

    async def _send(self, message: PushMessage, recipient_id: str) -> bool:
        try:
            return bool(await self._dispatcher.send(message, recipient_id))
        except Exception as e:
            await log_error(f"Ошибка push подписчику {recipient_id}: {e}", exc_info=True)
            return False
