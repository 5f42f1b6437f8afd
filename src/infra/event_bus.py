# src/infra/event_bus.py
"""
Шина событий на базе RabbitMQ.
Сервис геолокации публикует в неё запросы на push-доставку;
доставку на устройства выполняет внешний шлюз уведомлений.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

import aio_pika
from aio_pika import Message, ExchangeType
from aio_pika.abc import AbstractConnection, AbstractChannel, AbstractExchange

from src.common.logger import get_logger, log_error, log_info
from src.common.constants import TypeMsg

logger = get_logger("event_bus")


# =============================================================================
# ДОМЕННЫЕ СОБЫТИЯ
# =============================================================================

def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class DomainEvent:
    """Доменное событие: тип служит routing key в topic exchange."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    event_type: str = ""
    timestamp: str = field(default_factory=_utc_now_iso)
    payload: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps({
            "event_id": self.event_id,
            "event_type": self.event_type,
            "timestamp": self.timestamp,
            "payload": self.payload,
        }, ensure_ascii=False, default=str)

    @classmethod
    def from_json(cls, data: str) -> DomainEvent:
        parsed = json.loads(data)
        return cls(
            event_id=parsed.get("event_id", str(uuid4())),
            event_type=parsed.get("event_type", ""),
            timestamp=parsed.get("timestamp", ""),
            payload=parsed.get("payload", {}),
        )


class EventTypes:
    """Константы типов событий."""
    NOTIFICATION_PUSH_REQUESTED = "notification.push_requested"


class EventBus:
    """
    Шина событий на базе RabbitMQ (Singleton).
    Соединение через connect_robust, exchange типа TOPIC.
    """

    _instance: EventBus | None = None
    _connection: AbstractConnection | None = None
    _channel: AbstractChannel | None = None
    _exchange: AbstractExchange | None = None

    def __new__(cls) -> EventBus:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._connection = None
        self._channel = None
        self._exchange = None
        self._exchange_name = "fieldpro.events"

    @property
    def is_connected(self) -> bool:
        """Проверяет, активно ли соединение."""
        return self._connection is not None and not self._connection.is_closed

    async def connect(
        self,
        url: str | None = None,
        exchange_name: str | None = None,
        prefetch_count: int = 10,
    ) -> None:
        """
        Подключается к RabbitMQ и объявляет exchange.

        Args:
            url: URL RabbitMQ (если None, берётся из конфига)
            exchange_name: Имя exchange
            prefetch_count: Количество сообщений для prefetch
        """
        if self.is_connected:
            return

        if url is None:
            from src.config import settings
            url = settings.rabbitmq.url
            exchange_name = settings.rabbitmq.RABBITMQ_EXCHANGE
            prefetch_count = settings.rabbitmq.RABBITMQ_PREFETCH_COUNT

        if exchange_name:
            self._exchange_name = exchange_name

        await log_info("Подключение к RabbitMQ...", type_msg=TypeMsg.INFO)

        self._connection = await aio_pika.connect_robust(url)
        self._channel = await self._connection.channel()
        await self._channel.set_qos(prefetch_count=prefetch_count)

        self._exchange = await self._channel.declare_exchange(
            self._exchange_name,
            ExchangeType.TOPIC,
            durable=True,
        )

        await log_info("Подключение к RabbitMQ установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает соединение с RabbitMQ."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self._channel = None
            self._exchange = None
            await log_info("Соединение с RabbitMQ закрыто", type_msg=TypeMsg.INFO)

    async def publish(self, event: DomainEvent) -> bool:
        """
        Публикует событие в exchange.

        Returns:
            True если брокер принял сообщение. Ошибки логируются, не пробрасываются.
        """
        if not self.is_connected or self._exchange is None:
            await log_error("Не удалось опубликовать событие: нет соединения с RabbitMQ")
            return False

        try:
            message = Message(
                body=event.to_json().encode(),
                content_type="application/json",
                message_id=event.event_id,
                timestamp=datetime.now(timezone.utc),
            )
            await self._exchange.publish(message, routing_key=event.event_type)
        except Exception as e:
            await log_error(f"Ошибка публикации события {event.event_type}: {e}")
            return False

        await log_info(f"Событие опубликовано: {event.event_type}", type_msg=TypeMsg.DEBUG)
        return True

    async def health_check(self) -> bool:
        return self.is_connected


# =============================================================================
# ГЛОБАЛЬНЫЙ ЭКЗЕМПЛЯР
# =============================================================================

_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Возвращает глобальный экземпляр EventBus."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


async def init_event_bus() -> EventBus:
    """Подключается к RabbitMQ по настройкам из конфигурации."""
    from src.config import settings

    event_bus = get_event_bus()
    await event_bus.connect(
        url=settings.rabbitmq.url,
        exchange_name=settings.rabbitmq.RABBITMQ_EXCHANGE,
        prefetch_count=settings.rabbitmq.RABBITMQ_PREFETCH_COUNT,
    )
    await log_info(
        f"RabbitMQ подключён: {settings.rabbitmq.RABBITMQ_HOST}:{settings.rabbitmq.RABBITMQ_PORT}",
        type_msg=TypeMsg.INFO,
    )
    return event_bus


async def close_event_bus() -> None:
    """Закрывает подключение к RabbitMQ."""
    event_bus = get_event_bus()
    await event_bus.disconnect()
    await log_info("RabbitMQ отключён", type_msg=TypeMsg.INFO)
