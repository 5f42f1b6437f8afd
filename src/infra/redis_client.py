# src/infra/redis_client.py
"""
Клиент Redis.
Используется как realtime-хранилище (хеши + pub/sub) и как TTL-кэш поиска.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

import redis.asyncio as redis

from src.common.logger import get_logger, log_error, log_info
from src.common.constants import TypeMsg

logger = get_logger("redis")


class RedisClient:
    """
    Асинхронный клиент Redis (Singleton).
    Все ключи и каналы получают префикс namespace.
    """

    _instance: RedisClient | None = None
    _client: redis.Redis | None = None

    def __new__(cls) -> RedisClient:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._client = None
        self._namespace = "fieldpro"

    @property
    def client(self) -> redis.Redis:
        """Возвращает клиент Redis."""
        if self._client is None:
            raise RuntimeError("Redis клиент не инициализирован. Вызовите connect() сначала.")
        return self._client

    def _make_key(self, key: str) -> str:
        """Добавляет namespace к ключу."""
        return f"{self._namespace}:{key}"

    async def connect(
        self,
        url: str | None = None,
        max_connections: int = 50,
        namespace: str | None = None,
    ) -> None:
        """
        Подключается к Redis и проверяет соединение через PING.

        Args:
            url: URL Redis (если None, берётся из конфига)
            max_connections: Максимальное количество соединений
            namespace: Префикс ключей
        """
        if self._client is not None:
            return

        if url is None:
            from src.config import settings
            url = settings.redis.url
            max_connections = settings.redis.REDIS_MAX_CONNECTIONS
            namespace = namespace or settings.redis.REDIS_NAMESPACE

        if namespace:
            self._namespace = namespace

        await log_info("Подключение к Redis...", type_msg=TypeMsg.INFO)

        self._client = redis.from_url(
            url,
            max_connections=max_connections,
            decode_responses=True,
        )
        await self._client.ping()

        await log_info("Подключение к Redis установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает соединение с Redis."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            await log_info("Соединение с Redis закрыто", type_msg=TypeMsg.INFO)

    # =========================================================================
    # БАЗОВЫЕ ОПЕРАЦИИ
    # =========================================================================

    async def get(self, key: str) -> str | None:
        return await self.client.get(self._make_key(key))

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """
        Устанавливает значение.

        Args:
            key: Ключ
            value: Значение
            ttl: Время жизни в секундах
        """
        return await self.client.set(self._make_key(key), value, ex=ttl)

    async def delete(self, *keys: str) -> int:
        """Удаляет ключи, возвращает количество удалённых."""
        return await self.client.delete(*(self._make_key(k) for k in keys))

    # =========================================================================
    # JSON ОПЕРАЦИИ
    # =========================================================================

    async def get_json(self, key: str) -> dict | list | None:
        """Получает и парсит JSON. Битое значение считается отсутствующим."""
        data = await self.get(key)
        if data is None:
            return None

        try:
            return json.loads(data)
        except json.JSONDecodeError:
            return None

    async def set_json(self, key: str, data: dict | list, ttl: int | None = None) -> bool:
        """Сериализует и сохраняет JSON."""
        return await self.set(key, json.dumps(data, ensure_ascii=False), ttl=ttl)

    # =========================================================================
    # HASH ОПЕРАЦИИ
    # =========================================================================

    async def hget(self, name: str, key: str) -> str | None:
        return await self.client.hget(self._make_key(name), key)

    async def hset(self, name: str, key: str, value: str) -> int:
        return await self.client.hset(self._make_key(name), key, value)

    async def hgetall(self, name: str) -> dict[str, str]:
        return await self.client.hgetall(self._make_key(name))

    async def hdel(self, name: str, *keys: str) -> int:
        return await self.client.hdel(self._make_key(name), *keys)

    async def hset_many(self, items: Iterable[tuple[str, str, str]]) -> None:
        """
        Записывает несколько полей в разные хеши одной транзакцией (MULTI/EXEC).

        Args:
            items: Тройки (имя хеша, поле, значение)
        """
        async with self.client.pipeline(transaction=True) as pipe:
            for name, key, value in items:
                pipe.hset(self._make_key(name), key, value)
            await pipe.execute()

    # =========================================================================
    # PUB/SUB
    # =========================================================================

    async def publish(self, channel: str, message: dict[str, Any]) -> int:
        """Публикует JSON-сообщение в канал, возвращает число получателей."""
        return await self.client.publish(
            self._make_key(channel),
            json.dumps(message, ensure_ascii=False),
        )

    # =========================================================================
    # HEALTH CHECK
    # =========================================================================

    async def health_check(self) -> bool:
        """True, если Redis отвечает на PING."""
        try:
            return await self.client.ping()
        except Exception as e:
            await log_error(f"Health check Redis failed: {e}")
            return False


def get_redis() -> RedisClient:
    """Возвращает глобальный экземпляр RedisClient."""
    return RedisClient()


async def init_redis() -> RedisClient:
    """Подключается к Redis по настройкам из конфигурации."""
    from src.config import settings

    redis_client = get_redis()
    await redis_client.connect(
        url=settings.redis.url,
        max_connections=settings.redis.REDIS_MAX_CONNECTIONS,
        namespace=settings.redis.REDIS_NAMESPACE,
    )
    await log_info(
        f"Redis подключён: {settings.redis.REDIS_HOST}:"
        f"{settings.redis.REDIS_PORT}/{settings.redis.REDIS_DB}",
        type_msg=TypeMsg.INFO,
    )
    return redis_client


async def close_redis() -> None:
    """Закрывает подключение к Redis."""
    redis_client = get_redis()
    await redis_client.disconnect()
    await log_info("Redis отключён", type_msg=TypeMsg.INFO)
