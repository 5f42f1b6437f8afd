# src/core/realtime/store.py
"""
Realtime-хранилище: дерево путей вида "locations/{id}/current".

Redis-реализация раскладывает путь a/b/c в хеш "a/b" с полем "c" (значение: JSON)
и публикует каждое изменение в pub/sub канал родителя, чтобы live-клиенты
получали обновления без опроса.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Protocol, runtime_checkable
from uuid import uuid4

from src.infra.redis_client import RedisClient


# =============================================================================
# ПУТИ ДЕРЕВА
# =============================================================================

def current_path(professional_id: str) -> str:
    return f"locations/{professional_id}/current"


def entry_key(ts_ms: int) -> str:
    """
    Ключ записи в history-stream и notifications: метка времени в мс и случайный суффикс.
    Записи одной миллисекунды не перезаписывают друг друга, порядок по времени сохраняется.
    """
    return f"{ts_ms:013d}-{uuid4().hex[:8]}"


def history_stream_path(professional_id: str, key: int | str) -> str:
    return f"locations/{professional_id}/history-stream/{key}"


def subscribers_path(professional_id: str) -> str:
    return f"locations/{professional_id}/subscribers"


def subscriber_path(professional_id: str, subscriber_id: str) -> str:
    return f"{subscribers_path(professional_id)}/{subscriber_id}"


def notification_path(subscriber_id: str, key: int | str) -> str:
    return f"notifications/{subscriber_id}/{key}"


def split_path(path: str) -> tuple[str, str]:
    """Делит путь на (родитель, лист). Путь должен содержать хотя бы два сегмента."""
    parent, sep, leaf = path.strip("/").rpartition("/")
    if not sep or not parent or not leaf:
        raise ValueError(f"Некорректный путь realtime-дерева: {path!r}")
    return parent, leaf


# =============================================================================
# КОНТРАКТ
# =============================================================================

@runtime_checkable
class RealtimeStore(Protocol):
    """Минимальный контракт realtime-хранилища."""

    async def write(self, path: str, value: Any) -> None: ...

    async def read(self, path: str) -> Any | None: ...

    async def remove(self, path: str) -> None: ...

    async def batch_write(self, updates: Mapping[str, Any]) -> None: ...


# =============================================================================
# REDIS РЕАЛИЗАЦИЯ
# =============================================================================

class RedisRealtimeStore:
    """Realtime-дерево поверх хешей Redis с публикацией изменений."""

    def __init__(self, redis: RedisClient, channel_prefix: str = "realtime") -> None:
        """
        Args:
            redis: Клиент Redis (Dependency Injection)
            channel_prefix: Префикс pub/sub каналов
        """
        self._redis = redis
        self._channel_prefix = channel_prefix

    def _channel(self, parent: str) -> str:
        return f"{self._channel_prefix}:{parent}"

    async def _notify(self, parent: str, leaf: str, op: str, value: Any = None) -> None:
        await self._redis.publish(
            self._channel(parent),
            {"op": op, "path": f"{parent}/{leaf}", "value": value},
        )

    async def write(self, path: str, value: Any) -> None:
        parent, leaf = split_path(path)
        await self._redis.hset(parent, leaf, json.dumps(value, ensure_ascii=False, default=str))
        await self._notify(parent, leaf, "write", value)

    async def read(self, path: str) -> Any | None:
        """
        Значение листа или словарь дочерних узлов.

        Returns:
            Значение, dict {ключ: значение} для узла-контейнера, либо None
        """
        clean = path.strip("/")
        if "/" in clean:
            parent, leaf = split_path(clean)
            raw = await self._redis.hget(parent, leaf)
            if raw is not None:
                return json.loads(raw)

        children = await self._redis.hgetall(clean)
        if not children:
            return None
        return {key: json.loads(raw) for key, raw in children.items()}

    async def remove(self, path: str) -> None:
        """Удаляет лист и всех его прямых потомков."""
        clean = path.strip("/")
        parent, leaf = split_path(clean)
        await self._redis.hdel(parent, leaf)
        await self._redis.delete(clean)
        await self._notify(parent, leaf, "remove")

    async def batch_write(self, updates: Mapping[str, Any]) -> None:
        """Атомарная запись нескольких путей (одна транзакция MULTI/EXEC)."""
        if not updates:
            return

        items = []
        for path, value in updates.items():
            parent, leaf = split_path(path)
            items.append((parent, leaf, json.dumps(value, ensure_ascii=False, default=str)))

        await self._redis.hset_many(items)
        for path, value in updates.items():
            parent, leaf = split_path(path)
            await self._notify(parent, leaf, "write", value)
