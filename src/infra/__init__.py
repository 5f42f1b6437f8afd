# src/infra/__init__.py
"""
Инфраструктурный слой.
PostgreSQL (долговременное хранилище), Redis (realtime-дерево и кэш), RabbitMQ (push-запросы).
"""

from src.infra.database import DatabaseManager, get_db
from src.infra.redis_client import RedisClient, get_redis
from src.infra.event_bus import EventBus, DomainEvent, EventTypes, get_event_bus

__all__ = [
    "DatabaseManager",
    "get_db",
    "RedisClient",
    "get_redis",
    "EventBus",
    "DomainEvent",
    "EventTypes",
    "get_event_bus",
]
