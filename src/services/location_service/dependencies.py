# src/services/location_service/dependencies.py
"""
Корень композиции сервиса геолокации.
Здесь, и только здесь, живут синглтоны собранных компонентов.
"""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status

from src.config import settings
from src.core.geo.service import GeoService
from src.core.matching.cache import NearbyQueryCache
from src.core.matching.proximity import ProximityIndex
from src.core.notifications.fanout import FanoutNotifier
from src.core.notifications.service import EventBusPushDispatcher, PushDispatcher
from src.core.notifications.subscriptions import SubscriptionRegistry
from src.core.realtime.bridge import RealtimeBridge
from src.core.realtime.store import RealtimeStore, RedisRealtimeStore
from src.core.tracking.repository import LocationRepository
from src.core.tracking.service import LocationService
from src.core.users.repository import UserRepository
from src.infra.database import DatabaseManager
from src.infra.event_bus import EventBus
from src.infra.redis_client import RedisClient


class LocationContainer:
    """Собранные компоненты сервиса."""

    def __init__(
        self,
        db: DatabaseManager,
        redis: RedisClient,
        event_bus: EventBus,
        *,
        store: RealtimeStore | None = None,
        dispatcher: PushDispatcher | None = None,
        geo: GeoService | None = None,
    ) -> None:
        self.db = db
        self.redis = redis
        self.event_bus = event_bus

        self.users = UserRepository(db)
        self.locations = LocationRepository(db)
        self.store = store or RedisRealtimeStore(redis, settings.redis_ttl.REALTIME_CHANNEL_PREFIX)
        self.bridge = RealtimeBridge(self.store)
        self.dispatcher = dispatcher or EventBusPushDispatcher(event_bus)

        self.location_service = LocationService(
            self.locations,
            self.users,
            self.bridge,
            history_default_limit=settings.tracking.HISTORY_DEFAULT_LIMIT,
        )
        self.proximity = ProximityIndex(
            self.locations,
            self.users,
            max_radius_m=settings.tracking.NEARBY_MAX_RADIUS_M,
        )
        self.nearby_cache = NearbyQueryCache(
            self.proximity,
            redis,
            ttl=settings.redis_ttl.NEARBY_TTL,
            precision=settings.tracking.CACHE_COORD_PRECISION,
        )
        self.registry = SubscriptionRegistry(self.store, self.users, self.locations, self.dispatcher)
        self.fanout = FanoutNotifier(self.registry, self.bridge, self.dispatcher, self.users)
        self.geo = geo or GeoService()

    async def close(self) -> None:
        await self.geo.close()


_container: LocationContainer | None = None


def set_container(container: LocationContainer | None) -> None:
    global _container
    _container = container


def get_container() -> LocationContainer:
    if _container is None:
        raise RuntimeError("Service not initialized")
    return _container


# === ПРОВАЙДЕРЫ ДЛЯ Depends ===

def get_location_service() -> LocationService:
    return get_container().location_service


def get_nearby_cache() -> NearbyQueryCache:
    return get_container().nearby_cache


def get_registry() -> SubscriptionRegistry:
    return get_container().registry


def get_fanout() -> FanoutNotifier:
    return get_container().fanout


def get_geo_service() -> GeoService:
    return get_container().geo


# === ИДЕНТИФИКАЦИЯ ВЫЗЫВАЮЩЕГО ===

async def get_caller_id(x_user_id: str | None = Header(default=None, alias="X-User-Id")) -> str:
    """ID пользователя из заголовка, который проставляет шлюз авторизации."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id


async def require_professional_caller(
    caller_id: str = Depends(get_caller_id),
    service: LocationService = Depends(get_location_service),
) -> str:
    """Вызывающий должен быть специалистом (иначе NOT_FOUND / ROLE_INVALID)."""
    await service.require_professional(caller_id)
    return caller_id
