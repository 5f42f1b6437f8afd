# src/core/matching/cache.py
"""
TTL-кэш результатов поиска ближайших специалистов в Redis.
Записи устаревают только по TTL: обновление позиции кэш не сбрасывает.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from src.common.constants import ProfessionalStatus, TypeMsg
from src.common.logger import log_error, log_info
from src.core.matching.proximity import NearbyFilters, NearbyProfessional, ProximityIndex
from src.infra.redis_client import RedisClient

# Знаков после запятой у радиуса (м) в ключе кэша
RADIUS_KEY_DECIMALS = 3


@dataclass
class CacheStats:
    """Счётчики кэша."""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    errors: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


def _format_radius(max_distance_m: float) -> str:
    """Радиус с точностью до миллиметра, без хвостовых нулей: 1000 -> "1000", 1234.561 -> "1234.561"."""
    return f"{float(max_distance_m):.{RADIUS_KEY_DECIMALS}f}".rstrip("0").rstrip(".") or "0"


def make_nearby_key(
    latitude: float,
    longitude: float,
    max_distance_m: float,
    status_filter: str,
    filters: NearbyFilters | None = None,
    limit: int | None = None,
    precision: int = 4,
) -> str:
    """
    Канонический ключ запроса.

    Example:
        >>> make_nearby_key(37.77493, -122.41942, 1000, "available")
        "nearby:37.7749:-122.4194:1000:status:available"
    """
    parts: dict[str, str] = {"status": str(status_filter)}
    if filters is not None:
        if filters.services:
            parts["services"] = ",".join(sorted(filters.services))
        if filters.specialties:
            parts["specialties"] = ",".join(sorted(filters.specialties))
    if limit is not None:
        parts["limit"] = str(limit)

    filter_part = "|".join(f"{k}:{parts[k]}" for k in sorted(parts))
    return (
        f"nearby:{latitude:.{precision}f}:{longitude:.{precision}f}:"
        f"{_format_radius(max_distance_m)}:{filter_part}"
    )


class NearbyQueryCache:
    """Обёртка над ProximityIndex.find_nearby с TTL-кэшем."""

    def __init__(
        self,
        index: ProximityIndex,
        redis: RedisClient,
        ttl: int = 60,
        precision: int = 4,
    ) -> None:
        """
        Args:
            index: Индекс близости
            redis: Клиент Redis (бэкенд кэша)
            ttl: Время жизни записи, секунды
            precision: Знаков после запятой при округлении координат в ключе
        """
        self._index = index
        self._redis = redis
        self._ttl = ttl
        self._precision = precision
        self._stats = CacheStats()

    async def find_nearby(
        self,
        latitude: float,
        longitude: float,
        max_distance_m: float,
        status_filter: str | ProfessionalStatus = ProfessionalStatus.AVAILABLE,
        extra_filters: NearbyFilters | None = None,
        limit: int | None = None,
    ) -> list[NearbyProfessional]:
        """Отдаёт результат из кэша или считает через индекс и кладёт в кэш."""
        # Невалидный запрос не должен ни попадать в кэш, ни читаться из него
        self._index.validate_query(latitude, longitude, max_distance_m, status_filter, limit)

        status_value = status_filter.value if isinstance(status_filter, ProfessionalStatus) else status_filter
        key = make_nearby_key(
            latitude, longitude, max_distance_m, status_value,
            extra_filters, limit, self._precision,
        )

        cached = await self._get(key)
        if cached is not None:
            self._stats.hits += 1
            return cached
        self._stats.misses += 1

        results = await self._index.find_nearby(
            latitude, longitude, max_distance_m, status_filter, extra_filters, limit,
        )
        await self._set(key, results)
        return results

    async def _get(self, key: str) -> list[NearbyProfessional] | None:
        try:
            data = await self._redis.get_json(key)
        except Exception as e:
            self._stats.errors += 1
            await log_error(f"Ошибка чтения кэша {key}: {e}")
            return None

        if not isinstance(data, list):
            return None
        return [NearbyProfessional.model_validate(item) for item in data]

    async def _set(self, key: str, results: list[NearbyProfessional]) -> None:
        try:
            await self._redis.set_json(
                key,
                [r.model_dump(mode="json") for r in results],
                ttl=self._ttl,
            )
        except Exception as e:
            self._stats.errors += 1
            await log_error(f"Ошибка записи кэша {key}: {e}")
            return

        self._stats.sets += 1
        await log_info(f"Кэш поиска сохранён: {key}", type_msg=TypeMsg.DEBUG)

    def stats(self) -> dict[str, float | int]:
        """Статистика кэша для /stats."""
        return {**asdict(self._stats), "hit_rate": round(self._stats.hit_rate, 4), "ttl": self._ttl}
