# src/core/matching/proximity.py
"""
Поиск ближайших специалистов.
БД отдаёт кандидатов по прямоугольнику, точное расстояние считается по Haversine.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from src.common.constants import STATUS_FILTER_ALL, ProfessionalStatus, TypeMsg
from src.common.logger import log_info
from src.core.errors import validation_error
from src.core.geo.distance import bounding_box, haversine_km, validate_coordinates
from src.core.tracking.repository import LocationRepository, NearbyCandidate
from src.core.users.models import ProfessionalSummary, User
from src.core.users.repository import UserRepository


class NearbyFilters(BaseModel):
    """Дополнительные фильтры: специалист подходит, если пересекается хотя бы по одному значению."""

    services: list[str] = Field(default_factory=list)
    specialties: list[str] = Field(default_factory=list)

    def matches(self, user: User) -> bool:
        if self.services and not set(self.services) & set(user.services):
            return False
        if self.specialties and not set(self.specialties) & set(user.specialties):
            return False
        return True


class NearbyProfessional(BaseModel):
    """Результат поиска."""

    professional_id: str
    latitude: float
    longitude: float
    status: ProfessionalStatus
    distance: float = Field(..., description="Расстояние, км (2 знака)")
    professional: ProfessionalSummary


def parse_status_filter(status_filter: str | ProfessionalStatus) -> Optional[ProfessionalStatus]:
    """'all' -> None, иначе ProfessionalStatus или VALIDATION_ERROR."""
    if status_filter == STATUS_FILTER_ALL:
        return None
    try:
        return ProfessionalStatus(status_filter)
    except ValueError:
        allowed = ", ".join([s.value for s in ProfessionalStatus] + [STATUS_FILTER_ALL])
        raise validation_error(
            f"Invalid status. Must be one of: {allowed}", field="status"
        ) from None


class ProximityIndex:
    """Индекс близости поверх записей геолокации и профилей специалистов."""

    def __init__(
        self,
        locations: LocationRepository,
        users: UserRepository,
        max_radius_m: float | None = None,
    ) -> None:
        """
        Args:
            locations: Репозиторий записей геолокации
            users: Репозиторий идентичностей
            max_radius_m: Верхняя граница радиуса (None: без ограничения)
        """
        self._locations = locations
        self._users = users
        self._max_radius_m = max_radius_m

    def validate_query(
        self,
        latitude: float,
        longitude: float,
        max_distance_m: float,
        status_filter: str | ProfessionalStatus,
        limit: int | None,
    ) -> Optional[ProfessionalStatus]:
        """Проверяет параметры запроса, возвращает разобранный фильтр статуса."""
        validate_coordinates(latitude, longitude)
        if max_distance_m is None or max_distance_m <= 0:
            raise validation_error("Max distance must be greater than 0", field="max_distance")
        if self._max_radius_m is not None and max_distance_m > self._max_radius_m:
            raise validation_error(
                f"Max distance must not exceed {self._max_radius_m:g} m", field="max_distance"
            )
        if limit is not None and limit < 1:
            raise validation_error("Limit must be at least 1", field="limit")
        return parse_status_filter(status_filter)

    async def find_nearby(
        self,
        latitude: float,
        longitude: float,
        max_distance_m: float,
        status_filter: str | ProfessionalStatus = ProfessionalStatus.AVAILABLE,
        extra_filters: NearbyFilters | None = None,
        limit: int | None = None,
    ) -> list[NearbyProfessional]:
        """
        Ищет специалистов с включённым трекингом в радиусе от точки.

        Args:
            latitude: Широта точки поиска
            longitude: Долгота точки поиска
            max_distance_m: Радиус поиска в метрах
            status_filter: Статус или "all"
            extra_filters: Фильтры по услугам/специализациям
            limit: Максимум результатов

        Returns:
            Список по возрастанию расстояния (пустой, если никого нет)
        """
        status = self.validate_query(latitude, longitude, max_distance_m, status_filter, limit)
        filters = extra_filters or NearbyFilters()
        radius_km = max_distance_m / 1000.0

        min_lat, max_lat, min_lon, max_lon = bounding_box(latitude, longitude, radius_km)
        candidates = await self._locations.find_candidates(min_lat, max_lat, min_lon, max_lon, status)

        in_range: list[tuple[float, NearbyCandidate]] = []
        for candidate in candidates:
            distance_km = haversine_km(latitude, longitude, candidate.latitude, candidate.longitude)
            if distance_km <= radius_km:
                in_range.append((distance_km, candidate))

        if not in_range:
            return []

        users = await self._users.get_many(c.professional_id for _, c in in_range)

        results: list[NearbyProfessional] = []
        for distance_km, candidate in sorted(in_range, key=lambda item: item[0]):
            user = users.get(candidate.professional_id)
            if user is None or not user.is_professional or not filters.matches(user):
                continue
            results.append(NearbyProfessional(
                professional_id=candidate.professional_id,
                latitude=candidate.latitude,
                longitude=candidate.longitude,
                status=candidate.status,
                distance=round(distance_km, 2),
                professional=ProfessionalSummary.from_user(user),
            ))
            if limit is not None and len(results) >= limit:
                break

        await log_info(
            f"Найдено специалистов: {len(results)} (радиус {max_distance_m:g} м)",
            type_msg=TypeMsg.DEBUG,
        )
        return results
