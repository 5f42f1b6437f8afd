# src/core/tracking/service.py
"""
Сервис записей геолокации специалистов.

БД: единственный источник истины: успех операции определяется записью в БД.
Зеркалирование в realtime-дерево выполняется после записи и не влияет на результат.
"""

from __future__ import annotations

from typing import Any

from src.common.constants import ProfessionalStatus, TypeMsg
from src.common.logger import log_info
from src.core.errors import ErrorKind, LocationError, not_found, validation_error
from src.core.realtime.bridge import RealtimeBridge
from src.core.tracking.models import (
    HistoryEntry,
    LocationView,
    Position,
    ProfessionalLocation,
    TrackingSettingsUpdate,
)
from src.core.tracking.repository import LocationRepository
from src.core.users.checks import require_professional
from src.core.users.models import ProfessionalSummary, User
from src.core.users.repository import UserRepository


def parse_status(status: ProfessionalStatus | str) -> ProfessionalStatus:
    """Строка -> ProfessionalStatus, иначе VALIDATION_ERROR."""
    try:
        return ProfessionalStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in ProfessionalStatus)
        raise validation_error(
            f"Invalid status. Must be one of: {allowed}", field="status"
        ) from None


class LocationService:
    """
    Сервис геолокации специалистов.

    Реализует:
    - Приём позиций с ограниченной историей
    - Смену статуса и флага трекинга (с обновлением доступности специалиста)
    - Частичное обновление настроек трекинга
    - Чтение текущей позиции и истории
    """

    def __init__(
        self,
        locations: LocationRepository,
        users: UserRepository,
        bridge: RealtimeBridge,
        history_default_limit: int = 50,
    ) -> None:
        """
        Args:
            locations: Репозиторий записей геолокации
            users: Репозиторий идентичностей
            bridge: Realtime-зеркало
            history_default_limit: Лимит истории по умолчанию
        """
        self._locations = locations
        self._users = users
        self._bridge = bridge
        self._history_default_limit = history_default_limit

    # =========================================================================
    # ПРОВЕРКИ ИДЕНТИЧНОСТИ
    # =========================================================================

    async def require_professional(self, user_id: str) -> User:
        return await require_professional(self._users, user_id)

    async def _require_record(self, professional_id: str) -> ProfessionalLocation:
        location = await self._locations.get(professional_id)
        if location is None:
            raise LocationError(
                ErrorKind.LOCATION_NOT_INITIALIZED,
                "Location tracking not initialized for this user",
                entity="location",
            )
        return location

    # =========================================================================
    # ЗАПИСЬ
    # =========================================================================

    async def update_location(self, professional_id: str, position: Position) -> ProfessionalLocation:
        """
        Принимает позицию специалиста.

        Первая позиция создаёт запись (offline, трекинг выключен);
        последующие заменяют текущую и дописываются в историю.
        """
        await self.require_professional(professional_id)
        position.validate_bounds()

        location = await self._locations.get(professional_id)
        if location is None:
            location = ProfessionalLocation.from_first_position(professional_id, position)
            await log_info(
                f"Создана запись геолокации для {professional_id}",
                type_msg=TypeMsg.INFO,
            )
        else:
            location.apply_position(position)

        await self._locations.save(location)
        await self._bridge.mirror_location(location, append_stream=True)
        return location

    async def update_status(
        self,
        professional_id: str,
        status: ProfessionalStatus | str,
    ) -> ProfessionalLocation:
        """Меняет статус; offline снимает доступность специалиста, остальные ставят."""
        new_status = parse_status(status)
        location = await self._require_record(professional_id)

        location.apply_status(new_status)
        await self._locations.save(location)
        await self._users.set_availability(
            professional_id, new_status != ProfessionalStatus.OFFLINE
        )

        await log_info(
            f"Статус {professional_id}: {new_status.value}",
            type_msg=TypeMsg.DEBUG,
        )
        await self._bridge.mirror_location(location)
        return location

    async def set_tracking_enabled(self, professional_id: str, enabled: bool) -> ProfessionalLocation:
        """Включает/выключает трекинг. Создаёт минимальную запись, если её нет."""
        await self.require_professional(professional_id)

        location = await self._locations.get(professional_id)
        if location is None:
            location = ProfessionalLocation(professional_id=professional_id)

        location.apply_tracking_enabled(enabled)
        await self._locations.save(location)
        if not enabled:
            await self._users.set_availability(professional_id, False)

        await log_info(
            f"Трекинг {professional_id}: {'включён' if enabled else 'выключен'}",
            type_msg=TypeMsg.INFO,
        )
        await self._bridge.mirror_location(location)
        return location

    async def update_tracking_settings(
        self,
        professional_id: str,
        partial: TrackingSettingsUpdate | dict[str, Any],
    ) -> ProfessionalLocation:
        """Сливает переданные настройки с текущими."""
        update = TrackingSettingsUpdate.parse(partial)
        await self.require_professional(professional_id)
        location = await self._require_record(professional_id)

        location.apply_settings(update)
        await self._locations.save(location)
        return location

    # =========================================================================
    # ЧТЕНИЕ
    # =========================================================================

    async def get_location(self, professional_id: str) -> LocationView:
        professional = await self.require_professional(professional_id)

        location = await self._locations.get(professional_id)
        if location is None:
            raise not_found("location", "Location not found for this professional")

        return LocationView(
            location=location,
            professional=ProfessionalSummary.from_user(professional),
        )

    async def get_history(self, professional_id: str, limit: int | None = None) -> list[HistoryEntry]:
        """
        Последние limit записей истории, самые свежие первыми.

        Raises:
            LocationError: VALIDATION_ERROR при limit < 1, NOT_FOUND, LOCATION_HISTORY_EMPTY
        """
        if limit is None:
            limit = self._history_default_limit
        if limit < 1:
            raise validation_error("Limit must be at least 1", field="limit")

        await self.require_professional(professional_id)

        location = await self._locations.get(professional_id)
        if location is None:
            raise not_found("location", "Location not found for this professional")
        if not location.history:
            raise LocationError(
                ErrorKind.LOCATION_HISTORY_EMPTY,
                "Location history is empty",
                entity="location",
                field="history",
            )

        return location.recent_history(limit)
