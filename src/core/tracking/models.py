# src/core/tracking/models.py
"""
Модели записи геолокации специалиста.
Правила истории (усечение, FIFO) живут здесь, чтобы их можно было проверять без БД.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from src.common.constants import ProfessionalStatus
from src.config import settings as app_settings
from src.core.errors import validation_error
from src.core.geo.distance import validate_coordinates
from src.core.users.models import ProfessionalSummary


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Position(BaseModel):
    """Позиция, присланная устройством специалиста."""

    latitude: float = Field(..., allow_inf_nan=False, description="Широта [-90, 90]")
    longitude: float = Field(..., allow_inf_nan=False, description="Долгота [-180, 180]")
    accuracy: float = Field(0.0, allow_inf_nan=False, description="Точность, м")
    speed: float = Field(0.0, allow_inf_nan=False, description="Скорость, м/с")
    heading: float = Field(0.0, allow_inf_nan=False, description="Курс, градусы")
    timestamp: Optional[datetime] = Field(None, description="Время снятия позиции")

    def validate_bounds(self) -> None:
        """
        Проверяет диапазоны полей.

        Raises:
            LocationError: VALIDATION_ERROR с именем поля
        """
        validate_coordinates(self.latitude, self.longitude)
        for name in ("accuracy", "speed", "heading"):
            if getattr(self, name) < 0:
                raise validation_error(f"Invalid {name}. Must be non-negative", field=name)


class CurrentLocation(BaseModel):
    """Текущая позиция в записи."""

    latitude: float
    longitude: float
    accuracy: float = 0.0
    speed: float = 0.0
    heading: float = 0.0
    timestamp: datetime


class HistoryEntry(BaseModel):
    """Запись истории: копия позиции без курса."""

    latitude: float
    longitude: float
    accuracy: float = 0.0
    speed: float = 0.0
    timestamp: datetime


class TrackingSettings(BaseModel):
    """Настройки трекинга. Значения по умолчанию берутся из секции tracking."""

    update_interval_ms: int = Field(
        default_factory=lambda: app_settings.tracking.UPDATE_INTERVAL_MS, gt=0
    )
    significant_change_threshold_m: float = Field(
        default_factory=lambda: app_settings.tracking.SIGNIFICANT_CHANGE_THRESHOLD_M, ge=0
    )
    battery_optimization_enabled: bool = Field(
        default_factory=lambda: app_settings.tracking.BATTERY_OPTIMIZATION_ENABLED
    )
    max_history_items: int = Field(
        default_factory=lambda: app_settings.tracking.MAX_HISTORY_ITEMS, ge=0
    )


class TrackingSettingsUpdate(BaseModel):
    """Частичное обновление настроек: меняются только переданные поля."""

    update_interval_ms: Optional[int] = Field(None, gt=0)
    significant_change_threshold_m: Optional[float] = Field(None, ge=0)
    battery_optimization_enabled: Optional[bool] = None
    max_history_items: Optional[int] = Field(None, ge=0)

    @classmethod
    def parse(cls, data: "TrackingSettingsUpdate | dict[str, Any]") -> "TrackingSettingsUpdate":
        """Принимает модель или словарь; ошибки pydantic превращает в VALIDATION_ERROR."""
        if isinstance(data, cls):
            return data
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ())) or None
            raise validation_error(f"Invalid tracking settings: {first.get('msg')}", field=field) from e


class ProfessionalLocation(BaseModel):
    """Запись геолокации специалиста (одна на специалиста)."""

    professional_id: str
    current: Optional[CurrentLocation] = None
    status: ProfessionalStatus = ProfessionalStatus.OFFLINE
    tracking_enabled: bool = False
    history: list[HistoryEntry] = Field(default_factory=list)
    settings: TrackingSettings = Field(default_factory=TrackingSettings)
    last_updated: datetime = Field(default_factory=utc_now)
    created_at: datetime = Field(default_factory=utc_now)

    class Config:
        from_attributes = True

    @classmethod
    def from_first_position(cls, professional_id: str, position: Position) -> "ProfessionalLocation":
        """Новая запись: позиция становится текущей, история пока пуста."""
        now = utc_now()
        return cls(
            professional_id=professional_id,
            current=_to_current(position, now),
            last_updated=now,
            created_at=now,
        )

    def apply_position(self, position: Position) -> None:
        """Заменяет текущую позицию и дописывает урезанную копию в историю."""
        now = utc_now()
        self.current = _to_current(position, now)

        if self.settings.max_history_items > 0:
            self.history.append(HistoryEntry(
                latitude=self.current.latitude,
                longitude=self.current.longitude,
                accuracy=self.current.accuracy,
                speed=self.current.speed,
                timestamp=self.current.timestamp,
            ))
        self.truncate_history()
        self.last_updated = now

    def truncate_history(self) -> None:
        """Оставляет последние max_history_items записей (FIFO)."""
        limit = self.settings.max_history_items
        if limit <= 0:
            self.history = []
        elif len(self.history) > limit:
            self.history = self.history[-limit:]

    def apply_status(self, status: ProfessionalStatus) -> None:
        self.status = status
        self.last_updated = utc_now()

    def apply_tracking_enabled(self, enabled: bool) -> None:
        """Выключение трекинга принудительно переводит в offline."""
        self.tracking_enabled = enabled
        if not enabled:
            self.status = ProfessionalStatus.OFFLINE
        self.last_updated = utc_now()

    def apply_settings(self, update: TrackingSettingsUpdate) -> None:
        """Сливает только переданные ключи; при уменьшении лимита история усекается сразу."""
        changes = update.model_dump(exclude_none=True)
        self.settings = self.settings.model_copy(update=changes)
        self.truncate_history()
        self.last_updated = utc_now()

    def recent_history(self, limit: int) -> list[HistoryEntry]:
        """limit последних записей, самые свежие первыми."""
        return list(reversed(self.history[-limit:]))


class LocationView(BaseModel):
    """Запись геолокации вместе с минимальным профилем специалиста."""

    location: ProfessionalLocation
    professional: ProfessionalSummary


def _to_current(position: Position, now: datetime) -> CurrentLocation:
    return CurrentLocation(
        latitude=position.latitude,
        longitude=position.longitude,
        accuracy=position.accuracy,
        speed=position.speed,
        heading=position.heading,
        timestamp=position.timestamp or now,
    )
