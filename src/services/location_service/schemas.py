# src/services/location_service/schemas.py
"""
Модели запросов и ответов HTTP API геолокации.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.common.constants import ProfessionalStatus
from src.core.matching.proximity import NearbyProfessional
from src.core.notifications.subscriptions import Subscription
from src.core.tracking.models import (
    CurrentLocation,
    HistoryEntry,
    ProfessionalLocation,
    TrackingSettings,
)
from src.core.users.models import ProfessionalSummary


# === REQUESTS ===

class StatusRequest(BaseModel):
    """Смена статуса. Значение проверяется сервисом."""
    status: str = Field(..., description="available | busy | offline")


class TrackingRequest(BaseModel):
    """Включение/выключение трекинга."""
    enabled: bool


# === RESPONSES ===

class LocationRecordResponse(BaseModel):
    """Запись геолокации без тела истории."""
    professional_id: str
    current: Optional[CurrentLocation] = None
    status: ProfessionalStatus
    tracking_enabled: bool
    settings: TrackingSettings
    history_size: int
    last_updated: datetime

    @classmethod
    def from_record(cls, record: ProfessionalLocation) -> "LocationRecordResponse":
        return cls(
            professional_id=record.professional_id,
            current=record.current,
            status=record.status,
            tracking_enabled=record.tracking_enabled,
            settings=record.settings,
            history_size=len(record.history),
            last_updated=record.last_updated,
        )


class ProfessionalLocationResponse(LocationRecordResponse):
    """Запись геолокации вместе с профилем специалиста."""
    professional: ProfessionalSummary


class HistoryResponse(BaseModel):
    professional_id: str
    count: int
    history: list[HistoryEntry]


class NearbyResponse(BaseModel):
    count: int
    radius_m: float
    results: list[NearbyProfessional]


class SubscribeResponse(BaseModel):
    success: bool = True
    message: str
    already_subscribed: bool = False
    subscription: Subscription


class SubscriptionsResponse(BaseModel):
    count: int
    subscriptions: list[Subscription]


class NotifyResponse(BaseModel):
    notified_count: int
    subscriber_count: int


class ReverseGeocodeResponse(BaseModel):
    latitude: float
    longitude: float
    address: str


class StatsResponse(BaseModel):
    """Статистика сервиса."""
    professionals_by_status: dict[str, int]
    cache: dict[str, Any]
