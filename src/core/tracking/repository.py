# src/core/tracking/repository.py
"""
Репозиторий записей геолокации (таблица professional_locations).
Запись выполняется одним upsert-ом: конкурирующие обновления: last write wins.
Ошибки БД логируются и пробрасываются выше.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from src.common.constants import ProfessionalStatus, TypeMsg
from src.common.logger import log_error, log_info
from src.core.tracking.models import (
    CurrentLocation,
    HistoryEntry,
    ProfessionalLocation,
    TrackingSettings,
)
from src.infra.database import DatabaseManager


@dataclass
class NearbyCandidate:
    """Кандидат для поиска: только то, что нужно для расчёта расстояния."""
    professional_id: str
    latitude: float
    longitude: float
    status: ProfessionalStatus


def _load_json(value: Any, default: Any) -> Any:
    # asyncpg без кодека отдаёт JSONB строкой
    if value is None:
        return default
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


def _row_to_location(row: Any) -> ProfessionalLocation:
    current = None
    if row["latitude"] is not None and row["longitude"] is not None:
        current = CurrentLocation(
            latitude=row["latitude"],
            longitude=row["longitude"],
            accuracy=row["accuracy"] or 0.0,
            speed=row["speed"] or 0.0,
            heading=row["heading"] or 0.0,
            timestamp=row["position_timestamp"],
        )

    history = [HistoryEntry.model_validate(item) for item in _load_json(row["history"], [])]
    settings_data = _load_json(row["settings"], {})

    return ProfessionalLocation(
        professional_id=row["professional_id"],
        current=current,
        status=ProfessionalStatus(row["status"]),
        tracking_enabled=row["tracking_enabled"],
        history=history,
        settings=TrackingSettings(**settings_data),
        last_updated=row["last_updated"],
        created_at=row["created_at"],
    )


class LocationRepository:
    """Репозиторий записей геолокации."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def get(self, professional_id: str) -> Optional[ProfessionalLocation]:
        """Запись специалиста или None, если трекинг ещё не инициализирован."""
        try:
            row = await self._db.fetchrow(
                """
                SELECT professional_id, latitude, longitude, accuracy, speed, heading,
                       position_timestamp, status, tracking_enabled, history, settings,
                       last_updated, created_at
                FROM professional_locations
                WHERE professional_id = $1
                """,
                professional_id,
            )
        except Exception as e:
            await log_error(f"Ошибка чтения геолокации {professional_id}: {e}")
            raise

        if row is None:
            return None
        return _row_to_location(row)

    async def save(self, location: ProfessionalLocation) -> ProfessionalLocation:
        """
        Сохраняет запись целиком одним upsert-ом.

        Returns:
            Та же запись (для цепочек вызовов)
        """
        current = location.current
        history_json = json.dumps(
            [entry.model_dump(mode="json") for entry in location.history]
        )
        settings_json = json.dumps(location.settings.model_dump(mode="json"))

        try:
            await self._db.execute(
                """
                INSERT INTO professional_locations (
                    professional_id, latitude, longitude, accuracy, speed, heading,
                    position_timestamp, status, tracking_enabled, history, settings,
                    last_updated, created_at
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10::jsonb, $11::jsonb, $12, $13)
                ON CONFLICT (professional_id) DO UPDATE SET
                    latitude = EXCLUDED.latitude,
                    longitude = EXCLUDED.longitude,
                    accuracy = EXCLUDED.accuracy,
                    speed = EXCLUDED.speed,
                    heading = EXCLUDED.heading,
                    position_timestamp = EXCLUDED.position_timestamp,
                    status = EXCLUDED.status,
                    tracking_enabled = EXCLUDED.tracking_enabled,
                    history = EXCLUDED.history,
                    settings = EXCLUDED.settings,
                    last_updated = EXCLUDED.last_updated
                """,
                location.professional_id,
                current.latitude if current else None,
                current.longitude if current else None,
                current.accuracy if current else None,
                current.speed if current else None,
                current.heading if current else None,
                current.timestamp if current else None,
                location.status.value,
                location.tracking_enabled,
                history_json,
                settings_json,
                location.last_updated,
                location.created_at,
            )
        except Exception as e:
            await log_error(f"Ошибка сохранения геолокации {location.professional_id}: {e}")
            raise

        await log_info(
            f"Геолокация {location.professional_id} сохранена (status={location.status.value})",
            type_msg=TypeMsg.DEBUG,
        )
        return location

    async def find_candidates(
        self,
        min_lat: float,
        max_lat: float,
        min_lon: float,
        max_lon: float,
        status: ProfessionalStatus | None = None,
    ) -> list[NearbyCandidate]:
        """
        Кандидаты внутри прямоугольника с включённым трекингом.

        Args:
            status: Фильтр по статусу (None: любой)
        """
        try:
            rows = await self._db.fetch(
                """
                SELECT professional_id, latitude, longitude, status
                FROM professional_locations
                WHERE tracking_enabled = TRUE
                  AND latitude IS NOT NULL
                  AND latitude BETWEEN $1 AND $2
                  AND longitude BETWEEN $3 AND $4
                  AND ($5::text IS NULL OR status = $5::text)
                """,
                min_lat,
                max_lat,
                min_lon,
                max_lon,
                status.value if status else None,
            )
        except Exception as e:
            await log_error(f"Ошибка поиска кандидатов: {e}")
            raise

        return [
            NearbyCandidate(
                professional_id=row["professional_id"],
                latitude=row["latitude"],
                longitude=row["longitude"],
                status=ProfessionalStatus(row["status"]),
            )
            for row in rows
        ]

    async def count_by_status(self) -> dict[str, int]:
        """Количество записей с включённым трекингом по статусам (для /stats)."""
        try:
            rows = await self._db.fetch(
                """
                SELECT status, COUNT(*) AS cnt
                FROM professional_locations
                WHERE tracking_enabled = TRUE
                GROUP BY status
                """
            )
        except Exception as e:
            await log_error(f"Ошибка подсчёта статусов: {e}")
            raise

        counts = {status.value: 0 for status in ProfessionalStatus}
        for row in rows:
            counts[row["status"]] = row["cnt"]
        return counts
