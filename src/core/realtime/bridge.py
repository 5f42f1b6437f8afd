# src/core/realtime/bridge.py
"""
Мост в realtime-дерево.
Зеркалирует принятые изменения записи геолокации после успешной записи в БД.
Ошибки зеркалирования логируются и никогда не пробрасываются вызывающему.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Iterable

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info
from src.core.realtime.store import (
    RealtimeStore,
    current_path,
    entry_key,
    history_stream_path,
    notification_path,
)

if TYPE_CHECKING:
    from src.core.tracking.models import Position, ProfessionalLocation


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def _position_payload(
    latitude: float,
    longitude: float,
    accuracy: float,
    speed: float,
    heading: float,
    timestamp: datetime | None,
) -> dict[str, Any]:
    return {
        "latitude": latitude,
        "longitude": longitude,
        "accuracy": accuracy,
        "speed": speed,
        "heading": heading,
        "timestamp": timestamp.isoformat() if timestamp else None,
    }


class RealtimeBridge:
    """Best-effort зеркало записей геолокации."""

    def __init__(self, store: RealtimeStore) -> None:
        self._store = store

    def snapshot(self, location: ProfessionalLocation) -> dict[str, Any]:
        """Содержимое узла locations/{id}/current."""
        data: dict[str, Any] = {}
        if location.current is not None:
            c = location.current
            data.update(_position_payload(c.latitude, c.longitude, c.accuracy, c.speed, c.heading, c.timestamp))
        data.update({
            "status": location.status.value,
            "tracking_enabled": location.tracking_enabled,
            "updated_at": location.last_updated.isoformat(),
        })
        return data

    async def mirror_location(self, location: ProfessionalLocation, append_stream: bool = False) -> bool:
        """
        Пишет снимок записи в current и, если нужно, точку в history-stream.

        Returns:
            True если зеркалирование прошло успешно
        """
        pid = location.professional_id
        try:
            await self._store.write(current_path(pid), self.snapshot(location))
            if append_stream and location.current is not None:
                c = location.current
                await self._store.write(
                    history_stream_path(pid, entry_key(now_ms())),
                    _position_payload(c.latitude, c.longitude, c.accuracy, c.speed, c.heading, c.timestamp),
                )
        except Exception as e:
            await log_error(f"Ошибка зеркалирования геолокации {pid}: {e}", exc_info=True)
            return False
        return True

    async def push_live_position(self, professional_id: str, position: Position) -> bool:
        """
        Live-позиция без записи в БД: обновляет координаты в current,
        сохраняя статус и флаг трекинга, и дописывает точку в history-stream.
        """
        ts = position.timestamp or datetime.now(timezone.utc)
        payload = _position_payload(
            position.latitude, position.longitude,
            position.accuracy, position.speed, position.heading, ts,
        )
        try:
            existing = await self._store.read(current_path(professional_id))
            merged = {**existing, **payload} if isinstance(existing, dict) else dict(payload)
            merged["updated_at"] = datetime.now(timezone.utc).isoformat()
            await self._store.write(current_path(professional_id), merged)
            await self._store.write(history_stream_path(professional_id, entry_key(now_ms())), payload)
        except Exception as e:
            await log_error(f"Ошибка live-позиции {professional_id}: {e}", exc_info=True)
            return False
        return True

    async def record_notifications(
        self,
        subscriber_ids: Iterable[str],
        record: dict[str, Any],
    ) -> bool:
        """Одна пакетная запись notifications/{subscriber}/{ключ} для всех получателей."""
        ts = now_ms()
        updates = {
            notification_path(sid, entry_key(ts)): {**record, "read": False, "created_at": ts}
            for sid in subscriber_ids
        }
        if not updates:
            return True

        try:
            await self._store.batch_write(updates)
        except Exception as e:
            await log_error(f"Ошибка пакетной записи уведомлений: {e}", exc_info=True)
            return False

        await log_info(f"Записано уведомлений: {len(updates)}", type_msg=TypeMsg.DEBUG)
        return True
