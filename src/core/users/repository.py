# src/core/users/repository.py
"""
Репозиторий идентичностей пользователей.
Чтение профилей и единственная запись: флаг доступности специалиста.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from src.common.constants import TypeMsg, UserRole
from src.common.logger import log_error, log_info
from src.core.users.models import User
from src.infra.database import DatabaseManager


USER_COLUMNS = """
    id, role, name, phone, language, specialization, rating, total_ratings,
    services, specialties, is_available
"""


def _row_to_user(row: Any) -> User:
    return User(
        id=row["id"],
        role=UserRole(row["role"]),
        name=row["name"],
        phone=row["phone"],
        language=row["language"] or "en",
        specialization=row["specialization"],
        rating=float(row["rating"] or 0.0),
        total_ratings=row["total_ratings"] or 0,
        services=list(row["services"] or []),
        specialties=list(row["specialties"] or []),
        is_available=row["is_available"],
    )


class UserRepository:
    """Репозиторий пользователей."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def get_by_id(self, user_id: str) -> Optional[User]:
        """
        Получает пользователя по ID.

        Returns:
            Пользователь или None, если не найден
        """
        try:
            row = await self._db.fetchrow(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = $1",
                user_id,
            )
        except Exception as e:
            await log_error(f"Ошибка получения пользователя {user_id}: {e}")
            raise

        if row is None:
            return None
        return _row_to_user(row)

    async def get_many(self, user_ids: Iterable[str]) -> dict[str, User]:
        """Получает пользователей пачкой, возвращает словарь id -> User."""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}

        try:
            rows = await self._db.fetch(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = ANY($1::text[])",
                ids,
            )
        except Exception as e:
            await log_error(f"Ошибка получения пользователей ({len(ids)} шт.): {e}")
            raise

        return {row["id"]: _row_to_user(row) for row in rows}

    async def set_availability(self, user_id: str, is_available: bool) -> bool:
        """
        Обновляет флаг доступности специалиста.

        Returns:
            True если строка обновлена
        """
        try:
            result = await self._db.execute(
                """
                UPDATE users
                SET is_available = $2, updated_at = NOW()
                WHERE id = $1
                """,
                user_id,
                is_available,
            )
        except Exception as e:
            await log_error(f"Ошибка обновления доступности {user_id}: {e}")
            raise

        await log_info(
            f"Доступность специалиста {user_id}: {is_available}",
            type_msg=TypeMsg.DEBUG,
        )
        return result == "UPDATE 1"
