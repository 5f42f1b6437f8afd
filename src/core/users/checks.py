# src/core/users/checks.py
"""
Проверки идентичности, общие для сервисов геолокации и подписок.
"""

from __future__ import annotations

from src.core.errors import ErrorKind, LocationError, not_found
from src.core.users.models import User
from src.core.users.repository import UserRepository


async def require_user(users: UserRepository, user_id: str, entity: str = "user") -> User:
    """Пользователь или NOT_FOUND."""
    user = await users.get_by_id(user_id)
    if user is None:
        raise not_found(entity)
    return user


async def require_professional(users: UserRepository, user_id: str) -> User:
    """Специалист или NOT_FOUND / ROLE_INVALID."""
    user = await require_user(users, user_id, entity="professional")
    if not user.is_professional:
        raise LocationError(
            ErrorKind.ROLE_INVALID,
            "User is not a professional",
            entity="professional",
            field="role",
        )
    return user
