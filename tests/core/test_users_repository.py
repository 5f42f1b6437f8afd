# tests/core/test_users_repository.py
"""
Тесты для репозитория пользователей и проверок идентичности.
"""

from __future__ import annotations

from typing import Any, Dict
from unittest.mock import AsyncMock

import pytest

from src.common.constants import UserRole
from src.core.errors import ErrorKind, LocationError
from src.core.users.checks import require_professional, require_user
from src.core.users.models import ProfessionalSummary
from src.core.users.repository import UserRepository
from tests.fakes import InMemoryUsers, make_user


@pytest.fixture
def user_repository(mock_db: AsyncMock) -> UserRepository:
    """UserRepository с моком БД."""
    return UserRepository(db=mock_db)


@pytest.fixture
def sample_user_row() -> Dict[str, Any]:
    """Строка пользователя-специалиста из БД."""
    return {
        "id": "pro-1",
        "role": "professional",
        "name": "Ravi Kumar",
        "phone": "+919812345678",
        "language": None,
        "specialization": "detailing",
        "rating": 4.8,
        "total_ratings": 31,
        "services": ["car_wash", "polish"],
        "specialties": None,
        "is_available": True,
    }


class TestUserRepository:
    """Тесты для UserRepository."""

    @pytest.mark.asyncio
    async def test_get_by_id(self, user_repository: UserRepository, mock_db: AsyncMock, sample_user_row) -> None:
        mock_db.fetchrow.return_value = sample_user_row

        user = await user_repository.get_by_id("pro-1")

        assert user is not None
        assert user.role is UserRole.PROFESSIONAL
        assert user.is_professional is True
        assert user.language == "en"
        assert user.services == ["car_wash", "polish"]
        assert user.specialties == []
        assert mock_db.fetchrow.call_args.args[1] == "pro-1"

    @pytest.mark.asyncio
    async def test_get_by_id_not_found(self, user_repository: UserRepository, mock_db: AsyncMock) -> None:
        mock_db.fetchrow.return_value = None

        assert await user_repository.get_by_id("ghost") is None

    @pytest.mark.asyncio
    async def test_get_by_id_db_error_propagates(self, user_repository: UserRepository, mock_db: AsyncMock) -> None:
        """Ошибка БД логируется и пробрасывается."""
        mock_db.fetchrow.side_effect = ConnectionError("db down")

        with pytest.raises(ConnectionError):
            await user_repository.get_by_id("pro-1")

    @pytest.mark.asyncio
    async def test_get_many(self, user_repository: UserRepository, mock_db: AsyncMock, sample_user_row) -> None:
        mock_db.fetch.return_value = [sample_user_row, {**sample_user_row, "id": "pro-2"}]

        users = await user_repository.get_many(["pro-1", "pro-2", "pro-1"])

        assert set(users) == {"pro-1", "pro-2"}
        # Дубликаты убираются до запроса, порядок сохраняется
        assert mock_db.fetch.call_args.args[1] == ["pro-1", "pro-2"]

    @pytest.mark.asyncio
    async def test_get_many_empty_skips_query(self, user_repository: UserRepository, mock_db: AsyncMock) -> None:
        assert await user_repository.get_many([]) == {}
        mock_db.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_set_availability(self, user_repository: UserRepository, mock_db: AsyncMock) -> None:
        mock_db.execute.return_value = "UPDATE 1"

        assert await user_repository.set_availability("pro-1", False) is True
        assert mock_db.execute.call_args.args[1:] == ("pro-1", False)

    @pytest.mark.asyncio
    async def test_set_availability_unknown_user(self, user_repository: UserRepository, mock_db: AsyncMock) -> None:
        mock_db.execute.return_value = "UPDATE 0"

        assert await user_repository.set_availability("ghost", True) is False


class TestProfessionalSummary:
    """Тесты проекции профиля специалиста."""

    def test_from_user(self) -> None:
        user = make_user("pro-1", name="Ravi", services=["car_wash"])

        summary = ProfessionalSummary.from_user(user)

        assert summary.id == "pro-1"
        assert summary.name == "Ravi"
        assert summary.rating == 4.5
        assert not hasattr(summary, "services")


class TestIdentityChecks:
    """Тесты require_user / require_professional."""

    @pytest.mark.asyncio
    async def test_require_user_not_found(self, users_repo: InMemoryUsers) -> None:
        with pytest.raises(LocationError) as exc_info:
            await require_user(users_repo, "ghost", entity="subscriber")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert exc_info.value.message == "Subscriber not found"

    @pytest.mark.asyncio
    async def test_require_professional_ok(self, users_repo: InMemoryUsers) -> None:
        user = await require_professional(users_repo, "pro-1")
        assert user.id == "pro-1"

    @pytest.mark.asyncio
    async def test_require_professional_wrong_role(self, users_repo: InMemoryUsers) -> None:
        with pytest.raises(LocationError) as exc_info:
            await require_professional(users_repo, "cust-1")

        assert exc_info.value.kind is ErrorKind.ROLE_INVALID
        assert exc_info.value.field == "role"

    @pytest.mark.asyncio
    async def test_require_professional_missing(self, users_repo: InMemoryUsers) -> None:
        with pytest.raises(LocationError) as exc_info:
            await require_professional(users_repo, "ghost")

        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert exc_info.value.entity == "professional"
