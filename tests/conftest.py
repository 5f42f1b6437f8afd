# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "test_api_key")

from src.common.constants import UserRole  # noqa: E402
from tests.fakes import (  # noqa: E402
    FakeRealtimeStore,
    InMemoryLocations,
    InMemoryUsers,
    make_user,
)


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture(scope="session")
def lang_dict_path(project_root: Path) -> Path:
    """Путь к файлу локализации."""
    return project_root / "config" / "lang_dict.json"


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_db() -> AsyncMock:
    """Мок менеджера базы данных."""
    db = AsyncMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="INSERT 0 1")
    db.fetchval = AsyncMock(return_value=None)
    return db


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Мок клиента Redis."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.get_json = AsyncMock(return_value=None)
    redis.set_json = AsyncMock(return_value=True)
    redis.hget = AsyncMock(return_value=None)
    redis.hset = AsyncMock(return_value=1)
    redis.hgetall = AsyncMock(return_value={})
    redis.hdel = AsyncMock(return_value=1)
    redis.hset_many = AsyncMock(return_value=None)
    redis.publish = AsyncMock(return_value=0)
    return redis


@pytest.fixture
def mock_event_bus() -> AsyncMock:
    """Мок шины событий."""
    event_bus = AsyncMock()
    event_bus.publish = AsyncMock(return_value=True)
    event_bus.is_connected = True
    return event_bus


# =============================================================================
# IN-MEMORY ДВОЙНИКИ
# =============================================================================

@pytest.fixture
def realtime_store() -> FakeRealtimeStore:
    return FakeRealtimeStore()


@pytest.fixture
def users_repo() -> InMemoryUsers:
    return InMemoryUsers([
        make_user("pro-1"),
        make_user("pro-2", name="Ravi"),
        make_user("cust-1", role=UserRole.CUSTOMER),
        make_user("cust-2", role=UserRole.CUSTOMER),
        make_user("cust-3", role=UserRole.CUSTOMER),
    ])


@pytest.fixture
def locations_repo() -> InMemoryLocations:
    return InMemoryLocations()


@pytest.fixture
def mock_dispatcher() -> AsyncMock:
    """Мок доставки push-уведомлений."""
    dispatcher = AsyncMock()
    dispatcher.send = AsyncMock(return_value=True)

    # send_many повторяет контракт: по получателю через send, ошибки изолированы
    async def send_many(message, recipient_ids):
        ids = list(recipient_ids)
        results = await asyncio.gather(
            *(dispatcher.send(message, rid) for rid in ids),
            return_exceptions=True,
        )
        return {rid: result is True for rid, result in zip(ids, results)}

    dispatcher.send_many = AsyncMock(side_effect=send_many)
    return dispatcher
