# src/core/__init__.py
"""
Доменный слой (Core Domain).
Трекинг геолокации специалистов, поиск ближайших и уведомления подписчиков.
"""

from src.core.errors import ErrorKind, LocationError

__all__ = [
    "ErrorKind",
    "LocationError",
]
