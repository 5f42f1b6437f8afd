# src/services/__init__.py
"""
HTTP сервисы приложения.

Сервисы:
- location_service: трекинг геолокации специалистов, поиск ближайших, live-подписки
"""

__all__: list[str] = []
