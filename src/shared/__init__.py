# src/shared/__init__.py
"""
Общий код HTTP сервисов.

Модули:
- models: модели ответов (ошибки, health)
"""

__all__: list[str] = []
