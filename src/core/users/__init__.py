# src/core/users/__init__.py
"""
Домен пользователей.
Идентичности клиентов и специалистов, которые читает подсистема геолокации.
"""

from src.core.users.models import User, ProfessionalSummary
from src.core.users.repository import UserRepository

__all__ = [
    "User",
    "ProfessionalSummary",
    "UserRepository",
]
