# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class UserRole(str, Enum):
    """Роли пользователей."""
    CUSTOMER = "customer"
    PROFESSIONAL = "professional"
    ADMIN = "admin"


class ProfessionalStatus(str, Enum):
    """Статусы специалиста."""
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


# Фильтр поиска "любой статус"
STATUS_FILTER_ALL = "all"


class NotificationType(str, Enum):
    """Типы push-уведомлений подсистемы геолокации."""
    SUBSCRIPTION_ADDED = "SUBSCRIPTION_ADDED"
    SUBSCRIPTION_REMOVED = "SUBSCRIPTION_REMOVED"
    LOCATION_UPDATE = "LOCATION_UPDATE"
