# src/core/errors.py
"""
Доменные ошибки подсистемы геолокации.
Вызывающий код различает причины по ErrorKind, а не по тексту сообщения.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Виды доменных ошибок."""
    NOT_FOUND = "NOT_FOUND"
    ROLE_INVALID = "ROLE_INVALID"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    LOCATION_NOT_INITIALIZED = "LOCATION_NOT_INITIALIZED"
    TRACKING_DISABLED = "TRACKING_DISABLED"
    SUBSCRIPTION_NOT_FOUND = "SUBSCRIPTION_NOT_FOUND"
    LOCATION_HISTORY_EMPTY = "LOCATION_HISTORY_EMPTY"


# Соответствие видов ошибок HTTP статусам
HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ROLE_INVALID: 403,
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.LOCATION_NOT_INITIALIZED: 404,
    ErrorKind.TRACKING_DISABLED: 400,
    ErrorKind.SUBSCRIPTION_NOT_FOUND: 404,
    ErrorKind.LOCATION_HISTORY_EMPTY: 404,
}


class LocationError(Exception):
    """
    Операционная (ожидаемая) ошибка домена.

    Attributes:
        kind: Вид ошибки
        message: Сообщение для пользователя
        entity: Сущность, к которой относится ошибка (professional, subscriber, location...)
        field: Поле, не прошедшее валидацию
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        entity: str | None = None,
        field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.entity = entity
        self.field = field

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_KIND.get(self.kind, 500)

    def details(self) -> dict[str, Any] | None:
        """Контекст ошибки для ErrorResponse.details."""
        details = {k: v for k, v in (("entity", self.entity), ("field", self.field)) if v}
        return details or None

    def __repr__(self) -> str:
        return f"LocationError(kind={self.kind.value}, message={self.message!r}, entity={self.entity!r}, field={self.field!r})"


def validation_error(message: str, field: str | None = None) -> LocationError:
    return LocationError(ErrorKind.VALIDATION_ERROR, message, field=field)


def not_found(entity: str, message: str | None = None) -> LocationError:
    return LocationError(
        ErrorKind.NOT_FOUND,
        message or f"{entity.capitalize()} not found",
        entity=entity,
    )
