# src/core/users/models.py
"""
Модели идентичности пользователей.
Подсистема геолокации читает профиль и меняет только флаг is_available.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from src.common.constants import UserRole


class User(BaseModel):
    """Пользователь платформы (клиент или специалист)."""

    id: str = Field(..., description="ID пользователя")
    role: UserRole = Field(UserRole.CUSTOMER, description="Роль пользователя")
    name: Optional[str] = Field(None, description="Имя")
    phone: Optional[str] = Field(None, description="Номер телефона")
    language: str = Field("en", description="Код языка")

    # Поля специалиста
    specialization: Optional[str] = Field(None, description="Специализация")
    rating: float = Field(0.0, ge=0.0, le=5.0, description="Рейтинг")
    total_ratings: int = Field(0, ge=0, description="Количество оценок")
    services: list[str] = Field(default_factory=list, description="Оказываемые услуги")
    specialties: list[str] = Field(default_factory=list, description="Специализации (теги)")
    is_available: bool = Field(False, description="Доступен ли для заказов")

    class Config:
        from_attributes = True

    @property
    def is_professional(self) -> bool:
        return self.role == UserRole.PROFESSIONAL


class ProfessionalSummary(BaseModel):
    """Минимальная проекция профиля специалиста для ответов API."""

    id: str
    name: Optional[str] = None
    phone: Optional[str] = None
    specialization: Optional[str] = None
    rating: float = 0.0
    total_ratings: int = 0

    class Config:
        from_attributes = True

    @classmethod
    def from_user(cls, user: User) -> "ProfessionalSummary":
        return cls(
            id=user.id,
            name=user.name,
            phone=user.phone,
            specialization=user.specialization,
            rating=user.rating,
            total_ratings=user.total_ratings,
        )
