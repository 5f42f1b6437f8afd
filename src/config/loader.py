# src/config/loader.py
"""
Загрузчик конфигурации проекта.
Единственный источник истины: config/config.json.
Секреты и адреса инфраструктуры переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


# =============================================================================
# ОПРЕДЕЛЕНИЕ ПУТЕЙ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    """Возвращает путь к файлу конфигурации (можно переопределить через CONFIG_PATH)."""
    override = os.getenv("CONFIG_PATH")
    if override:
        return Path(override)
    return get_project_root() / "config" / "config.json"


def load_config_json() -> dict[str, Any]:
    """Загружает config.json и возвращает словарь без ключей-комментариев."""
    config_path = get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return {k: v for k, v in data.items() if not k.startswith("_comment_")}


# =============================================================================
# PYDANTIC МОДЕЛИ КОНФИГУРАЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "fieldpro_location"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "DEBUG"
    ENVIRONMENT: str = "development"


class DeploymentSettings(BaseModel):
    """Настройки развертывания сервиса геолокации."""
    LOCATION_SERVICE_HOST: str = "0.0.0.0"
    LOCATION_SERVICE_PORT: int = 8090
    LOCATION_SERVICE_INSTANCES_COUNT: int = 1


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "DEBUG"
    LOG_TO_FILE: bool = True
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_FORMAT: str = "colored"
    LOG_MAX_BYTES: int = 10485760


class DomainSettings(BaseModel):
    """Настройки домена и локализации."""
    DOMAIN: str = "fieldpro.example.com"
    DEFAULT_LANGUAGE: str = "en"
    SUPPORTED_LANGUAGES: list[str] = Field(default_factory=lambda: ["en", "ru"])
    TIMEZONE: str = "Asia/Kolkata"


class DatabaseSettings(BaseModel):
    """Настройки PostgreSQL."""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "fieldpro"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_MIN_POOL_SIZE: int = 5
    DB_MAX_POOL_SIZE: int = 20
    DB_COMMAND_TIMEOUT: int = 60
    DB_RETRY_ATTEMPTS: int = 3
    DB_RETRY_DELAY: float = 1.0

    @field_validator("DB_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("DB_PASSWORD", "")
        return v

    @property
    def dsn(self) -> str:
        """DSN для подключения к PostgreSQL."""
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


class RedisSettings(BaseModel):
    """Настройки Redis."""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    REDIS_NAMESPACE: str = "fieldpro"
    REDIS_MAX_CONNECTIONS: int = 50

    @field_validator("REDIS_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("REDIS_PASSWORD", "")
        return v

    @property
    def url(self) -> str:
        """URL для подключения к Redis."""
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


class RedisTTLSettings(BaseModel):
    """Настройки TTL кэша и realtime-дерева."""
    NEARBY_TTL: int = 60
    REALTIME_CHANNEL_PREFIX: str = "realtime"


class RabbitMQSettings(BaseModel):
    """Настройки RabbitMQ."""
    RABBITMQ_HOST: str = "localhost"
    RABBITMQ_PORT: int = 5672
    RABBITMQ_USER: str = "guest"
    RABBITMQ_PASSWORD: str = "guest"
    RABBITMQ_VHOST: str = "/"
    RABBITMQ_EXCHANGE: str = "fieldpro.events"
    RABBITMQ_PREFETCH_COUNT: int = 10

    @field_validator("RABBITMQ_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Пароль из переменных окружения имеет приоритет."""
        env_pass = os.getenv("RABBITMQ_PASSWORD", "")
        if env_pass:
            return env_pass
        return v

    @property
    def url(self) -> str:
        """URL для подключения к RabbitMQ."""
        return (
            f"amqp://{self.RABBITMQ_USER}:{self.RABBITMQ_PASSWORD}"
            f"@{self.RABBITMQ_HOST}:{self.RABBITMQ_PORT}{self.RABBITMQ_VHOST}"
        )


class GoogleMapsSettings(BaseModel):
    """Настройки Google Maps API (обратное геокодирование)."""
    GOOGLE_MAPS_API_KEY: str = ""
    GEOCODING_LANGUAGE: str = "en"
    GEOCODING_TIMEOUT: float = 10.0

    @field_validator("GOOGLE_MAPS_API_KEY", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает API ключ из переменных окружения."""
        if not v:
            return os.getenv("GOOGLE_MAPS_API_KEY", "")
        return v


class TrackingSettings(BaseModel):
    """Значения по умолчанию для записей геолокации и поиска."""
    UPDATE_INTERVAL_MS: int = 30000
    SIGNIFICANT_CHANGE_THRESHOLD_M: float = 10.0
    BATTERY_OPTIMIZATION_ENABLED: bool = True
    MAX_HISTORY_ITEMS: int = 100
    HISTORY_DEFAULT_LIMIT: int = 50
    NEARBY_DEFAULT_RADIUS_M: float = 5000.0
    NEARBY_MAX_RADIUS_M: float = 100000.0
    CACHE_COORD_PRECISION: int = 4


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    system: SystemSettings = Field(default_factory=SystemSettings)
    deployment: DeploymentSettings = Field(default_factory=DeploymentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    domain: DomainSettings = Field(default_factory=DomainSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    redis_ttl: RedisTTLSettings = Field(default_factory=RedisTTLSettings)
    rabbitmq: RabbitMQSettings = Field(default_factory=RabbitMQSettings)
    google_maps: GoogleMapsSettings = Field(default_factory=GoogleMapsSettings)
    tracking: TrackingSettings = Field(default_factory=TrackingSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def from_config_json(cls) -> "Settings":
        """
        Создаёт объект Settings из config.json.
        Секреты и хосты переопределяются из переменных окружения.
        """
        data = load_config_json()

        return cls(
            system=SystemSettings(
                PROJECT_NAME=data.get("PROJECT_NAME", "fieldpro_location"),
                VERSION=data.get("VERSION", "1.0.0"),
                DEBUG=data.get("DEBUG", True),
                LOG_LEVEL=data.get("LOG_LEVEL", "DEBUG"),
                ENVIRONMENT=os.getenv("ENVIRONMENT", data.get("ENVIRONMENT", "development")),
            ),
            deployment=DeploymentSettings(
                LOCATION_SERVICE_HOST=os.getenv("LOCATION_SERVICE_HOST", data.get("LOCATION_SERVICE_HOST", "0.0.0.0")),
                LOCATION_SERVICE_PORT=int(os.getenv("LOCATION_SERVICE_PORT", data.get("LOCATION_SERVICE_PORT", 8090))),
                LOCATION_SERVICE_INSTANCES_COUNT=data.get("LOCATION_SERVICE_INSTANCES_COUNT", 1),
            ),
            logging=LoggingSettings(
                LOG_LEVEL=data.get("LOG_LEVEL", "DEBUG"),
                LOG_TO_FILE=data.get("LOG_TO_FILE", True),
                LOG_FILE_PATH=data.get("LOG_FILE_PATH", "logs/app.log"),
                LOG_FORMAT=data.get("LOG_FORMAT", "json"),
                LOG_MAX_BYTES=data.get("LOG_MAX_BYTES", 10485760),
            ),
            domain=DomainSettings(
                DOMAIN=data.get("DOMAIN", "fieldpro.example.com"),
                DEFAULT_LANGUAGE=data.get("DEFAULT_LANGUAGE", "en"),
                SUPPORTED_LANGUAGES=data.get("SUPPORTED_LANGUAGES", ["en", "ru"]),
                TIMEZONE=data.get("TIMEZONE", "Asia/Kolkata"),
            ),
            database=DatabaseSettings(
                DB_HOST=os.getenv("DB_HOST", data.get("DB_HOST", "localhost")),
                DB_PORT=int(os.getenv("DB_PORT", data.get("DB_PORT", 5432))),
                DB_NAME=os.getenv("DB_NAME", data.get("DB_NAME", "fieldpro")),
                DB_USER=os.getenv("DB_USER", data.get("DB_USER", "postgres")),
                DB_PASSWORD=os.getenv("DB_PASSWORD", data.get("DB_PASSWORD", "")),
                DB_MIN_POOL_SIZE=data.get("DB_MIN_POOL_SIZE", 5),
                DB_MAX_POOL_SIZE=data.get("DB_MAX_POOL_SIZE", 20),
                DB_COMMAND_TIMEOUT=data.get("DB_COMMAND_TIMEOUT", 60),
                DB_RETRY_ATTEMPTS=data.get("DB_RETRY_ATTEMPTS", 3),
                DB_RETRY_DELAY=data.get("DB_RETRY_DELAY", 1.0),
            ),
            redis=RedisSettings(
                REDIS_HOST=os.getenv("REDIS_HOST", data.get("REDIS_HOST", "localhost")),
                REDIS_PORT=int(os.getenv("REDIS_PORT", data.get("REDIS_PORT", 6379))),
                REDIS_DB=data.get("REDIS_DB", 0),
                REDIS_PASSWORD=os.getenv("REDIS_PASSWORD", data.get("REDIS_PASSWORD", "")),
                REDIS_NAMESPACE=data.get("REDIS_NAMESPACE", "fieldpro"),
                REDIS_MAX_CONNECTIONS=data.get("REDIS_MAX_CONNECTIONS", 50),
            ),
            redis_ttl=RedisTTLSettings(
                NEARBY_TTL=data.get("NEARBY_TTL", 60),
                REALTIME_CHANNEL_PREFIX=data.get("REALTIME_CHANNEL_PREFIX", "realtime"),
            ),
            rabbitmq=RabbitMQSettings(
                RABBITMQ_HOST=os.getenv("RABBITMQ_HOST", data.get("RABBITMQ_HOST", "localhost")),
                RABBITMQ_PORT=int(os.getenv("RABBITMQ_PORT", data.get("RABBITMQ_PORT", 5672))),
                RABBITMQ_USER=os.getenv("RABBITMQ_USER", data.get("RABBITMQ_USER", "guest")),
                RABBITMQ_PASSWORD=os.getenv("RABBITMQ_PASSWORD", data.get("RABBITMQ_PASSWORD", "guest")),
                RABBITMQ_VHOST=data.get("RABBITMQ_VHOST", "/"),
                RABBITMQ_EXCHANGE=data.get("RABBITMQ_EXCHANGE", "fieldpro.events"),
                RABBITMQ_PREFETCH_COUNT=data.get("RABBITMQ_PREFETCH_COUNT", 10),
            ),
            google_maps=GoogleMapsSettings(
                GOOGLE_MAPS_API_KEY=os.getenv("GOOGLE_MAPS_API_KEY", data.get("GOOGLE_MAPS_API_KEY", "")),
                GEOCODING_LANGUAGE=data.get("GEOCODING_LANGUAGE", "en"),
                GEOCODING_TIMEOUT=data.get("GEOCODING_TIMEOUT", 10.0),
            ),
            tracking=TrackingSettings(
                UPDATE_INTERVAL_MS=data.get("UPDATE_INTERVAL_MS", 30000),
                SIGNIFICANT_CHANGE_THRESHOLD_M=data.get("SIGNIFICANT_CHANGE_THRESHOLD_M", 10.0),
                BATTERY_OPTIMIZATION_ENABLED=data.get("BATTERY_OPTIMIZATION_ENABLED", True),
                MAX_HISTORY_ITEMS=data.get("MAX_HISTORY_ITEMS", 100),
                HISTORY_DEFAULT_LIMIT=data.get("HISTORY_DEFAULT_LIMIT", 50),
                NEARBY_DEFAULT_RADIUS_M=data.get("NEARBY_DEFAULT_RADIUS_M", 5000.0),
                NEARBY_MAX_RADIUS_M=data.get("NEARBY_MAX_RADIUS_M", 100000.0),
                CACHE_COORD_PRECISION=data.get("CACHE_COORD_PRECISION", 4),
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Возвращает синглтон настроек приложения.
    Перед чтением config.json подгружает .env из корня проекта.
    """
    from dotenv import load_dotenv

    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


# Экспорт синглтона для удобного импорта
settings = get_settings()
