# src/services/location_service/app.py
"""
FastAPI приложение сервиса геолокации специалистов.

Endpoints (префикс /api/v1/location):
- POST /update, /status, /tracking, /settings, /notify - специалист, сам себе
- GET /professional/{id}, /professional/{id}/history
- GET /nearby - ближайшие специалисты
- POST /subscribe/{id}, /unsubscribe/{id}, GET /subscriptions
- GET /geocode/reverse
Служебные: GET /health, GET /stats
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.common.logger import log_error, log_info, setup_logging
from src.common.constants import TypeMsg
from src.config import settings
from src.core.errors import ErrorKind, LocationError
from src.shared.models.common import ErrorResponse, HealthStatus
from src.services.location_service.dependencies import (
    LocationContainer,
    get_container,
    set_container,
)
from src.services.location_service.routes import router
from src.services.location_service.schemas import StatsResponse

SERVICE_NAME = "location_service"

_started_at = time.monotonic()


# === LIFESPAN ===

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Подключение инфраструктуры и сборка компонентов."""
    from src.infra.database import close_db, init_db
    from src.infra.event_bus import close_event_bus, init_event_bus
    from src.infra.redis_client import close_redis, init_redis

    setup_logging()
    db = await init_db()
    redis = await init_redis()
    event_bus = await init_event_bus()

    container = LocationContainer(db, redis, event_bus)
    set_container(container)
    await log_info(f"{SERVICE_NAME} запущен", type_msg=TypeMsg.INFO)

    yield

    await container.close()
    set_container(None)
    await close_event_bus()
    await close_redis()
    await close_db()
    await log_info(f"{SERVICE_NAME} остановлен", type_msg=TypeMsg.INFO)


# === APP ===

app = FastAPI(
    title="Professional Location Service",
    description="Трекинг геолокации специалистов, поиск ближайших и live-подписки.",
    version=settings.system.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)
app.include_router(router)


# === ОБРАБОТЧИКИ ОШИБОК ===

def _error(status_code: int, error_code: str, message: str, details: dict | None = None) -> JSONResponse:
    body = ErrorResponse(error_code=error_code, message=message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(LocationError)
async def location_error_handler(request: Request, exc: LocationError) -> JSONResponse:
    await log_info(
        f"{request.method} {request.url.path}: {exc.kind.value} ({exc.message})",
        type_msg=TypeMsg.DEBUG,
    )
    return _error(exc.http_status, exc.kind.value, exc.message, exc.details())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    return _error(
        400,
        ErrorKind.VALIDATION_ERROR.value,
        first.get("msg", "Invalid request"),
        {"field": field} if field else None,
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    codes = {401: "UNAUTHORIZED", 403: "FORBIDDEN", 404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}
    return _error(exc.status_code, codes.get(exc.status_code, "HTTP_ERROR"), str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    await log_error(f"Необработанная ошибка {request.method} {request.url.path}: {exc}", exc_info=True)
    return _error(500, "INTERNAL_ERROR", "Internal server error")


# === HEALTH CHECK ===

@app.get("/health", response_model=HealthStatus, tags=["Health"])
async def health_check() -> HealthStatus:
    """Проверка здоровья сервиса и его зависимостей."""
    container = get_container()
    checks = {
        "postgres": await container.db.health_check(),
        "redis": await container.redis.health_check(),
        "rabbitmq": await container.event_bus.health_check(),
    }
    dependencies = {name: "healthy" if ok else "unhealthy" for name, ok in checks.items()}

    if not checks["postgres"]:
        overall = "unhealthy"
    elif all(checks.values()):
        overall = "healthy"
    else:
        overall = "degraded"

    return HealthStatus(
        service=SERVICE_NAME,
        status=overall,
        version=settings.system.VERSION,
        uptime_seconds=round(time.monotonic() - _started_at, 1),
        dependencies=dependencies,
    )


# === STATS ===

@app.get("/stats", response_model=StatsResponse, tags=["Stats"])
async def get_stats() -> StatsResponse:
    """Статистика: специалисты по статусам и счётчики кэша поиска."""
    container = get_container()
    return StatsResponse(
        professionals_by_status=await container.locations.count_by_status(),
        cache=container.nearby_cache.stats(),
    )
