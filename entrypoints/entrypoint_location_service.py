#!/usr/bin/env python3
"""
Entrypoint для сервиса геолокации специалистов.

Запуск:
    python entrypoints/entrypoint_location_service.py

Порт по умолчанию: 8090 (deployment.LOCATION_SERVICE_PORT)
"""

import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

import uvicorn

from src.config import settings


def main() -> None:
    """Запустить сервис геолокации."""
    uvicorn.run(
        "src.services.location_service.app:app",
        host=settings.deployment.LOCATION_SERVICE_HOST,
        port=settings.deployment.LOCATION_SERVICE_PORT,
        workers=settings.deployment.LOCATION_SERVICE_INSTANCES_COUNT if not settings.system.DEBUG else None,
        reload=settings.system.DEBUG,
        log_level=settings.system.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
