# src/core/geo/service.py
"""
Geo-сервис для работы с Google Maps Geocoding API.
Обратное геокодирование координат специалиста в адрес.
"""

from __future__ import annotations

from typing import Optional

import httpx

from src.common.constants import TypeMsg
from src.common.logger import log_info, log_error


class GeoService:
    """Обратное геокодирование через Google Maps (httpx.AsyncClient)."""

    GEOCODING_URL = "https://maps.googleapis.com/maps/api/geocode/json"

    def __init__(
        self,
        api_key: str | None = None,
        language: str = "en",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            api_key: API ключ Google Maps (берётся из конфига если None)
            language: Язык ответов
            timeout: Таймаут HTTP запросов (секунды)
            client: Готовый HTTP клиент (для тестов)
        """
        if api_key is None:
            from src.config import settings
            api_key = settings.google_maps.GOOGLE_MAPS_API_KEY
            language = settings.google_maps.GEOCODING_LANGUAGE
            timeout = settings.google_maps.GEOCODING_TIMEOUT

        self._api_key = api_key
        self._language = language
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Закрывает HTTP клиент."""
        await self._client.aclose()

    async def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        """
        Обратное геокодирование: координаты -> адрес.

        Returns:
            formatted_address первого результата или None
        """
        if not self._api_key:
            await log_error("Google Maps API key не настроен")
            return None

        try:
            response = await self._client.get(
                self.GEOCODING_URL,
                params={
                    "latlng": f"{latitude},{longitude}",
                    "key": self._api_key,
                    "language": self._language,
                },
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            await log_error(f"Ошибка обратного геокодирования: {e}")
            return None

        if data.get("status") != "OK" or not data.get("results"):
            await log_info(
                f"Адрес не найден для {latitude},{longitude} (status={data.get('status')})",
                type_msg=TypeMsg.WARNING,
            )
            return None

        return data["results"][0].get("formatted_address")
