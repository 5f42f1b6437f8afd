# src/core/geo/distance.py
"""
Геометрия на сфере: расстояние по формуле Haversine и проверка координат.
"""

from __future__ import annotations

import math

from src.core.errors import validation_error

EARTH_RADIUS_KM = 6371.0

# Запас прямоугольника поверх точной границы круга (погрешность float)
BOX_MARGIN_DEG = 1e-6


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Вычисляет расстояние между двумя точками (в км) по формуле Haversine.
    """
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon / 2) ** 2)

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def bounding_box(latitude: float, longitude: float, radius_km: float) -> tuple[float, float, float, float]:
    """
    Прямоугольник, гарантированно содержащий круг радиуса radius_km.
    Используется как грубый префильтр перед точным расчётом, поэтому
    размеры считаются в той же сфере радиуса EARTH_RADIUS_KM, что и haversine_km.

    Returns:
        (min_lat, max_lat, min_lon, max_lon)
    """
    angular = radius_km / EARTH_RADIUS_KM
    delta_lat = math.degrees(angular) + BOX_MARGIN_DEG
    min_lat = max(-90.0, latitude - delta_lat)
    max_lat = min(90.0, latitude + delta_lat)

    # Полюс внутри круга: ограничиваем только широту
    if max_lat >= 90.0 or min_lat <= -90.0:
        return min_lat, max_lat, -180.0, 180.0

    ratio = math.sin(angular) / math.cos(math.radians(latitude))
    if ratio >= 1.0:
        return min_lat, max_lat, -180.0, 180.0

    # Точная полуширина по долготе (касательные меридианы к кругу)
    delta_lon = math.degrees(math.asin(ratio)) + BOX_MARGIN_DEG
    min_lon = longitude - delta_lon
    max_lon = longitude + delta_lon
    # Переход через антимеридиан
    if min_lon < -180.0 or max_lon > 180.0:
        return min_lat, max_lat, -180.0, 180.0

    return min_lat, max_lat, min_lon, max_lon


def validate_coordinates(latitude: float, longitude: float) -> None:
    """
    Проверяет диапазоны координат.

    Raises:
        LocationError: VALIDATION_ERROR с именем поля
    """
    if latitude is None or not -90 <= latitude <= 90:
        raise validation_error("Invalid latitude. Must be between -90 and 90", field="latitude")
    if longitude is None or not -180 <= longitude <= 180:
        raise validation_error("Invalid longitude. Must be between -180 and 180", field="longitude")
