# src/core/geo/__init__.py
"""
Geo-утилиты: расстояния, проверка координат, обратное геокодирование.
"""

from src.core.geo.distance import bounding_box, haversine_km, validate_coordinates
from src.core.geo.service import GeoService

__all__ = [
    "GeoService",
    "bounding_box",
    "haversine_km",
    "validate_coordinates",
]
