# src/core/matching/__init__.py
"""
Домен поиска специалистов.
Поиск ближайших по расстоянию и TTL-кэш результатов.
"""

from src.core.matching.cache import NearbyQueryCache, make_nearby_key
from src.core.matching.proximity import NearbyFilters, NearbyProfessional, ProximityIndex

__all__ = [
    "NearbyFilters",
    "NearbyProfessional",
    "NearbyQueryCache",
    "ProximityIndex",
    "make_nearby_key",
]
