# src/core/tracking/__init__.py
"""
Домен трекинга геолокации специалистов.
"""

from src.core.tracking.models import (
    HistoryEntry,
    LocationView,
    Position,
    ProfessionalLocation,
    TrackingSettings,
    TrackingSettingsUpdate,
)
from src.core.tracking.repository import LocationRepository, NearbyCandidate
from src.core.tracking.service import LocationService

__all__ = [
    "HistoryEntry",
    "LocationView",
    "Position",
    "ProfessionalLocation",
    "TrackingSettings",
    "TrackingSettingsUpdate",
    "LocationRepository",
    "NearbyCandidate",
    "LocationService",
]
