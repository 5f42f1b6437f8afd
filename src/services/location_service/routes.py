# src/services/location_service/routes.py
"""
HTTP маршруты сервиса геолокации.
Тонкий слой: разбор запроса, вызов сервиса, сборка ответа.
Доменные ошибки превращаются в ответы обработчиками в app.py.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.config import settings
from src.core.errors import not_found
from src.core.geo.service import GeoService
from src.core.matching.cache import NearbyQueryCache
from src.core.matching.proximity import NearbyFilters
from src.core.notifications.fanout import FanoutNotifier
from src.core.notifications.subscriptions import SubscriptionRegistry
from src.core.geo.distance import validate_coordinates
from src.core.tracking.models import Position, TrackingSettingsUpdate
from src.core.tracking.service import LocationService
from src.services.location_service.dependencies import (
    get_caller_id,
    get_fanout,
    get_geo_service,
    get_location_service,
    get_nearby_cache,
    get_registry,
    require_professional_caller,
)
from src.services.location_service.schemas import (
    HistoryResponse,
    LocationRecordResponse,
    NearbyResponse,
    NotifyResponse,
    ProfessionalLocationResponse,
    ReverseGeocodeResponse,
    StatusRequest,
    SubscribeResponse,
    SubscriptionsResponse,
    TrackingRequest,
)

router = APIRouter(prefix="/api/v1/location", tags=["Location"])


def _split_csv(values: list[str]) -> list[str]:
    """Поддерживает и ?services=a&services=b, и ?services=a,b."""
    return [item.strip() for value in values for item in value.split(",") if item.strip()]


# === ЗАПИСЬ (ТОЛЬКО СПЕЦИАЛИСТ, САМ СЕБЕ) ===

@router.post("/update", response_model=LocationRecordResponse, summary="Обновить геолокацию")
async def update_location(
    position: Position,
    caller_id: str = Depends(require_professional_caller),
    service: LocationService = Depends(get_location_service),
    fanout: FanoutNotifier = Depends(get_fanout),
) -> LocationRecordResponse:
    record = await service.update_location(caller_id, position)
    await fanout.notify_after_update(caller_id, position)
    return LocationRecordResponse.from_record(record)


@router.post("/status", response_model=LocationRecordResponse, summary="Сменить статус")
async def update_status(
    request: StatusRequest,
    caller_id: str = Depends(require_professional_caller),
    service: LocationService = Depends(get_location_service),
) -> LocationRecordResponse:
    record = await service.update_status(caller_id, request.status)
    return LocationRecordResponse.from_record(record)


@router.post("/tracking", response_model=LocationRecordResponse, summary="Включить/выключить трекинг")
async def set_tracking(
    request: TrackingRequest,
    caller_id: str = Depends(require_professional_caller),
    service: LocationService = Depends(get_location_service),
) -> LocationRecordResponse:
    record = await service.set_tracking_enabled(caller_id, request.enabled)
    return LocationRecordResponse.from_record(record)


@router.post("/settings", response_model=LocationRecordResponse, summary="Обновить настройки трекинга")
async def update_settings(
    request: TrackingSettingsUpdate,
    caller_id: str = Depends(require_professional_caller),
    service: LocationService = Depends(get_location_service),
) -> LocationRecordResponse:
    record = await service.update_tracking_settings(caller_id, request)
    return LocationRecordResponse.from_record(record)


@router.post("/notify", response_model=NotifyResponse, summary="Разослать позицию подписчикам")
async def notify_subscribers(
    position: Position,
    caller_id: str = Depends(require_professional_caller),
    fanout: FanoutNotifier = Depends(get_fanout),
) -> NotifyResponse:
    result = await fanout.notify_subscribers(caller_id, position)
    return NotifyResponse(
        notified_count=result.notified_count,
        subscriber_count=result.subscriber_count,
    )


# === ЧТЕНИЕ ===

@router.get("/nearby", response_model=NearbyResponse, summary="Ближайшие специалисты")
async def find_nearby(
    latitude: float = Query(...),
    longitude: float = Query(...),
    radius: float = Query(default=settings.tracking.NEARBY_DEFAULT_RADIUS_M, description="Радиус, м"),
    status: str = Query(default="available", description="available | busy | offline | all"),
    services: list[str] = Query(default=[]),
    specialties: list[str] = Query(default=[]),
    limit: Optional[int] = Query(default=None),
    cache: NearbyQueryCache = Depends(get_nearby_cache),
) -> NearbyResponse:
    filters = NearbyFilters(services=_split_csv(services), specialties=_split_csv(specialties))
    results = await cache.find_nearby(latitude, longitude, radius, status, filters, limit)
    return NearbyResponse(count=len(results), radius_m=radius, results=results)


@router.get("/subscriptions", response_model=SubscriptionsResponse, summary="Кого я отслеживаю")
async def list_subscriptions(
    caller_id: str = Depends(get_caller_id),
    registry: SubscriptionRegistry = Depends(get_registry),
) -> SubscriptionsResponse:
    subscriptions = await registry.list_subscriptions(caller_id)
    return SubscriptionsResponse(count=len(subscriptions), subscriptions=subscriptions)


@router.get("/geocode/reverse", response_model=ReverseGeocodeResponse, summary="Адрес по координатам")
async def reverse_geocode(
    latitude: float = Query(...),
    longitude: float = Query(...),
    geo: GeoService = Depends(get_geo_service),
) -> ReverseGeocodeResponse:
    validate_coordinates(latitude, longitude)
    address = await geo.reverse_geocode(latitude, longitude)
    if not address:
        raise not_found("address", "No address found for the given coordinates")
    return ReverseGeocodeResponse(latitude=latitude, longitude=longitude, address=address)


@router.get(
    "/professional/{professional_id}",
    response_model=ProfessionalLocationResponse,
    summary="Текущая геолокация специалиста",
)
async def get_location(
    professional_id: str,
    service: LocationService = Depends(get_location_service),
) -> ProfessionalLocationResponse:
    view = await service.get_location(professional_id)
    base = LocationRecordResponse.from_record(view.location)
    return ProfessionalLocationResponse(**base.model_dump(), professional=view.professional)


@router.get(
    "/professional/{professional_id}/history",
    response_model=HistoryResponse,
    summary="История геолокации",
)
async def get_history(
    professional_id: str,
    limit: int = Query(default=settings.tracking.HISTORY_DEFAULT_LIMIT),
    service: LocationService = Depends(get_location_service),
) -> HistoryResponse:
    history = await service.get_history(professional_id, limit)
    return HistoryResponse(professional_id=professional_id, count=len(history), history=history)


# === ПОДПИСКИ ===

@router.post("/subscribe/{professional_id}", response_model=SubscribeResponse, summary="Подписаться")
async def subscribe(
    professional_id: str,
    caller_id: str = Depends(get_caller_id),
    registry: SubscriptionRegistry = Depends(get_registry),
) -> SubscribeResponse:
    result = await registry.subscribe(caller_id, professional_id)
    message = (
        "Already subscribed to location updates"
        if result.already_subscribed
        else "Subscribed to location updates"
    )
    return SubscribeResponse(
        message=message,
        already_subscribed=result.already_subscribed,
        subscription=result.subscription,
    )


@router.post("/unsubscribe/{professional_id}", response_model=SubscribeResponse, summary="Отписаться")
async def unsubscribe(
    professional_id: str,
    caller_id: str = Depends(get_caller_id),
    registry: SubscriptionRegistry = Depends(get_registry),
) -> SubscribeResponse:
    subscription = await registry.unsubscribe(caller_id, professional_id)
    return SubscribeResponse(
        message="Unsubscribed from location updates",
        subscription=subscription,
    )
