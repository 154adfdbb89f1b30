"""HTTP controller layer for the WordPress widget availability endpoints."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import (
    API_PREFIX,
    cors_dependency,
    cors_headers,
    get_app_settings,
    get_availability_service,
    request_origin,
    require_api_key,
)
from backend.domain.models import RoomListing
from backend.services.availability_service import (
    AvailabilityService,
    AvailabilityUpstreamError,
    AvailabilityValidationError,
)
from backend.utils.config import Settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix=API_PREFIX, tags=["wordpress"])


class DateAvailabilityItem(BaseModel):
    date: str
    available: bool
    capacity: int = Field(ge=0)
    booked: int = Field(ge=0)
    remaining: int = Field(ge=0)


class AvailabilitySummaryResponse(BaseModel):
    total_dates_checked: int = Field(ge=0)
    available_dates: int = Field(ge=0)
    sold_out_dates: int = Field(ge=0)
    total_capacity: int = Field(ge=0)
    participants_requested: int = Field(ge=1)


class DateAvailabilityData(BaseModel):
    date_availability: list[DateAvailabilityItem]
    summary: AvailabilitySummaryResponse


class RoomListingResponse(BaseModel):
    id: str
    name: str
    capacity: int = Field(ge=0)
    price_per_night: float = Field(ge=0.0)
    amenities: list[str]
    featured_image: str
    description: str
    booking_type: str


class AvailableRoomsData(BaseModel):
    available_rooms: list[RoomListingResponse]


class RoomCatalogData(BaseModel):
    rooms: list[RoomListingResponse]


class DateAvailabilityEnvelope(BaseModel):
    success: bool = True
    data: DateAvailabilityData
    meta: dict[str, Any] = Field(default_factory=dict)


class AvailableRoomsEnvelope(BaseModel):
    success: bool = True
    data: AvailableRoomsData
    meta: dict[str, Any] = Field(default_factory=dict)


class RoomCatalogEnvelope(BaseModel):
    success: bool = True
    data: RoomCatalogData
    meta: dict[str, Any] = Field(default_factory=dict)


def _listings(rooms: list[RoomListing]) -> list[RoomListingResponse]:
    return [RoomListingResponse(**room.to_dict()) for room in rooms]


def _fallback_meta(fallback: bool, message: Optional[str]) -> dict[str, Any]:
    meta: dict[str, Any] = {}
    if fallback:
        meta["fallback"] = True
    if message:
        meta["message"] = message
    return meta


@router.options("/dates/availability", include_in_schema=False)
@router.options("/rooms/availability", include_in_schema=False)
@router.options("/rooms", include_in_schema=False)
async def availability_preflight(settings: Settings = Depends(get_app_settings)) -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=cors_headers(settings))


@router.get(
    "/dates/availability",
    response_model=DateAvailabilityEnvelope,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_api_key), Depends(cors_dependency())],
)
async def get_date_availability(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    participants: Optional[str] = None,
    service: AvailabilityService = Depends(get_availability_service),
) -> DateAvailabilityEnvelope:
    """Per-day capacity for the widget calendar, inclusive of both ends."""
    try:
        result = service.resolve_date_availability(start_date, end_date, participants)
    except AvailabilityValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except AvailabilityUpstreamError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected date availability failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to check date availability",
        ) from exc

    return DateAvailabilityEnvelope(
        data=DateAvailabilityData(
            date_availability=[DateAvailabilityItem(**day.to_dict()) for day in result.days],
            summary=AvailabilitySummaryResponse(**result.summary.to_dict()),
        ),
        meta={
            "checked_at": result.checked_at,
            "cache_expires_at": result.cache_expires_at,
            **_fallback_meta(result.fallback, result.message),
        },
    )


@router.get(
    "/rooms/availability",
    response_model=AvailableRoomsEnvelope,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_api_key), Depends(cors_dependency())],
)
async def get_room_availability(
    request: Request,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    participants: Optional[str] = None,
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailableRoomsEnvelope:
    try:
        result = service.resolve_room_availability(
            start_date,
            end_date,
            participants,
            origin=request_origin(request),
        )
    except AvailabilityValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except AvailabilityUpstreamError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected room availability failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to check room availability",
        ) from exc

    return AvailableRoomsEnvelope(
        data=AvailableRoomsData(available_rooms=_listings(result.rooms)),
        meta=_fallback_meta(result.fallback, result.message),
    )


@router.get(
    "/rooms",
    response_model=RoomCatalogEnvelope,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_api_key), Depends(cors_dependency())],
)
async def list_rooms(
    request: Request,
    service: AvailabilityService = Depends(get_availability_service),
) -> RoomCatalogEnvelope:
    try:
        result = service.list_rooms(origin=request_origin(request))
    except AvailabilityUpstreamError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected room catalogue failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch rooms",
        ) from exc

    return RoomCatalogEnvelope(
        data=RoomCatalogData(rooms=_listings(result.rooms)),
        meta=_fallback_meta(result.fallback, result.message),
    )
