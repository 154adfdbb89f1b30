"""HTTP controller layer for widget booking submission and cancellation."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field, field_validator

from backend.controllers.dependencies import (
    API_PREFIX,
    cors_dependency,
    cors_headers,
    get_app_settings,
    get_booking_service,
    require_api_key,
)
from backend.repository.data_repository import RepositoryUnavailableError
from backend.services.booking_service import (
    AddOnSelection,
    BookingConfirmation,
    BookingNotFoundError,
    BookingService,
    BookingValidationError,
    CampParticipant,
    CapacityExceededError,
    CatalogItemNotFoundError,
    RoomBookingSubmission,
    SurfCampBookingSubmission,
)
from backend.utils.config import Settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(prefix=API_PREFIX, tags=["bookings"])

BOOKING_METHODS = "GET, POST, DELETE, OPTIONS"

_BOOKING_DEPENDENCIES = [Depends(require_api_key), Depends(cors_dependency(BOOKING_METHODS))]


class ParticipantPayload(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    surf_level: Optional[str] = None


class AddOnPayload(BaseModel):
    id: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)


class DiscountPayload(BaseModel):
    type: Literal["percentage", "fixed"]
    value: float = Field(ge=0.0)


class RoomBookingRequest(BaseModel):
    """Room stay submitted by the widget; the first participant is the booker."""

    room_id: str = Field(min_length=1)
    start_date: str = Field(min_length=1)
    end_date: str = Field(min_length=1)
    participants: list[ParticipantPayload] = Field(min_length=1)
    add_ons: list[AddOnPayload] = Field(default_factory=list)
    discount: Optional[DiscountPayload] = None
    source_url: Optional[str] = None

    @field_validator("participants")
    @classmethod
    def validate_participants(cls, value: list[ParticipantPayload]) -> list[ParticipantPayload]:
        for participant in value:
            if not participant.name.strip() or not participant.email.strip():
                raise ValueError("Each participant must have name and email")
        return value


class SurfCampBookingRequest(BaseModel):
    camp_id: str = Field(min_length=1)
    participants: list[ParticipantPayload] = Field(min_length=1)
    special_requests: str = ""
    source_url: Optional[str] = None


class PricingResponse(BaseModel):
    subtotal: float = Field(ge=0.0)
    taxes: float = Field(ge=0.0)
    fees: float = Field(ge=0.0)
    discounts: float = Field(ge=0.0)
    total: float = Field(ge=0.0)
    currency: str
    items: list[dict[str, Any]]


class BookingConfirmationData(BaseModel):
    id: str
    booking_number: str
    status: str
    pricing: PricingResponse
    assigned_beds: list[int]
    warnings: list[str]


class BookingConfirmationEnvelope(BaseModel):
    success: bool = True
    data: BookingConfirmationData
    meta: dict[str, Any] = Field(default_factory=dict)


class BookingEnvelope(BaseModel):
    success: bool = True
    data: dict[str, Any]
    meta: dict[str, Any] = Field(default_factory=dict)


def _confirmation_envelope(confirmation: BookingConfirmation) -> BookingConfirmationEnvelope:
    return BookingConfirmationEnvelope(
        data=BookingConfirmationData(**confirmation.to_dict()),
        meta={
            "created_at": datetime.now(timezone.utc).isoformat(),
            "source": "wordpress_widget",
            "booking_reference": confirmation.booking_number,
        },
    )


def _booking_http_error(exc: Exception, action: str) -> HTTPException:
    if isinstance(exc, BookingValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(exc), "details": exc.errors},
        )
    if isinstance(exc, (CatalogItemNotFoundError, BookingNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, CapacityExceededError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, RepositoryUnavailableError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Booking data is temporarily unavailable. Please try again.",
        )
    logger.error("Unexpected booking failure during %s", action, exc_info=exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}",
    )


@router.options("/room-bookings", include_in_schema=False)
@router.options("/bookings", include_in_schema=False)
@router.options("/bookings/{booking_id}", include_in_schema=False)
@router.options("/booking-policies", include_in_schema=False)
async def booking_preflight(settings: Settings = Depends(get_app_settings)) -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=cors_headers(settings, BOOKING_METHODS))


@router.post(
    "/room-bookings",
    response_model=BookingConfirmationEnvelope,
    status_code=status.HTTP_200_OK,
    dependencies=_BOOKING_DEPENDENCIES,
)
async def create_room_booking(
    payload: RoomBookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingConfirmationEnvelope:
    """Validate, price and persist a room stay with optional add-ons."""
    primary = payload.participants[0]
    submission = RoomBookingSubmission(
        client_name=primary.name,
        email=primary.email,
        phone=primary.phone,
        room_id=payload.room_id,
        check_in=payload.start_date,
        check_out=payload.end_date,
        guests=len(payload.participants),
        add_ons=tuple(AddOnSelection(item.id, item.quantity) for item in payload.add_ons),
        discount_type=payload.discount.type if payload.discount else None,
        discount_value=payload.discount.value if payload.discount else 0.0,
        source_url=payload.source_url,
    )
    try:
        confirmation = service.create_room_booking(submission)
    except Exception as exc:
        raise _booking_http_error(exc, "create room booking") from exc
    return _confirmation_envelope(confirmation)


@router.post(
    "/bookings",
    response_model=BookingConfirmationEnvelope,
    status_code=status.HTTP_200_OK,
    dependencies=_BOOKING_DEPENDENCIES,
)
async def create_surf_camp_booking(
    payload: SurfCampBookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingConfirmationEnvelope:
    submission = SurfCampBookingSubmission(
        camp_id=payload.camp_id,
        participants=tuple(
            CampParticipant(
                name=item.name,
                email=item.email,
                phone=item.phone,
                surf_level=item.surf_level,
            )
            for item in payload.participants
        ),
        special_requests=payload.special_requests,
        source_url=payload.source_url,
    )
    try:
        confirmation = service.create_surf_camp_booking(submission)
    except Exception as exc:
        raise _booking_http_error(exc, "create booking") from exc
    return _confirmation_envelope(confirmation)


@router.get(
    "/bookings",
    response_model=BookingEnvelope,
    status_code=status.HTTP_200_OK,
    dependencies=_BOOKING_DEPENDENCIES,
)
async def get_booking(
    booking_id: Optional[str] = None,
    service: BookingService = Depends(get_booking_service),
) -> BookingEnvelope:
    """Booking lookup used by payment confirmation callbacks."""
    if not booking_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="booking_id parameter required",
        )
    try:
        booking = service.get_booking(booking_id)
    except Exception as exc:
        raise _booking_http_error(exc, "retrieve booking") from exc
    return BookingEnvelope(data=booking)


@router.delete(
    "/bookings/{booking_id}",
    response_model=BookingEnvelope,
    status_code=status.HTTP_200_OK,
    dependencies=_BOOKING_DEPENDENCIES,
)
async def cancel_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
) -> BookingEnvelope:
    try:
        result = service.cancel_booking(booking_id)
    except Exception as exc:
        raise _booking_http_error(exc, "cancel booking") from exc
    return BookingEnvelope(data=result)


@router.get(
    "/booking-policies",
    response_model=BookingEnvelope,
    status_code=status.HTTP_200_OK,
    dependencies=_BOOKING_DEPENDENCIES,
)
async def get_booking_policies(
    service: BookingService = Depends(get_booking_service),
) -> BookingEnvelope:
    return BookingEnvelope(data={"policies": service.get_booking_policies()})
