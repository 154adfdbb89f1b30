"""Booking submission: validation, pricing and atomic persistence."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Optional
from uuid import uuid4

from backend.domain.constraints import BookingPolicy, validate_booking_policy
from backend.domain.models import BOOKING_TYPE_PER_BED, BookingItem, PriceBreakdown, Room
from backend.repository.data_repository import (
    CapacityConflictError,
    DataRepository,
    NewBooking,
)
from backend.services.pricing_service import (
    DISCOUNT_FIXED,
    DISCOUNT_PERCENTAGE,
    apply_discount,
    build_add_on_item,
    build_room_item,
    build_surf_camp_item,
    calculate_nights,
    calculate_price_breakdown,
    validate_booking_dates,
)
from backend.utils.config import Settings, get_settings
from backend.utils.dates import parse_iso_date
from backend.utils.logger import get_logger


logger = get_logger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class BookingError(Exception):
    """Base exception for booking workflow failures."""


class BookingValidationError(BookingError):
    """Raised when a submission fails validation; carries every message."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


class CatalogItemNotFoundError(BookingError):
    """Raised when a room, camp or add-on does not exist or is inactive."""


class BookingNotFoundError(BookingError):
    """Raised when cancelling an unknown booking."""


class CapacityExceededError(BookingError):
    """Raised when the selected dates no longer have enough free beds."""


@dataclass(frozen=True)
class AddOnSelection:
    add_on_id: str
    quantity: int = 1


@dataclass(frozen=True)
class RoomBookingSubmission:
    client_name: str
    email: str
    room_id: str
    check_in: str
    check_out: str
    guests: int
    phone: str = ""
    add_ons: tuple[AddOnSelection, ...] = ()
    discount_type: Optional[str] = None
    discount_value: float = 0.0
    source_url: Optional[str] = None


@dataclass(frozen=True)
class CampParticipant:
    name: str
    email: str
    phone: str = ""
    surf_level: Optional[str] = None


@dataclass(frozen=True)
class SurfCampBookingSubmission:
    camp_id: str
    participants: tuple[CampParticipant, ...]
    special_requests: str = ""
    source_url: Optional[str] = None


@dataclass(frozen=True)
class BookingValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BookingConfirmation:
    booking_id: str
    booking_number: str
    status: str
    pricing: PriceBreakdown
    currency: str
    assigned_beds: list[int] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.booking_id,
            "booking_number": self.booking_number,
            "status": self.status,
            "pricing": {**self.pricing.to_dict(), "currency": self.currency},
            "assigned_beds": list(self.assigned_beds),
            "warnings": list(self.warnings),
        }


def _new_booking_ids() -> tuple[str, str]:
    booking_id = uuid4().hex
    return booking_id, f"WP-{booking_id[:8].upper()}"


class BookingService:
    """Validates, prices and persists widget bookings."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._today = today or date.today
        self._policy = BookingPolicy(
            minimum_stay_nights=self._settings.minimum_stay_nights,
            tax_rate=self._settings.default_tax_rate,
            service_fee_rate=self._settings.default_service_fee_rate,
            large_group_threshold=self._settings.large_group_threshold,
            late_booking_days=self._settings.late_booking_days,
            max_advance_booking_years=self._settings.max_advance_booking_years,
        )
        validate_booking_policy(self._policy)

    def get_booking_policies(self) -> dict[str, Any]:
        return {
            "minimum_stay": self._policy.minimum_stay_nights,
            "tax_rate": self._policy.tax_rate,
            "service_fee_rate": self._policy.service_fee_rate,
            "currency": self._settings.currency,
            "check_in_time": "15:00",
            "check_out_time": "11:00",
            "max_advance_booking_years": self._policy.max_advance_booking_years,
        }

    def validate_submission(self, submission: RoomBookingSubmission) -> BookingValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        if not submission.client_name.strip():
            errors.append("Client name is required")
        if not submission.email.strip():
            errors.append("Email is required")
        elif _EMAIL_PATTERN.fullmatch(submission.email.strip()) is None:
            errors.append("Invalid email format")
        if not submission.room_id.strip():
            errors.append("Room selection is required")
        if submission.guests < 1:
            errors.append("Number of guests must be at least 1")
        if not submission.check_in:
            errors.append("Check-in date is required")
        if not submission.check_out:
            errors.append("Check-out date is required")

        today = self._today()
        if submission.check_in and submission.check_out:
            dates_result = validate_booking_dates(
                submission.check_in,
                submission.check_out,
                today=today,
                max_advance_years=self._policy.max_advance_booking_years,
            )
            if not dates_result.is_valid:
                errors.append(dates_result.error or "Invalid booking dates")
            else:
                nights = calculate_nights(submission.check_in, submission.check_out)
                if nights < self._policy.minimum_stay_nights:
                    errors.append(
                        f"Minimum stay is {self._policy.minimum_stay_nights} nights"
                    )
                days_until = (parse_iso_date(submission.check_in) - today).days
                if days_until < self._policy.late_booking_days:
                    warnings.append("Late bookings may not be confirmed immediately")

        if submission.guests > self._policy.large_group_threshold:
            warnings.append("Large group bookings may require special arrangements")

        if submission.discount_type not in (None, DISCOUNT_PERCENTAGE, DISCOUNT_FIXED):
            errors.append("discount_type must be 'percentage' or 'fixed'")
        if submission.discount_value < 0:
            errors.append("discount_value must not be negative")

        for selection in submission.add_ons:
            if selection.quantity < 1:
                errors.append(f"Add-on {selection.add_on_id} quantity must be at least 1")

        return BookingValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def _require_room(self, room_id: str) -> Room:
        room = self._repository.get_room(room_id)
        if room is None or not room.is_active:
            raise CatalogItemNotFoundError(f"Room {room_id} is not available")
        return room

    def _add_on_items(self, selections: tuple[AddOnSelection, ...]) -> list[BookingItem]:
        items: list[BookingItem] = []
        for selection in selections:
            add_on = self._repository.get_add_on(selection.add_on_id)
            if add_on is None or not add_on.is_active:
                raise CatalogItemNotFoundError(f"Add-on {selection.add_on_id} is not available")
            if add_on.max_quantity is not None and selection.quantity > add_on.max_quantity:
                raise BookingValidationError(
                    [f"{add_on.name} is limited to {add_on.max_quantity} per booking"]
                )
            items.append(build_add_on_item(add_on, selection.quantity))
        return items

    def _breakdown(
        self,
        items: list[BookingItem],
        discount_type: Optional[str],
        discount_value: float,
    ) -> PriceBreakdown:
        gross = calculate_price_breakdown(
            items,
            tax_rate=self._policy.tax_rate,
            service_fee_rate=self._policy.service_fee_rate,
        )
        if not discount_type or discount_value <= 0:
            return gross
        discount = apply_discount(gross.total, discount_type, discount_value)
        return calculate_price_breakdown(
            items,
            tax_rate=self._policy.tax_rate,
            service_fee_rate=self._policy.service_fee_rate,
            discount_amount=discount.discount_amount,
        )

    def quote_room_booking(self, submission: RoomBookingSubmission) -> PriceBreakdown:
        """Price a stay plus add-ons without writing anything."""
        room = self._require_room(submission.room_id)
        items = [
            build_room_item(room, submission.check_in, submission.check_out, submission.guests),
            *self._add_on_items(submission.add_ons),
        ]
        return self._breakdown(items, submission.discount_type, submission.discount_value)

    def create_room_booking(self, submission: RoomBookingSubmission) -> BookingConfirmation:
        validation = self.validate_submission(submission)
        if not validation.is_valid:
            raise BookingValidationError(validation.errors)

        room = self._require_room(submission.room_id)
        if room.booking_type != BOOKING_TYPE_PER_BED and submission.guests > room.capacity:
            raise BookingValidationError(
                [f"{room.name} sleeps at most {room.capacity} guests"]
            )
        beds_needed = submission.guests if room.booking_type == BOOKING_TYPE_PER_BED else room.capacity

        breakdown = self.quote_room_booking(submission)
        booking_id, booking_number = _new_booking_ids()
        new_booking = NewBooking(
            booking_id=booking_id,
            booking_number=booking_number,
            client_name=submission.client_name.strip(),
            email=submission.email.strip(),
            phone=submission.phone,
            source="wordpress",
            notes=f"Source: {submission.source_url or 'WordPress site'}",
        )

        try:
            assigned_beds = self._repository.create_room_booking(
                new_booking,
                breakdown,
                room,
                parse_iso_date(submission.check_in).isoformat(),
                parse_iso_date(submission.check_out).isoformat(),
                beds_needed,
            )
        except CapacityConflictError as exc:
            logger.info("Room booking rejected | room_id=%s | reason=%s", room.room_id, exc)
            raise CapacityExceededError(str(exc)) from exc

        logger.info(
            "Room booking created | booking_id=%s | room_id=%s | guests=%s | total=%.2f",
            booking_id,
            room.room_id,
            submission.guests,
            breakdown.total,
        )
        return BookingConfirmation(
            booking_id=booking_id,
            booking_number=booking_number,
            status="pending",
            pricing=breakdown,
            currency=self._settings.currency,
            assigned_beds=assigned_beds,
            warnings=validation.warnings,
        )

    def create_surf_camp_booking(
        self,
        submission: SurfCampBookingSubmission,
    ) -> BookingConfirmation:
        errors: list[str] = []
        if not submission.camp_id.strip():
            errors.append("camp_id is required")
        if not submission.participants:
            errors.append("At least one participant is required")
        for participant in submission.participants:
            if not participant.name.strip() or not participant.email.strip():
                errors.append("Each participant must have name and email")
                break
            if _EMAIL_PATTERN.fullmatch(participant.email.strip()) is None:
                errors.append(f"Invalid email format: {participant.email}")
        if errors:
            raise BookingValidationError(errors)

        camp = self._repository.get_surf_camp(submission.camp_id)
        if camp is None or not camp.is_active:
            raise CatalogItemNotFoundError(f"Surf camp {submission.camp_id} is not available")

        participant_count = len(submission.participants)
        breakdown = self._breakdown(
            [build_surf_camp_item(camp, participant_count)],
            discount_type=None,
            discount_value=0.0,
        )
        primary = submission.participants[0]
        booking_id, booking_number = _new_booking_ids()
        notes = "\n".join(
            [
                "Booking created via WordPress widget",
                f"Source: {submission.source_url or 'WordPress site'}",
                f"Special requests: {submission.special_requests or 'None'}",
                "Participants: "
                + ", ".join(f"{item.name} ({item.email})" for item in submission.participants),
            ]
        )
        try:
            seats_left = self._repository.create_surf_camp_booking(
                NewBooking(
                    booking_id=booking_id,
                    booking_number=booking_number,
                    client_name=primary.name.strip(),
                    email=primary.email.strip(),
                    phone=primary.phone,
                    source="wordpress",
                    notes=notes,
                ),
                breakdown,
                camp,
                participant_count,
            )
        except CapacityConflictError as exc:
            raise CapacityExceededError(str(exc)) from exc

        logger.info(
            "Surf camp booking created | booking_id=%s | camp_id=%s | participants=%s | seats_left=%s",
            booking_id,
            camp.camp_id,
            participant_count,
            seats_left,
        )
        return BookingConfirmation(
            booking_id=booking_id,
            booking_number=booking_number,
            status="pending",
            pricing=breakdown,
            currency=self._settings.currency,
        )

    def get_booking(self, booking_id: str) -> dict[str, Any]:
        booking = self._repository.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return {
            "id": booking.booking_id,
            "booking_number": booking.booking_number,
            "status": booking.status,
            "client_name": booking.client_name,
            "total_amount": booking.total,
            "currency": self._settings.currency,
            "created_at": booking.created_at,
            "items": [item.to_dict() for item in self._repository.list_booking_items(booking_id)],
        }

    def cancel_booking(self, booking_id: str) -> dict[str, Any]:
        booking = self._repository.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        released = self._repository.cancel_booking(booking_id)
        logger.info("Booking cancelled | booking_id=%s | released_assignments=%s", booking_id, released)
        return {
            "id": booking_id,
            "booking_number": booking.booking_number,
            "status": "cancelled",
            "released_assignments": released,
        }
