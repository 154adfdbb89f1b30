"""Date-range and per-room availability resolution over room assignments."""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional, Sequence, Union

import numpy as np
import pandas as pd

from backend.domain.models import (
    BOOKING_TYPE_PER_BED,
    BOOKING_TYPE_WHOLE,
    AvailabilitySummary,
    DateAvailability,
    Room,
    RoomAssignment,
    RoomListing,
)
from backend.repository.data_repository import DataRepository, RepositoryUnavailableError
from backend.services.pricing_service import base_nightly_rate
from backend.utils.config import Settings, get_settings
from backend.utils.dates import iter_days, parse_iso_date
from backend.utils.logger import get_logger


logger = get_logger(__name__)

FALLBACK_TOTAL_CAPACITY = 10

PLACEHOLDER_IMAGE = (
    "data:image/svg+xml;base64,PHN2ZyB3aWR0aD0iMzAwIiBoZWlnaHQ9IjE4MCIgdmlld0JveD0iMCAwIDMwMCAx"
    "ODAiIHhtbG5zPSJodHRwOi8vd3d3LnczLm9yZy8yMDAwL3N2ZyI+PHJlY3Qgd2lkdGg9IjMwMCIgaGVpZ2h0PSIx"
    "ODAiIGZpbGw9IiMwMzk0RDkiLz48L3N2Zz4="
)


class AvailabilityError(Exception):
    """Base exception for availability resolution failures."""


class AvailabilityValidationError(AvailabilityError):
    """Raised when the requested range or participant count is invalid."""


class AvailabilityUpstreamError(AvailabilityError):
    """Raised when the store is down and fallback data is disabled."""


@dataclass(frozen=True)
class DateAvailabilityResult:
    days: list[DateAvailability]
    summary: AvailabilitySummary
    checked_at: str
    cache_expires_at: str
    fallback: bool = False
    message: Optional[str] = None


@dataclass(frozen=True)
class RoomAvailabilityResult:
    rooms: list[RoomListing]
    fallback: bool = False
    message: Optional[str] = None


@dataclass(frozen=True)
class AvailabilityQuery:
    start: date
    end: date
    participants: int = 1


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_participants(value: Union[str, int, None]) -> int:
    if value is None or value == "":
        return 1
    try:
        participants = int(value)
    except (TypeError, ValueError) as exc:
        raise AvailabilityValidationError("participants must be a whole number") from exc
    if participants < 1:
        raise AvailabilityValidationError("participants must be at least 1")
    return participants


def validate_availability_query(
    start_date: Optional[str],
    end_date: Optional[str],
    participants: Union[str, int, None] = 1,
) -> AvailabilityQuery:
    if not start_date or not end_date:
        raise AvailabilityValidationError("start_date and end_date are required")
    try:
        start = parse_iso_date(start_date)
        end = parse_iso_date(end_date)
    except ValueError as exc:
        raise AvailabilityValidationError(
            "Provide valid dates in YYYY-MM-DD format"
        ) from exc
    if end <= start:
        raise AvailabilityValidationError("end_date must be after start_date")
    return AvailabilityQuery(start=start, end=end, participants=parse_participants(participants))


def compute_daily_availability(
    first_day: date,
    last_day: date,
    assignments: Sequence[RoomAssignment],
    total_capacity: int,
    participants: int,
) -> list[DateAvailability]:
    """Count assignments covering each day under [check_in, check_out)."""
    calendar = pd.date_range(start=first_day, end=last_day, freq="D")
    if assignments:
        check_in = pd.to_datetime(
            [item.check_in_date for item in assignments], format="%Y-%m-%d"
        ).to_numpy()
        check_out = pd.to_datetime(
            [item.check_out_date for item in assignments], format="%Y-%m-%d"
        ).to_numpy()
        day_values = calendar.to_numpy()[:, np.newaxis]
        covered = (check_in <= day_values) & (check_out > day_values)
        booked = covered.sum(axis=1)
    else:
        booked = np.zeros(len(calendar), dtype=int)

    remaining = np.maximum(0, total_capacity - booked)
    return [
        DateAvailability(
            date=day.date().isoformat(),
            available=bool(free >= participants),
            capacity=int(total_capacity),
            booked=int(taken),
            remaining=int(free),
        )
        for day, taken, free in zip(calendar, booked, remaining)
    ]


def generate_fallback_date_availability(
    first_day: date,
    last_day: date,
    participants: int,
    seed: int,
) -> list[DateAvailability]:
    """Deterministic stand-in calendar; weekends sell out more often."""
    rows: list[DateAvailability] = []
    for day in iter_days(first_day, last_day):
        rng = random.Random(f"{seed}:{day.isoformat()}")
        sold_out_odds = 0.3 if day.weekday() >= 5 else 0.1
        if rng.random() > sold_out_odds:
            remaining = rng.randint(1, 5)
        else:
            remaining = 0
        rows.append(
            DateAvailability(
                date=day.isoformat(),
                available=remaining >= participants,
                capacity=FALLBACK_TOTAL_CAPACITY,
                booked=FALLBACK_TOTAL_CAPACITY - remaining,
                remaining=remaining,
            )
        )
    return rows


def resolve_image_url(images: Sequence[str], origin: str) -> str:
    if not images:
        return PLACEHOLDER_IMAGE
    first = images[0]
    if first.startswith("http") or first.startswith("data:"):
        return first
    base = origin.rstrip("/")
    if first.startswith("/"):
        return f"{base}{first}"
    return f"{base}/{first}"


def to_room_listing(room: Room, origin: str) -> RoomListing:
    return RoomListing(
        room_id=room.room_id,
        name=room.name,
        capacity=room.capacity,
        price_per_night=base_nightly_rate(room),
        amenities=list(room.amenities),
        featured_image=resolve_image_url(room.images, origin),
        description=room.description,
        booking_type=room.booking_type,
    )


def fallback_rooms(origin: str) -> list[RoomListing]:
    base = origin.rstrip("/")
    return [
        RoomListing(
            room_id="room-1",
            name="Room Nr 1",
            capacity=2,
            price_per_night=90,
            amenities=["ocean_view", "private_bathroom", "wifi"],
            featured_image=f"{base}/room1.jpg",
            description="Cozy double room with ocean view and private bathroom.",
            booking_type=BOOKING_TYPE_WHOLE,
        ),
        RoomListing(
            room_id="room-3",
            name="Room Nr 3",
            capacity=2,
            price_per_night=80,
            amenities=["balcony", "wifi"],
            featured_image=f"{base}/room3.webp",
            description="Bright room with balcony and fast Wi-Fi, perfect for remote work.",
            booking_type=BOOKING_TYPE_WHOLE,
        ),
        RoomListing(
            room_id="dorm",
            name="Dorm Room",
            capacity=6,
            price_per_night=30,
            amenities=["bunk_beds", "shared_bathroom", "wifi"],
            featured_image=f"{base}/dorm.webp",
            description="Budget-friendly shared dorm with comfortable bunks and lockers.",
            booking_type=BOOKING_TYPE_PER_BED,
        ),
    ]


class AvailabilityService:
    """Answers per-day and per-room capacity questions for a stay window."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock or _utc_now

    def _degrade(self, exc: RepositoryUnavailableError, context: str) -> None:
        if not self._settings.allow_fallback_data:
            logger.error("%s failed and fallback data is disabled: %s", context, exc)
            raise AvailabilityUpstreamError(
                "Availability data is temporarily unavailable. Please try again."
            ) from exc
        logger.warning("%s failed; serving fallback data: %s", context, exc)

    def resolve_date_availability(
        self,
        start_date: Optional[str],
        end_date: Optional[str],
        participants: Union[str, int, None] = 1,
    ) -> DateAvailabilityResult:
        query = validate_availability_query(start_date, end_date, participants)
        checked_at = self._clock()
        expires_at = checked_at + timedelta(seconds=self._settings.availability_cache_ttl_seconds)

        try:
            rooms = self._repository.list_active_rooms()
            assignments = self._repository.list_assignments_covering(
                query.start.isoformat(),
                query.end.isoformat(),
            )
        except RepositoryUnavailableError as exc:
            self._degrade(exc, "Date availability query")
            days = generate_fallback_date_availability(
                query.start,
                query.end,
                query.participants,
                self._settings.fallback_random_seed,
            )
            return DateAvailabilityResult(
                days=days,
                summary=AvailabilitySummary.from_days(
                    days, FALLBACK_TOTAL_CAPACITY, query.participants
                ),
                checked_at=checked_at.isoformat(),
                cache_expires_at=expires_at.isoformat(),
                fallback=True,
                message="Using fallback data - availability store unavailable",
            )

        total_capacity = sum(room.capacity for room in rooms)
        days = compute_daily_availability(
            query.start,
            query.end,
            assignments,
            total_capacity,
            query.participants,
        )
        summary = AvailabilitySummary.from_days(days, total_capacity, query.participants)
        logger.info(
            "Date availability resolved | start=%s | end=%s | participants=%s | available=%s | sold_out=%s",
            query.start.isoformat(),
            query.end.isoformat(),
            query.participants,
            summary.available_dates,
            summary.sold_out_dates,
        )
        return DateAvailabilityResult(
            days=days,
            summary=summary,
            checked_at=checked_at.isoformat(),
            cache_expires_at=expires_at.isoformat(),
        )

    def resolve_room_availability(
        self,
        start_date: Optional[str],
        end_date: Optional[str],
        participants: Union[str, int, None] = 1,
        origin: str = "",
    ) -> RoomAvailabilityResult:
        query = validate_availability_query(start_date, end_date, participants)

        try:
            rooms = self._repository.list_active_rooms()
            occupied = self._repository.count_occupied_by_room(
                query.start.isoformat(),
                query.end.isoformat(),
            )
        except RepositoryUnavailableError as exc:
            self._degrade(exc, "Room availability query")
            return RoomAvailabilityResult(
                rooms=fallback_rooms(origin),
                fallback=True,
                message="Using fallback data - availability store unavailable",
            )

        listings: list[RoomListing] = []
        for room in rooms:
            free = max(0, room.capacity - occupied.get(room.room_id, 0))
            if free > 0 and free >= query.participants:
                listings.append(to_room_listing(room, origin))
            if len(listings) >= self._settings.room_result_limit:
                break

        logger.info(
            "Room availability resolved | start=%s | end=%s | participants=%s | rooms=%s",
            query.start.isoformat(),
            query.end.isoformat(),
            query.participants,
            len(listings),
        )
        return RoomAvailabilityResult(rooms=listings)

    def list_rooms(self, origin: str = "") -> RoomAvailabilityResult:
        """Active catalogue in widget shape, capped like the availability list."""
        try:
            rooms = self._repository.list_active_rooms()
        except RepositoryUnavailableError as exc:
            self._degrade(exc, "Room catalogue query")
            return RoomAvailabilityResult(
                rooms=fallback_rooms(origin),
                fallback=True,
                message="Using fallback data - availability store unavailable",
            )

        listings = [
            to_room_listing(room, origin)
            for room in rooms[: self._settings.room_result_limit]
        ]
        if not listings:
            return RoomAvailabilityResult(rooms=[], message="No rooms available")
        return RoomAvailabilityResult(rooms=listings)
