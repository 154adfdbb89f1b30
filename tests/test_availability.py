from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone

import pytest

from backend.domain.models import Room, RoomAssignment, RoomPricing
from backend.repository.data_repository import DataRepository
from backend.services.availability_service import (
    FALLBACK_TOTAL_CAPACITY,
    PLACEHOLDER_IMAGE,
    AvailabilityService,
    AvailabilityUpstreamError,
    AvailabilityValidationError,
    compute_daily_availability,
    resolve_image_url,
)
from backend.utils.config import get_settings


FIXED_NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _build_test_settings(tmp_path, filename: str, **overrides):
    get_settings.cache_clear()
    base = get_settings()
    return replace(base, database_path=tmp_path / filename, **overrides)


def _build_service(tmp_path, filename: str = "availability.db", **overrides):
    settings = _build_test_settings(tmp_path, filename, **overrides)
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.save_room(
        Room(
            room_id="room-a",
            name="Room A",
            capacity=2,
            pricing=RoomPricing.from_dict({"standard": 100}),
            images=("/room-a.jpg",),
        )
    )
    repository.save_room(
        Room(
            room_id="dorm",
            name="Dorm",
            capacity=4,
            booking_type="perBed",
            pricing=RoomPricing.from_dict({"standard": 30, "camp": {"perBed": 28}}),
        )
    )
    for bed in (1, 2):
        repository.create_assignment(RoomAssignment("room-a", "2025-03-10", "2025-03-12", bed_number=bed))
    for bed in (1, 2, 3):
        repository.create_assignment(RoomAssignment("dorm", "2025-03-11", "2025-03-12", bed_number=bed))
    service = AvailabilityService(repository=repository, settings=settings, clock=lambda: FIXED_NOW)
    return service, repository


def test_date_availability_counts_overlapping_assignments(tmp_path):
    service, _ = _build_service(tmp_path)

    result = service.resolve_date_availability("2025-03-09", "2025-03-12", participants=2)

    by_date = {day.date: day for day in result.days}
    assert list(by_date) == ["2025-03-09", "2025-03-10", "2025-03-11", "2025-03-12"]
    assert by_date["2025-03-09"].remaining == 6
    assert by_date["2025-03-10"].booked == 2
    assert by_date["2025-03-11"].booked == 5
    assert by_date["2025-03-11"].remaining == 1
    assert not by_date["2025-03-11"].available
    assert result.fallback is False


def test_check_out_day_is_not_occupied(tmp_path):
    service, _ = _build_service(tmp_path)

    result = service.resolve_date_availability("2025-03-12", "2025-03-13")

    assert [day.booked for day in result.days] == [0, 0]


def test_date_availability_summary_and_cache_expiry(tmp_path):
    service, _ = _build_service(tmp_path)

    result = service.resolve_date_availability("2025-03-09", "2025-03-12", participants=2)

    assert result.summary.total_dates_checked == 4
    assert result.summary.available_dates == 3
    assert result.summary.sold_out_dates == 1
    assert result.summary.total_capacity == 6
    assert result.summary.participants_requested == 2
    assert result.checked_at == FIXED_NOW.isoformat()
    assert result.cache_expires_at == "2025-01-01T12:05:00+00:00"


def test_sold_out_day_when_every_bed_is_taken(tmp_path):
    service, repository = _build_service(tmp_path)
    repository.create_assignment(RoomAssignment("dorm", "2025-03-11", "2025-03-12", bed_number=4))

    result = service.resolve_date_availability("2025-03-11", "2025-03-12")

    sold_out, next_day = result.days
    assert sold_out.booked == 6
    assert sold_out.remaining == 0
    assert sold_out.available is False
    assert next_day.available is True
    assert result.summary.sold_out_dates == 1


@pytest.mark.parametrize(
    ("start", "end", "participants"),
    [
        (None, "2025-03-12", 1),
        ("2025-03-12", "2025-03-12", 1),
        ("2025-03-12", "2025-03-10", 1),
        ("12/03/2025", "2025-03-14", 1),
        ("2025-03-10", "2025-03-12", "abc"),
        ("2025-03-10", "2025-03-12", 0),
    ],
)
def test_invalid_queries_raise_validation_error(tmp_path, start, end, participants):
    service, _ = _build_service(tmp_path)

    with pytest.raises(AvailabilityValidationError):
        service.resolve_date_availability(start, end, participants)


def test_room_availability_excludes_full_rooms(tmp_path):
    service, _ = _build_service(tmp_path)

    result = service.resolve_room_availability("2025-03-10", "2025-03-12", participants=1)

    assert [room.room_id for room in result.rooms] == ["dorm"]
    assert service.resolve_room_availability("2025-03-10", "2025-03-12", participants=2).rooms == []


def test_room_availability_back_to_back_stay_is_free(tmp_path):
    service, _ = _build_service(tmp_path)

    result = service.resolve_room_availability(
        "2025-03-12",
        "2025-03-14",
        participants=2,
        origin="https://api.example.com",
    )

    assert [room.room_id for room in result.rooms] == ["dorm", "room-a"]
    room_a = result.rooms[1]
    assert room_a.price_per_night == 100
    assert room_a.featured_image == "https://api.example.com/room-a.jpg"
    assert result.rooms[0].featured_image == PLACEHOLDER_IMAGE


def test_room_results_are_capped(tmp_path):
    settings = _build_test_settings(tmp_path, "capped.db", room_result_limit=8)
    repository = DataRepository(settings)
    repository.initialize_database()
    for index in range(10):
        repository.save_room(Room(room_id=f"room-{index:02d}", name=f"Room {index}", capacity=2))
    service = AvailabilityService(repository=repository, settings=settings)

    result = service.resolve_room_availability("2025-03-10", "2025-03-12")

    assert len(result.rooms) == 8
    assert result.rooms[0].room_id == "room-00"
    assert len(service.list_rooms().rooms) == 8


def test_list_rooms_empty_catalogue_is_not_fallback(tmp_path):
    settings = _build_test_settings(tmp_path, "empty.db")
    repository = DataRepository(settings)
    repository.initialize_database()
    service = AvailabilityService(repository=repository, settings=settings)

    result = service.list_rooms()

    assert result.rooms == []
    assert result.fallback is False
    assert result.message == "No rooms available"


def test_unavailable_store_returns_flagged_deterministic_fallback(tmp_path):
    settings = _build_test_settings(tmp_path, "missing_schema.db", allow_fallback_data=True)
    service = AvailabilityService(repository=DataRepository(settings), settings=settings)

    first = service.resolve_date_availability("2025-03-01", "2025-03-14", participants=2)
    second = service.resolve_date_availability("2025-03-01", "2025-03-14", participants=2)

    assert first.fallback is True
    assert first.message
    assert len(first.days) == 14
    assert first.days == second.days
    assert all(day.capacity == FALLBACK_TOTAL_CAPACITY for day in first.days)
    assert all(day.available == (day.remaining >= 2) for day in first.days)


def test_unavailable_store_room_fallback_is_flagged(tmp_path):
    settings = _build_test_settings(tmp_path, "missing_schema.db", allow_fallback_data=True)
    service = AvailabilityService(repository=DataRepository(settings), settings=settings)

    result = service.resolve_room_availability("2025-03-01", "2025-03-04", origin="https://x.test")

    assert result.fallback is True
    assert {room.room_id for room in result.rooms} == {"room-1", "room-3", "dorm"}
    assert service.list_rooms().fallback is True


def test_unavailable_store_raises_when_fallback_disabled(tmp_path):
    settings = _build_test_settings(tmp_path, "missing_schema.db", allow_fallback_data=False)
    service = AvailabilityService(repository=DataRepository(settings), settings=settings)

    with pytest.raises(AvailabilityUpstreamError):
        service.resolve_date_availability("2025-03-01", "2025-03-04")
    with pytest.raises(AvailabilityUpstreamError):
        service.resolve_room_availability("2025-03-01", "2025-03-04")
    with pytest.raises(AvailabilityUpstreamError):
        service.list_rooms()


def test_compute_daily_availability_without_assignments():
    days = compute_daily_availability(date(2025, 5, 1), date(2025, 5, 3), [], 4, participants=5)

    assert [day.remaining for day in days] == [4, 4, 4]
    assert not any(day.available for day in days)


@pytest.mark.parametrize(
    ("images", "expected"),
    [
        ((), PLACEHOLDER_IMAGE),
        (("https://cdn.test/a.jpg",), "https://cdn.test/a.jpg"),
        (("/a.jpg",), "https://site.test/a.jpg"),
        (("a.jpg",), "https://site.test/a.jpg"),
    ],
)
def test_resolve_image_url(images, expected):
    assert resolve_image_url(images, "https://site.test/") == expected
