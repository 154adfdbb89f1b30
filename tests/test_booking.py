from __future__ import annotations

import sqlite3
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import date

import pytest

from backend.domain.models import SurfCamp
from backend.repository.data_repository import DataRepository, RepositoryUnavailableError
from backend.services.booking_service import (
    AddOnSelection,
    BookingNotFoundError,
    BookingService,
    BookingValidationError,
    CampParticipant,
    CapacityExceededError,
    CatalogItemNotFoundError,
    RoomBookingSubmission,
    SurfCampBookingSubmission,
)
from backend.utils.config import get_settings


TODAY = date(2025, 1, 1)


def _build_test_settings(tmp_path, filename: str, **overrides):
    get_settings.cache_clear()
    base = get_settings()
    return replace(base, database_path=tmp_path / filename, **overrides)


def _build_service(tmp_path, filename: str = "booking.db", **overrides):
    settings = _build_test_settings(tmp_path, filename, **overrides)
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_demo_data()
    return BookingService(repository=repository, settings=settings, today=lambda: TODAY), repository


def _submission(**overrides) -> RoomBookingSubmission:
    values = {
        "client_name": "Kai Surfer",
        "email": "kai@example.com",
        "room_id": "room-1",
        "check_in": "2025-03-10",
        "check_out": "2025-03-12",
        "guests": 2,
    }
    values.update(overrides)
    return RoomBookingSubmission(**values)


# --- validation ---

def test_valid_submission_has_no_errors(tmp_path):
    service, _ = _build_service(tmp_path)

    result = service.validate_submission(_submission())

    assert result.is_valid
    assert result.errors == []
    assert result.warnings == []


def test_single_night_fails_minimum_stay(tmp_path):
    service, _ = _build_service(tmp_path)

    result = service.validate_submission(_submission(check_out="2025-03-11"))

    assert not result.is_valid
    assert "Minimum stay is 2 nights" in result.errors


def test_same_day_stay_is_rejected(tmp_path):
    service, _ = _build_service(tmp_path)

    result = service.validate_submission(_submission(check_out="2025-03-10"))

    assert not result.is_valid
    assert "End date must be after start date" in result.errors


def test_past_check_in_is_rejected(tmp_path):
    service, _ = _build_service(tmp_path)

    result = service.validate_submission(_submission(check_in="2024-12-20", check_out="2024-12-23"))

    assert "Start date cannot be in the past" in result.errors


def test_missing_contact_details_are_reported_together(tmp_path):
    service, _ = _build_service(tmp_path)

    result = service.validate_submission(_submission(client_name=" ", email="not-an-email", guests=0))

    assert "Client name is required" in result.errors
    assert "Invalid email format" in result.errors
    assert "Number of guests must be at least 1" in result.errors


def test_large_group_and_late_booking_warnings(tmp_path):
    service, _ = _build_service(tmp_path)

    result = service.validate_submission(
        _submission(room_id="dorm", guests=5, check_in="2025-01-02", check_out="2025-01-05")
    )

    assert result.is_valid
    assert "Large group bookings may require special arrangements" in result.warnings
    assert "Late bookings may not be confirmed immediately" in result.warnings


# --- quoting ---

def test_quote_uses_occupancy_camp_rate_and_add_ons(tmp_path):
    service, _ = _build_service(tmp_path)

    breakdown = service.quote_room_booking(
        _submission(add_ons=(AddOnSelection("board-rental", 2),))
    )

    assert breakdown.subtotal == pytest.approx(250.0)
    assert breakdown.taxes == pytest.approx(25.0)
    assert breakdown.fees == pytest.approx(12.5)
    assert breakdown.total == pytest.approx(287.5)
    assert [item.item_type for item in breakdown.items] == ["room", "addOn"]


def test_quote_applies_percentage_discount_to_gross_total(tmp_path):
    service, _ = _build_service(tmp_path)

    breakdown = service.quote_room_booking(_submission(discount_type="percentage", discount_value=10))

    assert breakdown.subtotal == pytest.approx(220.0)
    assert breakdown.discounts == pytest.approx(25.3)
    assert breakdown.total == pytest.approx(227.7)


def test_quote_unknown_room_raises(tmp_path):
    service, _ = _build_service(tmp_path)

    with pytest.raises(CatalogItemNotFoundError):
        service.quote_room_booking(_submission(room_id="penthouse"))


def test_add_on_quantity_limit_enforced(tmp_path):
    service, _ = _build_service(tmp_path)

    with pytest.raises(BookingValidationError):
        service.quote_room_booking(_submission(add_ons=(AddOnSelection("airport-transfer", 3),)))


# --- room bookings ---

def test_whole_room_booking_occupies_every_bed(tmp_path):
    service, repository = _build_service(tmp_path)

    confirmation = service.create_room_booking(_submission(guests=1))

    assert confirmation.booking_number == f"WP-{confirmation.booking_id[:8].upper()}"
    assert confirmation.status == "pending"
    assert confirmation.assigned_beds == [1, 2]
    assert len(repository.list_assignments_for_booking(confirmation.booking_id)) == 2
    assert repository.get_booking(confirmation.booking_id).total == pytest.approx(confirmation.pricing.total)


def test_overlapping_whole_room_booking_is_rejected(tmp_path):
    service, repository = _build_service(tmp_path)
    service.create_room_booking(_submission())

    with pytest.raises(CapacityExceededError):
        service.create_room_booking(_submission(check_in="2025-03-11", check_out="2025-03-14"))

    assert repository.count_bookings() == 1


def test_back_to_back_stays_do_not_conflict(tmp_path):
    service, repository = _build_service(tmp_path)
    service.create_room_booking(_submission())

    service.create_room_booking(_submission(check_in="2025-03-12", check_out="2025-03-14"))

    assert repository.count_bookings() == 2


def test_per_bed_bookings_fill_the_dorm_bed_by_bed(tmp_path):
    service, _ = _build_service(tmp_path)

    first = service.create_room_booking(_submission(room_id="dorm", guests=4))
    with pytest.raises(CapacityExceededError):
        service.create_room_booking(_submission(room_id="dorm", guests=3))
    second = service.create_room_booking(_submission(room_id="dorm", guests=2))

    assert first.assigned_beds == [1, 2, 3, 4]
    assert second.assigned_beds == [5, 6]


def test_whole_room_guest_count_above_capacity_is_rejected(tmp_path):
    service, _ = _build_service(tmp_path)

    with pytest.raises(BookingValidationError):
        service.create_room_booking(_submission(guests=3))


def test_invalid_submission_raises_with_all_errors(tmp_path):
    service, _ = _build_service(tmp_path)

    with pytest.raises(BookingValidationError) as exc_info:
        service.create_room_booking(_submission(email="", check_out="2025-03-11"))

    assert "Email is required" in exc_info.value.errors
    assert "Minimum stay is 2 nights" in exc_info.value.errors


def test_concurrent_bookings_for_last_room_admit_exactly_one(tmp_path):
    service, repository = _build_service(tmp_path)

    def attempt(_):
        try:
            service.create_room_booking(_submission())
            return "booked"
        except CapacityExceededError:
            return "rejected"

    with ThreadPoolExecutor(max_workers=4) as pool:
        outcomes = list(pool.map(attempt, range(4)))

    assert outcomes.count("booked") == 1
    assert outcomes.count("rejected") == 3
    assert repository.count_bookings() == 1


# --- cancellation and lookup ---

def test_cancel_releases_assignments(tmp_path):
    service, repository = _build_service(tmp_path)
    confirmation = service.create_room_booking(_submission())

    result = service.cancel_booking(confirmation.booking_id)

    assert result["status"] == "cancelled"
    assert result["released_assignments"] == 2
    assert repository.list_assignments_for_booking(confirmation.booking_id) == []
    assert repository.get_booking(confirmation.booking_id).status == "cancelled"
    service.create_room_booking(_submission())


def test_locked_database_surfaces_as_repository_unavailable(tmp_path, monkeypatch):
    service, repository = _build_service(tmp_path)
    confirmation = service.create_room_booking(_submission())

    def locked(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(DataRepository, "_insert_booking", staticmethod(locked))
    with pytest.raises(RepositoryUnavailableError):
        service.create_room_booking(_submission(check_in="2025-04-10", check_out="2025-04-12"))

    monkeypatch.setattr(repository, "_connect", locked)
    with pytest.raises(RepositoryUnavailableError):
        repository.cancel_booking(confirmation.booking_id)
    with pytest.raises(RepositoryUnavailableError):
        repository.get_booking(confirmation.booking_id)


def test_cancel_unknown_booking_raises(tmp_path):
    service, _ = _build_service(tmp_path)

    with pytest.raises(BookingNotFoundError):
        service.cancel_booking("missing")


def test_get_booking_includes_items(tmp_path):
    service, _ = _build_service(tmp_path)
    confirmation = service.create_room_booking(
        _submission(add_ons=(AddOnSelection("yoga-class", 1),))
    )

    booking = service.get_booking(confirmation.booking_id)

    assert booking["booking_number"] == confirmation.booking_number
    assert [item["type"] for item in booking["items"]] == ["room", "addOn"]


# --- surf camps ---

def _camp_submission(count: int, camp_id: str = "surf-week-beginners") -> SurfCampBookingSubmission:
    return SurfCampBookingSubmission(
        camp_id=camp_id,
        participants=tuple(
            CampParticipant(name=f"Guest {index}", email=f"guest{index}@example.com")
            for index in range(count)
        ),
    )


def test_surf_camp_booking_priced_with_group_discount(tmp_path):
    service, _ = _build_service(tmp_path)

    confirmation = service.create_surf_camp_booking(_camp_submission(3))

    item = confirmation.pricing.items[0]
    assert item.unit_price == pytest.approx(520.0)
    assert confirmation.pricing.subtotal == pytest.approx(1560.0)


def test_surf_camp_seat_limit(tmp_path):
    service, repository = _build_service(tmp_path)
    repository.save_surf_camp(
        SurfCamp(
            camp_id="tiny-camp",
            name="Tiny Camp",
            price=400,
            start_date="2025-05-01",
            end_date="2025-05-08",
            max_participants=2,
        )
    )

    service.create_surf_camp_booking(_camp_submission(2, camp_id="tiny-camp"))

    with pytest.raises(CapacityExceededError):
        service.create_surf_camp_booking(_camp_submission(1, camp_id="tiny-camp"))


def test_surf_camp_requires_participants_and_known_camp(tmp_path):
    service, _ = _build_service(tmp_path)

    with pytest.raises(BookingValidationError):
        service.create_surf_camp_booking(_camp_submission(0))
    with pytest.raises(CatalogItemNotFoundError):
        service.create_surf_camp_booking(_camp_submission(1, camp_id="unknown"))


def test_booking_policies_reflect_settings(tmp_path):
    service, _ = _build_service(tmp_path, minimum_stay_nights=3)

    policies = service.get_booking_policies()

    assert policies["minimum_stay"] == 3
    assert policies["currency"] == "EUR"


def test_advance_booking_limit_comes_from_settings(tmp_path):
    service, _ = _build_service(tmp_path, max_advance_booking_years=1)

    result = service.validate_submission(_submission(check_in="2026-03-10", check_out="2026-03-12"))

    assert service.get_booking_policies()["max_advance_booking_years"] == 1
    assert result.is_valid is False
    assert "Booking cannot be more than 1 years in advance" in result.errors


def test_invalid_policy_rejected_at_construction(tmp_path):
    settings = _build_test_settings(tmp_path, "policy.db", default_tax_rate=1.5)

    with pytest.raises(ValueError):
        BookingService(repository=DataRepository(settings), settings=settings)
