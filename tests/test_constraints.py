"""Tests for booking policy validation logic.

Covers every validation branch in validate_booking_policy().
"""

from __future__ import annotations

import pytest

from backend.domain.constraints import BookingPolicy, validate_booking_policy


def valid_policy(**overrides) -> BookingPolicy:
    """Return a valid baseline BookingPolicy, optionally overriding fields."""
    defaults = {
        "minimum_stay_nights": 2,
        "tax_rate": 0.10,
        "service_fee_rate": 0.05,
        "large_group_threshold": 4,
        "late_booking_days": 2,
        "max_advance_booking_years": 2,
    }
    defaults.update(overrides)
    return BookingPolicy(**defaults)


# --- Baseline pass ---

def test_valid_policy_passes() -> None:
    """A fully valid policy must not raise."""
    validate_booking_policy(valid_policy())


# --- minimum_stay_nights ---

def test_minimum_stay_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_booking_policy(valid_policy(minimum_stay_nights=0))


# --- tax_rate ---

def test_tax_rate_negative_raises() -> None:
    with pytest.raises(ValueError):
        validate_booking_policy(valid_policy(tax_rate=-0.01))


def test_tax_rate_one_raises() -> None:
    with pytest.raises(ValueError):
        validate_booking_policy(valid_policy(tax_rate=1.0))


# --- service_fee_rate ---

def test_service_fee_rate_negative_raises() -> None:
    with pytest.raises(ValueError):
        validate_booking_policy(valid_policy(service_fee_rate=-0.5))


def test_service_fee_rate_above_one_raises() -> None:
    with pytest.raises(ValueError):
        validate_booking_policy(valid_policy(service_fee_rate=1.2))


# --- large_group_threshold ---

def test_large_group_threshold_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_booking_policy(valid_policy(large_group_threshold=0))


# --- late_booking_days ---

def test_late_booking_days_negative_raises() -> None:
    with pytest.raises(ValueError):
        validate_booking_policy(valid_policy(late_booking_days=-1))


# --- max_advance_booking_years ---

def test_max_advance_booking_years_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_booking_policy(valid_policy(max_advance_booking_years=0))


# --- Boundary values ---

def test_zero_rates_pass() -> None:
    """Tax-free and fee-free configurations are valid."""
    validate_booking_policy(valid_policy(tax_rate=0.0, service_fee_rate=0.0))


def test_single_night_minimum_passes() -> None:
    validate_booking_policy(valid_policy(minimum_stay_nights=1))


def test_late_booking_days_zero_passes() -> None:
    """Zero disables the late-booking warning."""
    validate_booking_policy(valid_policy(late_booking_days=0))
