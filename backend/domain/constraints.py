"""Domain-level validation rules for booking and pricing policy."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BookingPolicy:
    minimum_stay_nights: int
    tax_rate: float
    service_fee_rate: float
    large_group_threshold: int
    late_booking_days: int
    max_advance_booking_years: int


def validate_booking_policy(policy: BookingPolicy) -> None:
    if policy.minimum_stay_nights < 1:
        raise ValueError("minimum_stay_nights must be >= 1")
    if not 0.0 <= policy.tax_rate < 1.0:
        raise ValueError("tax_rate must be in [0, 1)")
    if not 0.0 <= policy.service_fee_rate < 1.0:
        raise ValueError("service_fee_rate must be in [0, 1)")
    if policy.large_group_threshold < 1:
        raise ValueError("large_group_threshold must be >= 1")
    if policy.late_booking_days < 0:
        raise ValueError("late_booking_days must be >= 0")
    if policy.max_advance_booking_years < 1:
        raise ValueError("max_advance_booking_years must be >= 1")
