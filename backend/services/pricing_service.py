"""Pure price calculations for rooms, surf camps, add-ons and checkout totals.

Nothing in this module performs I/O. A computed price of ``0`` means the
catalogue entry carries no usable rate ("price unknown"), not "free"; callers
decide how to present it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from backend.domain.models import (
    BOOKING_TYPE_PER_BED,
    ITEM_TYPE_ADD_ON,
    ITEM_TYPE_ROOM,
    ITEM_TYPE_SURF_CAMP,
    AddOn,
    BookingItem,
    OccupancyCampRates,
    PerBedCampRate,
    PriceBreakdown,
    Room,
    SurfCamp,
)
from backend.utils.dates import DateLike, parse_iso_date


DEFAULT_TAX_RATE = 0.10
DEFAULT_SERVICE_FEE_RATE = 0.05
GROUP_DISCOUNT_STEP = 0.1
MAX_GROUP_DISCOUNT = 0.3
MAX_ADVANCE_BOOKING_YEARS = 2

DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FIXED = "fixed"

_CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£"}


@dataclass(frozen=True)
class RoomPrice:
    unit_price: float
    total_price: float
    nights: int


@dataclass(frozen=True)
class ItemPrice:
    unit_price: float
    total_price: float


@dataclass(frozen=True)
class DateValidationResult:
    is_valid: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class DiscountResult:
    discount_amount: float
    new_total: float


def calculate_nights(start_date: DateLike, end_date: DateLike) -> int:
    """Number of nights between two dates, never less than one."""
    start = parse_iso_date(start_date)
    end = parse_iso_date(end_date)
    seconds = (end - start).total_seconds()
    return max(1, math.ceil(seconds / timedelta(days=1).total_seconds()))


def base_nightly_rate(room: Room, on_date: Optional[DateLike] = None) -> float:
    """Seasonal rate for `on_date` if one matches, else standard, else off-season."""
    pricing = room.pricing
    if on_date is not None and pricing.seasonal_rates:
        target = parse_iso_date(on_date)
        for seasonal in pricing.seasonal_rates:
            if seasonal.covers(target.month, target.day):
                return seasonal.price
    return pricing.standard or pricing.off_season or 0.0


def nightly_rate(room: Room, on_date: Optional[DateLike] = None, guests: Optional[int] = None) -> float:
    base_rate = base_nightly_rate(room, on_date)
    camp = room.pricing.camp

    if room.booking_type == BOOKING_TYPE_PER_BED:
        if isinstance(camp, PerBedCampRate):
            return camp.rate
        return base_rate

    if isinstance(camp, OccupancyCampRates):
        if guests is not None and guests in camp.rates:
            return camp.rates[guests]
        return camp.rates.get(1) or base_rate
    return base_rate


def calculate_room_price(
    room: Room,
    start_date: Optional[DateLike] = None,
    end_date: Optional[DateLike] = None,
    quantity: int = 1,
    guests: Optional[int] = None,
) -> RoomPrice:
    nights = 1
    if start_date and end_date:
        nights = calculate_nights(start_date, end_date)

    unit_price = nightly_rate(room, on_date=start_date, guests=guests) * nights
    return RoomPrice(
        unit_price=unit_price,
        total_price=unit_price * quantity,
        nights=nights,
    )


def group_discount_rate(participants: int) -> float:
    if participants <= 1:
        return 0.0
    return min(GROUP_DISCOUNT_STEP * (participants - 1), MAX_GROUP_DISCOUNT)


def calculate_surf_camp_price(
    camp: SurfCamp,
    participants: int = 1,
    duration: Optional[int] = None,
    base_price: Optional[float] = None,
) -> ItemPrice:
    """Weekly camp price with a linear group discount capped at 30%."""
    price = camp.price if base_price is None else base_price
    unit_price = price or 0.0

    if duration and duration > 1:
        unit_price = unit_price * duration

    unit_price = unit_price * (1 - group_discount_rate(participants))
    return ItemPrice(unit_price=unit_price, total_price=unit_price * participants)


def calculate_add_on_price(add_on: AddOn, quantity: int = 1) -> ItemPrice:
    unit_price = add_on.price or 0.0
    return ItemPrice(unit_price=unit_price, total_price=unit_price * quantity)


def calculate_total_amount(items: Iterable[BookingItem]) -> float:
    return sum(item.total_price for item in items)


def calculate_price_breakdown(
    items: Iterable[BookingItem],
    tax_rate: float = DEFAULT_TAX_RATE,
    service_fee_rate: float = DEFAULT_SERVICE_FEE_RATE,
    discount_amount: float = 0.0,
) -> PriceBreakdown:
    materialized = tuple(items)
    subtotal = calculate_total_amount(materialized)
    taxes = subtotal * tax_rate
    fees = subtotal * service_fee_rate
    total = subtotal + taxes + fees - discount_amount
    return PriceBreakdown(
        subtotal=subtotal,
        taxes=taxes,
        fees=fees,
        discounts=discount_amount,
        total=max(0.0, total),
        items=materialized,
    )


def _add_years(value: date, years: int) -> date:
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return value.replace(year=value.year + years, day=28)


def validate_booking_dates(
    start_date: DateLike,
    end_date: DateLike,
    today: Optional[date] = None,
    max_advance_years: int = MAX_ADVANCE_BOOKING_YEARS,
) -> DateValidationResult:
    """Check a stay window; returns a result object instead of raising."""
    try:
        start = parse_iso_date(start_date)
        end = parse_iso_date(end_date)
    except ValueError:
        return DateValidationResult(is_valid=False, error="Dates must follow YYYY-MM-DD format")

    current_day = today or date.today()
    if start < current_day:
        return DateValidationResult(is_valid=False, error="Start date cannot be in the past")
    if end <= start:
        return DateValidationResult(is_valid=False, error="End date must be after start date")
    if start > _add_years(current_day, max_advance_years):
        return DateValidationResult(
            is_valid=False,
            error=f"Booking cannot be more than {max_advance_years} years in advance",
        )
    return DateValidationResult(is_valid=True)


def apply_discount(total: float, discount_type: str, discount_value: float) -> DiscountResult:
    if discount_type == DISCOUNT_PERCENTAGE:
        discount_amount = total * (discount_value / 100)
    elif discount_type == DISCOUNT_FIXED:
        discount_amount = min(discount_value, total)
    else:
        raise ValueError(f"Unsupported discount type: {discount_type}")

    return DiscountResult(
        discount_amount=discount_amount,
        new_total=max(0.0, total - discount_amount),
    )


def format_currency(amount: float, currency: str = "EUR") -> str:
    symbol = _CURRENCY_SYMBOLS.get(currency.upper())
    if symbol is None:
        return f"{amount:,.2f} {currency.upper()}"
    return f"{symbol}{amount:,.2f}"


def build_room_item(
    room: Room,
    start_date: DateLike,
    end_date: DateLike,
    guests: int,
) -> BookingItem:
    """Line item for a stay; per-bed rooms are charged per guest."""
    quantity = guests if room.booking_type == BOOKING_TYPE_PER_BED else 1
    price = calculate_room_price(
        room,
        start_date=start_date,
        end_date=end_date,
        quantity=quantity,
        guests=guests,
    )
    return BookingItem(
        item_type=ITEM_TYPE_ROOM,
        item_id=room.room_id,
        name=room.name,
        quantity=quantity,
        unit_price=price.unit_price,
        total_price=price.total_price,
        start_date=parse_iso_date(start_date).isoformat(),
        end_date=parse_iso_date(end_date).isoformat(),
        nights=price.nights,
        participants=guests,
    )


def build_surf_camp_item(camp: SurfCamp, participants: int) -> BookingItem:
    price = calculate_surf_camp_price(camp, participants=participants)
    return BookingItem(
        item_type=ITEM_TYPE_SURF_CAMP,
        item_id=camp.camp_id,
        name=camp.name,
        quantity=participants,
        unit_price=price.unit_price,
        total_price=price.total_price,
        start_date=camp.start_date,
        end_date=camp.end_date,
        participants=participants,
    )


def build_add_on_item(add_on: AddOn, quantity: int) -> BookingItem:
    price = calculate_add_on_price(add_on, quantity=quantity)
    return BookingItem(
        item_type=ITEM_TYPE_ADD_ON,
        item_id=add_on.add_on_id,
        name=add_on.name,
        quantity=quantity,
        unit_price=price.unit_price,
        total_price=price.total_price,
    )
