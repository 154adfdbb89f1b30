"""Domain models for room catalogue, occupancy and pricing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union


BOOKING_TYPE_WHOLE = "whole"
BOOKING_TYPE_PER_BED = "perBed"

ITEM_TYPE_ROOM = "room"
ITEM_TYPE_SURF_CAMP = "surfCamp"
ITEM_TYPE_ADD_ON = "addOn"


@dataclass(frozen=True)
class PerBedCampRate:
    """Flat nightly camp rate charged per bed."""

    rate: float


@dataclass(frozen=True)
class OccupancyCampRates:
    """Nightly camp rates keyed by number of guests in the room."""

    rates: dict[int, float]


CampRate = Union[PerBedCampRate, OccupancyCampRates]


@dataclass(frozen=True)
class SeasonalRate:
    start_month: int
    start_day: int
    end_month: int
    end_day: int
    price: float

    def covers(self, month: int, day: int) -> bool:
        target = month * 100 + day
        start = self.start_month * 100 + self.start_day
        end = self.end_month * 100 + self.end_day
        if start <= end:
            return start <= target <= end
        # wraps the year end, e.g. Dec -> Feb
        return target >= start or target <= end


@dataclass(frozen=True)
class RoomPricing:
    standard: Optional[float] = None
    off_season: Optional[float] = None
    camp: Optional[CampRate] = None
    seasonal_rates: tuple[SeasonalRate, ...] = ()

    @classmethod
    def from_dict(cls, payload: Optional[dict[str, Any]]) -> "RoomPricing":
        """Convert the stored JSON shape into the tagged camp-rate union."""
        if not payload:
            return cls()

        camp_payload = payload.get("camp")
        camp: Optional[CampRate] = None
        if isinstance(camp_payload, dict) and camp_payload:
            if "perBed" in camp_payload:
                camp = PerBedCampRate(rate=float(camp_payload["perBed"]))
            else:
                camp = OccupancyCampRates(
                    rates={int(key): float(value) for key, value in camp_payload.items()}
                )

        seasonal_rates = tuple(
            SeasonalRate(
                start_month=int(item["startMonth"]),
                start_day=int(item["startDay"]),
                end_month=int(item["endMonth"]),
                end_day=int(item["endDay"]),
                price=float(item["price"]),
            )
            for item in payload.get("seasonalRates") or []
        )

        standard = payload.get("standard")
        off_season = payload.get("offSeason")
        return cls(
            standard=float(standard) if standard is not None else None,
            off_season=float(off_season) if off_season is not None else None,
            camp=camp,
            seasonal_rates=seasonal_rates,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if self.standard is not None:
            payload["standard"] = self.standard
        if self.off_season is not None:
            payload["offSeason"] = self.off_season
        if isinstance(self.camp, PerBedCampRate):
            payload["camp"] = {"perBed": self.camp.rate}
        elif isinstance(self.camp, OccupancyCampRates):
            payload["camp"] = {str(key): value for key, value in self.camp.rates.items()}
        if self.seasonal_rates:
            payload["seasonalRates"] = [
                {
                    "startMonth": rate.start_month,
                    "startDay": rate.start_day,
                    "endMonth": rate.end_month,
                    "endDay": rate.end_day,
                    "price": rate.price,
                }
                for rate in self.seasonal_rates
            ]
        return payload


@dataclass(frozen=True)
class Room:
    room_id: str
    name: str
    capacity: int
    booking_type: str = BOOKING_TYPE_WHOLE
    pricing: RoomPricing = field(default_factory=RoomPricing)
    amenities: tuple[str, ...] = ()
    images: tuple[str, ...] = ()
    description: str = ""
    is_active: bool = True


@dataclass(frozen=True)
class SurfCamp:
    camp_id: str
    name: str
    price: float
    start_date: str
    end_date: str
    max_participants: int
    is_active: bool = True


@dataclass(frozen=True)
class AddOn:
    add_on_id: str
    name: str
    price: float
    category: str = "other"
    max_quantity: Optional[int] = None
    is_active: bool = True


@dataclass(frozen=True)
class RoomAssignment:
    room_id: str
    check_in_date: str
    check_out_date: str
    bed_number: Optional[int] = None
    booking_id: Optional[str] = None


@dataclass(frozen=True)
class DateAvailability:
    date: str
    available: bool
    capacity: int
    booked: int
    remaining: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "available": self.available,
            "capacity": self.capacity,
            "booked": self.booked,
            "remaining": self.remaining,
        }


@dataclass(frozen=True)
class AvailabilitySummary:
    total_dates_checked: int
    available_dates: int
    sold_out_dates: int
    total_capacity: int
    participants_requested: int

    @classmethod
    def from_days(
        cls,
        days: list[DateAvailability],
        total_capacity: int,
        participants: int,
    ) -> "AvailabilitySummary":
        available = sum(1 for day in days if day.available)
        return cls(
            total_dates_checked=len(days),
            available_dates=available,
            sold_out_dates=len(days) - available,
            total_capacity=total_capacity,
            participants_requested=participants,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "total_dates_checked": self.total_dates_checked,
            "available_dates": self.available_dates,
            "sold_out_dates": self.sold_out_dates,
            "total_capacity": self.total_capacity,
            "participants_requested": self.participants_requested,
        }


@dataclass(frozen=True)
class RoomListing:
    """Room projection consumed by the booking widget."""

    room_id: str
    name: str
    capacity: int
    price_per_night: float
    amenities: list[str]
    featured_image: str
    description: str
    booking_type: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.room_id,
            "name": self.name,
            "capacity": self.capacity,
            "price_per_night": self.price_per_night,
            "amenities": list(self.amenities),
            "featured_image": self.featured_image,
            "description": self.description,
            "booking_type": self.booking_type,
        }


@dataclass(frozen=True)
class BookingItem:
    item_type: str
    item_id: str
    name: str
    quantity: int
    unit_price: float
    total_price: float
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    nights: Optional[int] = None
    participants: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.item_type,
            "item_id": self.item_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "nights": self.nights,
            "participants": self.participants,
        }


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: float
    taxes: float
    fees: float
    discounts: float
    total: float
    items: tuple[BookingItem, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "subtotal": self.subtotal,
            "taxes": self.taxes,
            "fees": self.fees,
            "discounts": self.discounts,
            "total": self.total,
            "items": [item.to_dict() for item in self.items],
        }
