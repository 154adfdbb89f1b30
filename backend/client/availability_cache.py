"""Per-session TTL cache over the date-availability endpoint."""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, Optional

from backend.client.wordpress_client import DateAvailabilityResponse, WordPressApiClient
from backend.domain.models import DateAvailability
from backend.utils.config import Settings, get_settings
from backend.utils.dates import DateLike, iter_days, parse_iso_date
from backend.utils.logger import get_logger


logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 300
_CANCEL_POLL_SECONDS = 0.05

AvailabilityFetcher = Callable[[date, date, int], DateAvailabilityResponse]


class DateStatus(str, Enum):
    AVAILABLE = "available"
    SOLD_OUT = "sold_out"
    UNKNOWN = "unknown"


class AvailabilityRequestCancelled(Exception):
    """The caller gave up on a fetch; carries no availability answer."""


@dataclass(frozen=True)
class CacheEntry:
    start: date
    end: date
    days: dict[str, DateAvailability]
    fetched_at: float
    summary: dict[str, int] = field(default_factory=dict)
    fallback: bool = False


@dataclass(frozen=True)
class DayStatus:
    date: str
    status: DateStatus
    remaining: int


class AvailabilityCache:
    """Caches date-range lookups for ``ttl_seconds`` and shares in-flight fetches.

    ``fetcher`` is usually ``WordPressApiClient.fetch_date_availability``.
    Predicates read the most recently fetched range; days outside it are
    reported as ``DateStatus.UNKNOWN`` rather than sold out.
    """

    def __init__(
        self,
        fetcher: AvailabilityFetcher,
        participants: int = 1,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if participants < 1:
            raise ValueError("participants must be >= 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self._fetcher = fetcher
        self._participants = participants
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, CacheEntry] = {}
        self._in_flight: dict[str, Future] = {}
        self._current: Optional[CacheEntry] = None
        self._generation = 0

    @property
    def participants(self) -> int:
        return self._participants

    def cache_key(self, start: date, end: date) -> str:
        return f"{start.isoformat()}|{end.isoformat()}|{self._participants}"

    def _is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.fetched_at < self._ttl_seconds

    def fetch(
        self,
        start_date: DateLike,
        end_date: DateLike,
        cancel_event: Optional[threading.Event] = None,
    ) -> CacheEntry:
        start = parse_iso_date(start_date)
        end = parse_iso_date(end_date)
        key = self.cache_key(start, end)
        if cancel_event is not None and cancel_event.is_set():
            raise AvailabilityRequestCancelled(f"Fetch for {key} was cancelled")

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry):
                self._current = entry
                return entry
            generation = self._generation
            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[key] = future

        if owner:
            entry = self._load(key, start, end, future, generation)
        else:
            entry = self._wait(key, future, cancel_event)

        if cancel_event is not None and cancel_event.is_set():
            raise AvailabilityRequestCancelled(f"Fetch for {key} was cancelled")
        with self._lock:
            # A clear_cache() during the fetch leaves the view empty.
            if generation == self._generation:
                self._current = entry
        return entry

    def _load(
        self,
        key: str,
        start: date,
        end: date,
        future: Future,
        generation: int,
    ) -> CacheEntry:
        try:
            response = self._fetcher(start, end, self._participants)
        except BaseException as exc:
            with self._lock:
                if self._in_flight.get(key) is future:
                    del self._in_flight[key]
            future.set_exception(exc)
            raise

        entry = CacheEntry(
            start=start,
            end=end,
            days={day.date: day for day in response.days},
            fetched_at=self._clock(),
            summary=dict(response.summary),
            fallback=response.fallback,
        )
        with self._lock:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]
            if generation == self._generation:
                self._entries[key] = entry
        future.set_result(entry)
        if response.fallback:
            logger.warning("Cached fallback availability | key=%s | message=%s", key, response.message)
        return entry

    @staticmethod
    def _wait(key: str, future: Future, cancel_event: Optional[threading.Event]) -> CacheEntry:
        if cancel_event is None:
            return future.result()
        while True:
            if cancel_event.is_set():
                raise AvailabilityRequestCancelled(f"Fetch for {key} was cancelled")
            try:
                return future.result(timeout=_CANCEL_POLL_SECONDS)
            except FutureTimeoutError:
                continue

    def clear_cache(self) -> None:
        """Drop every entry; fetches already running will not repopulate the cache."""
        with self._lock:
            self._generation += 1
            self._entries.clear()
            self._in_flight.clear()
            self._current = None

    def _lookup(self, day: DateLike) -> Optional[DateAvailability]:
        current = self._current
        if current is None:
            return None
        try:
            key = parse_iso_date(day).isoformat()
        except ValueError:
            return None
        return current.days.get(key)

    def get_date_status(self, day: DateLike) -> DateStatus:
        availability = self._lookup(day)
        if availability is None:
            return DateStatus.UNKNOWN
        return DateStatus.AVAILABLE if availability.available else DateStatus.SOLD_OUT

    def is_date_available(self, day: DateLike) -> bool:
        return self.get_date_status(day) is DateStatus.AVAILABLE

    def is_date_sold_out(self, day: DateLike) -> bool:
        return self.get_date_status(day) is DateStatus.SOLD_OUT

    def get_availability_for_range(self, start_date: DateLike, end_date: DateLike) -> list[DayStatus]:
        """Day-by-day view built from cached data only."""
        result: list[DayStatus] = []
        for day in iter_days(parse_iso_date(start_date), parse_iso_date(end_date)):
            availability = self._lookup(day)
            if availability is None:
                result.append(DayStatus(date=day.isoformat(), status=DateStatus.UNKNOWN, remaining=0))
                continue
            result.append(
                DayStatus(
                    date=availability.date,
                    status=DateStatus.AVAILABLE if availability.available else DateStatus.SOLD_OUT,
                    remaining=availability.remaining,
                )
            )
        return result

    def sold_out_dates(self) -> list[str]:
        current = self._current
        if current is None:
            return []
        return sorted(key for key, day in current.days.items() if not day.available)

    def available_dates(self) -> list[str]:
        current = self._current
        if current is None:
            return []
        return sorted(key for key, day in current.days.items() if day.available)

    def total_capacity(self) -> int:
        current = self._current
        if current is None:
            return 0
        if "total_capacity" in current.summary:
            return int(current.summary["total_capacity"])
        return max((day.capacity for day in current.days.values()), default=0)

    def date_range(self) -> Optional[tuple[str, str]]:
        current = self._current
        if current is None or not current.days:
            return None
        ordered = sorted(current.days)
        return ordered[0], ordered[-1]

    @property
    def last_fetched(self) -> Optional[float]:
        current = self._current
        return current.fetched_at if current is not None else None

    @property
    def is_fallback(self) -> bool:
        current = self._current
        return current.fallback if current is not None else False


def build_availability_cache(
    settings: Optional[Settings] = None,
    participants: int = 1,
    client: Optional[WordPressApiClient] = None,
) -> AvailabilityCache:
    """Cache backed by the widget API using the configured TTL and timeout."""
    settings = settings or get_settings()
    client = client or WordPressApiClient(settings=settings)
    return AvailabilityCache(
        client.fetch_date_availability,
        participants=participants,
        ttl_seconds=settings.availability_cache_ttl_seconds,
    )
