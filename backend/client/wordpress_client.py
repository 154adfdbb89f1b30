"""HTTP client for the WordPress availability endpoints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

import requests

from backend.domain.models import DateAvailability
from backend.services.auth_service import API_KEY_HEADER
from backend.utils.config import Settings, get_settings
from backend.utils.dates import DateLike, parse_iso_date
from backend.utils.logger import get_logger


logger = get_logger(__name__)

API_PREFIX = "/api/wordpress"
NETWORK_ERROR_MESSAGE = "Unable to check availability. Please try again."


class AvailabilityClientError(Exception):
    """Base exception for availability client failures."""


class AvailabilityNetworkError(AvailabilityClientError):
    """Raised for transport failures and unsuccessful API payloads."""


class AvailabilityTimeoutError(AvailabilityNetworkError):
    """Raised when the API does not answer within the configured timeout."""

    retryable = True


@dataclass(frozen=True)
class DateAvailabilityResponse:
    days: list[DateAvailability]
    summary: dict[str, int] = field(default_factory=dict)
    fallback: bool = False
    message: Optional[str] = None


@dataclass(frozen=True)
class RoomAvailabilityResponse:
    rooms: list[dict[str, Any]]
    fallback: bool = False
    message: Optional[str] = None


def _day_from_payload(payload: dict[str, Any]) -> DateAvailability:
    return DateAvailability(
        date=str(payload["date"]),
        available=bool(payload["available"]),
        capacity=int(payload["capacity"]),
        booked=int(payload["booked"]),
        remaining=int(payload["remaining"]),
    )


class WordPressApiClient:
    """Thin requests wrapper that sends the widget API key on every call."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.client_timeout_seconds
        self._session = session or requests.Session()
        key = api_key if api_key is not None else settings.wordpress_api_key
        if key:
            self._session.headers[API_KEY_HEADER] = key

    def _get(self, path: str, params: dict[str, Union[str, int]]) -> dict[str, Any]:
        url = f"{self._base_url}{API_PREFIX}{path}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.exceptions.Timeout as exc:
            logger.warning("Availability request timed out | url=%s", url)
            raise AvailabilityTimeoutError(NETWORK_ERROR_MESSAGE) from exc
        except requests.exceptions.RequestException as exc:
            logger.warning("Availability request failed | url=%s | error=%s", url, exc)
            raise AvailabilityNetworkError(NETWORK_ERROR_MESSAGE) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            logger.warning("Availability response was not JSON | status=%s", response.status_code)
            raise AvailabilityNetworkError(NETWORK_ERROR_MESSAGE) from exc

        if not response.ok or not isinstance(payload, dict) or not payload.get("success"):
            logger.warning(
                "Availability API returned an error | status=%s | error=%s",
                response.status_code,
                payload.get("error") if isinstance(payload, dict) else None,
            )
            raise AvailabilityNetworkError(NETWORK_ERROR_MESSAGE)
        return payload

    def fetch_date_availability(
        self,
        start_date: DateLike,
        end_date: DateLike,
        participants: int = 1,
    ) -> DateAvailabilityResponse:
        payload = self._get(
            "/dates/availability",
            {
                "start_date": parse_iso_date(start_date).isoformat(),
                "end_date": parse_iso_date(end_date).isoformat(),
                "participants": participants,
            },
        )
        data = payload.get("data") or {}
        meta = payload.get("meta") or {}
        try:
            days = [_day_from_payload(item) for item in data.get("date_availability", [])]
        except (KeyError, TypeError, ValueError) as exc:
            raise AvailabilityNetworkError(NETWORK_ERROR_MESSAGE) from exc
        return DateAvailabilityResponse(
            days=days,
            summary=dict(data.get("summary") or {}),
            fallback=bool(meta.get("fallback", False)),
            message=meta.get("message"),
        )

    def fetch_room_availability(
        self,
        start_date: DateLike,
        end_date: DateLike,
        participants: int = 1,
    ) -> RoomAvailabilityResponse:
        payload = self._get(
            "/rooms/availability",
            {
                "start_date": parse_iso_date(start_date).isoformat(),
                "end_date": parse_iso_date(end_date).isoformat(),
                "participants": participants,
            },
        )
        data = payload.get("data") or {}
        meta = payload.get("meta") or {}
        return RoomAvailabilityResponse(
            rooms=list(data.get("available_rooms", [])),
            fallback=bool(meta.get("fallback", False)),
            message=meta.get("message"),
        )

    def close(self) -> None:
        self._session.close()
