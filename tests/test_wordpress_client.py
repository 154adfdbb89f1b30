from __future__ import annotations

from dataclasses import replace

import pytest
import requests

from backend.client.wordpress_client import (
    NETWORK_ERROR_MESSAGE,
    AvailabilityNetworkError,
    AvailabilityTimeoutError,
    WordPressApiClient,
)
from backend.utils.config import get_settings


class FakeResponse:
    def __init__(self, payload, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code
        self.ok = 200 <= status_code < 400

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.headers: dict[str, str] = {}
        self.response = response
        self.error = error
        self.requests: list[dict] = []

    def get(self, url, params=None, timeout=None):
        self.requests.append({"url": url, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response

    def close(self) -> None:
        pass


def _client(session: FakeSession) -> WordPressApiClient:
    get_settings.cache_clear()
    settings = replace(get_settings(), api_base_url="https://api.test/", client_timeout_seconds=5.0)
    return WordPressApiClient(api_key="widget-key", session=session, settings=settings)


def _dates_payload(fallback: bool = False) -> dict:
    meta = {"checked_at": "2025-01-01T00:00:00+00:00"}
    if fallback:
        meta.update({"fallback": True, "message": "Using fallback data"})
    return {
        "success": True,
        "data": {
            "date_availability": [
                {"date": "2025-03-10", "available": True, "capacity": 6, "booked": 1, "remaining": 5},
                {"date": "2025-03-11", "available": False, "capacity": 6, "booked": 6, "remaining": 0},
            ],
            "summary": {"total_capacity": 6, "available_dates": 1, "sold_out_dates": 1},
        },
        "meta": meta,
    }


def test_fetch_date_availability_sends_key_timeout_and_params():
    session = FakeSession(FakeResponse(_dates_payload()))
    client = _client(session)

    response = client.fetch_date_availability("2025-03-10", "2025-03-11", participants=2)

    assert session.headers["X-Heiwa-API-Key"] == "widget-key"
    sent = session.requests[0]
    assert sent["url"] == "https://api.test/api/wordpress/dates/availability"
    assert sent["timeout"] == 5.0
    assert sent["params"] == {"start_date": "2025-03-10", "end_date": "2025-03-11", "participants": 2}
    assert [day.remaining for day in response.days] == [5, 0]
    assert response.summary["total_capacity"] == 6
    assert response.fallback is False


def test_fallback_flag_is_carried_through():
    client = _client(FakeSession(FakeResponse(_dates_payload(fallback=True))))

    response = client.fetch_date_availability("2025-03-10", "2025-03-11")

    assert response.fallback is True
    assert response.message == "Using fallback data"


def test_timeout_raises_retryable_error():
    client = _client(FakeSession(error=requests.exceptions.ReadTimeout("slow")))

    with pytest.raises(AvailabilityTimeoutError) as exc_info:
        client.fetch_date_availability("2025-03-10", "2025-03-11")

    assert exc_info.value.retryable is True
    assert str(exc_info.value) == NETWORK_ERROR_MESSAGE


def test_connection_failure_raises_network_error():
    client = _client(FakeSession(error=requests.exceptions.ConnectionError("refused")))

    with pytest.raises(AvailabilityNetworkError, match="Unable to check availability"):
        client.fetch_date_availability("2025-03-10", "2025-03-11")


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse({"success": False, "error": "Unauthorized"}, status_code=401),
        FakeResponse({"success": False, "error": "Bad request"}, status_code=400),
        FakeResponse(ValueError("not json"), status_code=502),
        FakeResponse(["unexpected"]),
    ],
)
def test_unsuccessful_responses_raise_network_error(response):
    client = _client(FakeSession(response))

    with pytest.raises(AvailabilityNetworkError):
        client.fetch_date_availability("2025-03-10", "2025-03-11")


def test_fetch_room_availability_returns_rooms():
    payload = {
        "success": True,
        "data": {"available_rooms": [{"id": "room-1", "name": "Room Nr 1"}]},
    }
    session = FakeSession(FakeResponse(payload))
    client = _client(session)

    response = client.fetch_room_availability("2025-03-10", "2025-03-12")

    assert session.requests[0]["url"].endswith("/api/wordpress/rooms/availability")
    assert response.rooms == [{"id": "room-1", "name": "Room Nr 1"}]
    assert response.fallback is False
