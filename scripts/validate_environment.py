#!/usr/bin/env python3
"""Validate local Heiwa booking API environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import date, timedelta
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.repository.data_repository import DataRepository
from backend.services.availability_service import AvailabilityService
from backend.services.booking_service import BookingService, RoomBookingSubmission
from backend.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="heiwa-env-")

    # CHECK 1: Python version >= 3.11
    if sys.version_info >= (3, 11):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.11",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_names = ["fastapi", "uvicorn", "pydantic", "numpy", "pandas", "requests"]
    import_errors: list[str] = []
    for module_name in package_names:
        try:
            importlib.import_module(module_name)
        except ImportError as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 3: Widget API key configured
    base_settings = get_settings()
    ok, line = _print_result(
        "WORDPRESS_API_KEY configured",
        bool(base_settings.wordpress_api_key),
        "" if base_settings.wordpress_api_key else "widget requests will be rejected",
    )
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            base_settings,
            database_path=Path(temp_dir) / "heiwa_validation.db",
            allow_fallback_data=False,
        )
        repository = DataRepository(validation_settings)

        # CHECK 4: Database initialization and demo catalogue
        try:
            repository.initialize_database()
            repository.seed_demo_data()
            room_count = len(repository.list_active_rooms())
            if room_count == 0:
                raise RuntimeError("no active rooms after seeding")
            ok, line = _print_result("Database + demo catalogue", True, f": {room_count} rooms")
        except Exception as exc:
            ok, line = _print_result("Database + demo catalogue", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5: Date availability resolution
        try:
            start = date.today() + timedelta(days=7)
            result = AvailabilityService(
                repository=repository,
                settings=validation_settings,
            ).resolve_date_availability(
                start.isoformat(),
                (start + timedelta(days=6)).isoformat(),
                participants=2,
            )
            if result.fallback or len(result.days) != 7:
                raise RuntimeError(f"unexpected result: fallback={result.fallback} days={len(result.days)}")
            ok, line = _print_result(
                "Date availability",
                True,
                f": {result.summary.available_dates}/7 available, capacity={result.summary.total_capacity}",
            )
        except Exception as exc:
            ok, line = _print_result("Date availability", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 6: Room booking quote
        try:
            check_in = date.today() + timedelta(days=30)
            quote = BookingService(
                repository=repository,
                settings=validation_settings,
            ).quote_room_booking(
                RoomBookingSubmission(
                    client_name="Environment Check",
                    email="check@example.com",
                    room_id="room-1",
                    check_in=check_in.isoformat(),
                    check_out=(check_in + timedelta(days=2)).isoformat(),
                    guests=2,
                )
            )
            if quote.total <= 0:
                raise RuntimeError("room-1 priced at zero")
            ok, line = _print_result(
                "Room booking quote",
                True,
                f": total={quote.total:.2f} {validation_settings.currency}",
            )
        except Exception as exc:
            ok, line = _print_result("Room booking quote", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Heiwa Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
