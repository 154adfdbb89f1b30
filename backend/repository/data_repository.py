"""Repository layer responsible for all database access."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from backend.domain.models import (
    BOOKING_TYPE_PER_BED,
    BOOKING_TYPE_WHOLE,
    AddOn,
    BookingItem,
    PriceBreakdown,
    Room,
    RoomAssignment,
    RoomPricing,
    SurfCamp,
)
from backend.utils.config import Settings, get_settings
from backend.utils.dates import iter_days, parse_iso_date
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class RepositoryUnavailableError(Exception):
    """Raised when the backing store cannot be queried."""


class CapacityConflictError(Exception):
    """Raised inside a write transaction when capacity is no longer free."""


@dataclass(frozen=True)
class NewBooking:
    """Booking header written together with its items."""

    booking_id: str
    booking_number: str
    client_name: str
    email: str
    phone: str
    source: str
    notes: str = ""


@dataclass(frozen=True)
class BookingRecord:
    booking_id: str
    booking_number: str
    client_name: str
    email: str
    status: str
    subtotal: float
    taxes: float
    fees: float
    discounts: float
    total: float
    source: str
    created_at: str


_DEMO_ROOMS = [
    Room(
        room_id="room-1",
        name="Room Nr 1",
        capacity=2,
        booking_type=BOOKING_TYPE_WHOLE,
        pricing=RoomPricing.from_dict(
            {"standard": 90, "offSeason": 75, "camp": {"1": 95, "2": 110}}
        ),
        amenities=("ocean_view", "private_bathroom", "wifi"),
        images=("/room1.jpg",),
        description="Cozy double room with ocean view and private bathroom.",
    ),
    Room(
        room_id="room-3",
        name="Room Nr 3",
        capacity=2,
        booking_type=BOOKING_TYPE_WHOLE,
        pricing=RoomPricing.from_dict(
            {
                "standard": 80,
                "offSeason": 65,
                "seasonalRates": [
                    {"startMonth": 7, "startDay": 1, "endMonth": 8, "endDay": 31, "price": 105}
                ],
            }
        ),
        amenities=("balcony", "wifi"),
        images=("/room3.webp",),
        description="Bright room with balcony and fast Wi-Fi, perfect for remote work.",
    ),
    Room(
        room_id="dorm",
        name="Dorm Room",
        capacity=6,
        booking_type=BOOKING_TYPE_PER_BED,
        pricing=RoomPricing.from_dict({"standard": 30, "offSeason": 25, "camp": {"perBed": 28}}),
        amenities=("bunk_beds", "shared_bathroom", "wifi"),
        images=("/dorm.webp",),
        description="Budget-friendly shared dorm with comfortable bunks and lockers.",
    ),
]

_DEMO_ADD_ONS = [
    AddOn(add_on_id="board-rental", name="Surfboard rental", price=15, category="equipment", max_quantity=14),
    AddOn(add_on_id="airport-transfer", name="Airport transfer", price=40, category="transport", max_quantity=2),
    AddOn(add_on_id="yoga-class", name="Yoga class", price=12, category="service"),
]


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path, timeout=5.0)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS rooms (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        capacity INTEGER NOT NULL CHECK (capacity > 0),
                        booking_type TEXT NOT NULL DEFAULT 'whole'
                            CHECK (booking_type IN ('whole', 'perBed')),
                        pricing TEXT NOT NULL DEFAULT '{}',
                        amenities TEXT NOT NULL DEFAULT '[]',
                        images TEXT NOT NULL DEFAULT '[]',
                        description TEXT NOT NULL DEFAULT '',
                        is_active INTEGER NOT NULL DEFAULT 1,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS surf_camps (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        price REAL NOT NULL CHECK (price >= 0),
                        start_date TEXT NOT NULL,
                        end_date TEXT NOT NULL,
                        max_participants INTEGER NOT NULL CHECK (max_participants > 0),
                        is_active INTEGER NOT NULL DEFAULT 1
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS add_ons (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        price REAL NOT NULL CHECK (price >= 0),
                        category TEXT NOT NULL DEFAULT 'other',
                        max_quantity INTEGER,
                        is_active INTEGER NOT NULL DEFAULT 1
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS bookings (
                        id TEXT PRIMARY KEY,
                        booking_number TEXT NOT NULL,
                        client_name TEXT NOT NULL,
                        email TEXT NOT NULL,
                        phone TEXT NOT NULL DEFAULT '',
                        status TEXT NOT NULL DEFAULT 'pending',
                        subtotal REAL NOT NULL,
                        taxes REAL NOT NULL,
                        fees REAL NOT NULL,
                        discounts REAL NOT NULL,
                        total REAL NOT NULL CHECK (total >= 0),
                        source TEXT NOT NULL DEFAULT 'wordpress',
                        notes TEXT NOT NULL DEFAULT '',
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS booking_items (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        booking_id TEXT NOT NULL,
                        item_type TEXT NOT NULL
                            CHECK (item_type IN ('room', 'surfCamp', 'addOn')),
                        item_id TEXT NOT NULL,
                        name TEXT NOT NULL,
                        quantity INTEGER NOT NULL CHECK (quantity > 0),
                        unit_price REAL NOT NULL,
                        total_price REAL NOT NULL,
                        start_date TEXT,
                        end_date TEXT,
                        nights INTEGER,
                        participants INTEGER,
                        FOREIGN KEY (booking_id) REFERENCES bookings(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS room_assignments (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        room_id TEXT NOT NULL,
                        bed_number INTEGER,
                        check_in_date TEXT NOT NULL,
                        check_out_date TEXT NOT NULL,
                        booking_id TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        CHECK (check_out_date > check_in_date),
                        FOREIGN KEY (room_id) REFERENCES rooms(id),
                        FOREIGN KEY (booking_id) REFERENCES bookings(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_assignments_dates
                    ON room_assignments(check_in_date, check_out_date);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_assignments_room_dates
                    ON room_assignments(room_id, check_in_date, check_out_date);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_data(self) -> None:
        """Seed the demo catalogue only when the rooms table is empty."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) AS count FROM rooms;")
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Catalogue already present; skipping seed")
                    return

            for room in _DEMO_ROOMS:
                self.save_room(room)
            for add_on in _DEMO_ADD_ONS:
                self.save_add_on(add_on)

            camp_start = datetime.now(timezone.utc).date() + timedelta(days=30)
            self.save_surf_camp(
                SurfCamp(
                    camp_id="surf-week-beginners",
                    name="Surf Week Beginners",
                    price=650,
                    start_date=camp_start.isoformat(),
                    end_date=(camp_start + timedelta(days=7)).isoformat(),
                    max_participants=12,
                )
            )
            logger.info(
                "Demo seed completed with %s rooms and %s add-ons",
                len(_DEMO_ROOMS),
                len(_DEMO_ADD_ONS),
            )
        except sqlite3.Error as exc:
            raise RuntimeError(f"Demo data seeding failed: {exc}") from exc

    # --- catalogue ---------------------------------------------------------

    @staticmethod
    def _row_to_room(row: sqlite3.Row) -> Room:
        return Room(
            room_id=str(row["id"]),
            name=str(row["name"]),
            capacity=int(row["capacity"]),
            booking_type=str(row["booking_type"]),
            pricing=RoomPricing.from_dict(json.loads(row["pricing"] or "{}")),
            amenities=tuple(json.loads(row["amenities"] or "[]")),
            images=tuple(json.loads(row["images"] or "[]")),
            description=str(row["description"] or ""),
            is_active=bool(row["is_active"]),
        )

    def save_room(self, room: Room) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO rooms (
                    id, name, capacity, booking_type, pricing,
                    amenities, images, description, is_active
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    room.room_id,
                    room.name,
                    room.capacity,
                    room.booking_type,
                    json.dumps(room.pricing.to_dict()),
                    json.dumps(list(room.amenities)),
                    json.dumps(list(room.images)),
                    room.description,
                    int(room.is_active),
                ),
            )
            conn.commit()

    def list_active_rooms(self) -> list[Room]:
        """Return active rooms in natural id order."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT id, name, capacity, booking_type, pricing,
                           amenities, images, description, is_active
                    FROM rooms
                    WHERE is_active = 1
                    ORDER BY id ASC;
                    """
                )
                return [self._row_to_room(row) for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            raise RepositoryUnavailableError(f"Room query failed: {exc}") from exc

    def get_room(self, room_id: str) -> Optional[Room]:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT id, name, capacity, booking_type, pricing,
                           amenities, images, description, is_active
                    FROM rooms
                    WHERE id = ?;
                    """,
                    (room_id,),
                )
                row = cursor.fetchone()
                if row is None:
                    return None
                return self._row_to_room(row)
        except sqlite3.Error as exc:
            raise RepositoryUnavailableError(f"Room lookup failed: {exc}") from exc

    def save_surf_camp(self, camp: SurfCamp) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO surf_camps (
                    id, name, price, start_date, end_date, max_participants, is_active
                )
                VALUES (?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    camp.camp_id,
                    camp.name,
                    camp.price,
                    camp.start_date,
                    camp.end_date,
                    camp.max_participants,
                    int(camp.is_active),
                ),
            )
            conn.commit()

    def get_surf_camp(self, camp_id: str) -> Optional[SurfCamp]:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT id, name, price, start_date, end_date, max_participants, is_active
                    FROM surf_camps
                    WHERE id = ?;
                    """,
                    (camp_id,),
                )
                row = cursor.fetchone()
                if row is None:
                    return None
                return SurfCamp(
                    camp_id=str(row["id"]),
                    name=str(row["name"]),
                    price=float(row["price"]),
                    start_date=str(row["start_date"]),
                    end_date=str(row["end_date"]),
                    max_participants=int(row["max_participants"]),
                    is_active=bool(row["is_active"]),
                )
        except sqlite3.Error as exc:
            raise RepositoryUnavailableError(f"Surf camp lookup failed: {exc}") from exc

    def save_add_on(self, add_on: AddOn) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO add_ons (
                    id, name, price, category, max_quantity, is_active
                )
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (
                    add_on.add_on_id,
                    add_on.name,
                    add_on.price,
                    add_on.category,
                    add_on.max_quantity,
                    int(add_on.is_active),
                ),
            )
            conn.commit()

    def get_add_on(self, add_on_id: str) -> Optional[AddOn]:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT id, name, price, category, max_quantity, is_active
                    FROM add_ons
                    WHERE id = ?;
                    """,
                    (add_on_id,),
                )
                row = cursor.fetchone()
                if row is None:
                    return None
                return AddOn(
                    add_on_id=str(row["id"]),
                    name=str(row["name"]),
                    price=float(row["price"]),
                    category=str(row["category"]),
                    max_quantity=(
                        int(row["max_quantity"]) if row["max_quantity"] is not None else None
                    ),
                    is_active=bool(row["is_active"]),
                )
        except sqlite3.Error as exc:
            raise RepositoryUnavailableError(f"Add-on lookup failed: {exc}") from exc

    # --- occupancy ---------------------------------------------------------

    @staticmethod
    def _row_to_assignment(row: sqlite3.Row) -> RoomAssignment:
        return RoomAssignment(
            room_id=str(row["room_id"]),
            bed_number=int(row["bed_number"]) if row["bed_number"] is not None else None,
            check_in_date=str(row["check_in_date"]),
            check_out_date=str(row["check_out_date"]),
            booking_id=str(row["booking_id"]) if row["booking_id"] is not None else None,
        )

    def create_assignment(self, assignment: RoomAssignment) -> int:
        """Insert a bare assignment row (admin tooling and fixtures)."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO room_assignments (
                    room_id, bed_number, check_in_date, check_out_date, booking_id
                )
                VALUES (?, ?, ?, ?, ?);
                """,
                (
                    assignment.room_id,
                    assignment.bed_number,
                    assignment.check_in_date,
                    assignment.check_out_date,
                    assignment.booking_id,
                ),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def list_assignments_covering(self, first_day: str, last_day: str) -> list[RoomAssignment]:
        """Assignments occupying at least one night in [first_day, last_day]."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT ra.room_id, ra.bed_number, ra.check_in_date,
                           ra.check_out_date, ra.booking_id
                    FROM room_assignments AS ra
                    INNER JOIN rooms AS r ON r.id = ra.room_id
                    WHERE r.is_active = 1
                      AND ra.check_in_date <= ?
                      AND ra.check_out_date > ?
                    ORDER BY ra.check_in_date ASC, ra.id ASC;
                    """,
                    (last_day, first_day),
                )
                return [self._row_to_assignment(row) for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            raise RepositoryUnavailableError(f"Assignment query failed: {exc}") from exc

    def count_occupied_by_room(self, check_in: str, check_out: str) -> dict[str, int]:
        """Count assignments per room overlapping the half-open stay [check_in, check_out)."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT room_id, COUNT(*) AS occupied
                    FROM room_assignments
                    WHERE check_in_date < ?
                      AND check_out_date > ?
                    GROUP BY room_id;
                    """,
                    (check_out, check_in),
                )
                return {str(row["room_id"]): int(row["occupied"]) for row in cursor.fetchall()}
        except sqlite3.Error as exc:
            raise RepositoryUnavailableError(f"Occupancy query failed: {exc}") from exc

    def list_assignments_for_booking(self, booking_id: str) -> list[RoomAssignment]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT room_id, bed_number, check_in_date, check_out_date, booking_id
                FROM room_assignments
                WHERE booking_id = ?
                ORDER BY bed_number ASC;
                """,
                (booking_id,),
            )
            return [self._row_to_assignment(row) for row in cursor.fetchall()]

    # --- bookings ----------------------------------------------------------

    @staticmethod
    def _insert_booking(
        cursor: sqlite3.Cursor,
        booking: NewBooking,
        breakdown: PriceBreakdown,
    ) -> None:
        cursor.execute(
            """
            INSERT INTO bookings (
                id, booking_number, client_name, email, phone,
                subtotal, taxes, fees, discounts, total, source, notes
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                booking.booking_id,
                booking.booking_number,
                booking.client_name,
                booking.email,
                booking.phone,
                breakdown.subtotal,
                breakdown.taxes,
                breakdown.fees,
                breakdown.discounts,
                breakdown.total,
                booking.source,
                booking.notes,
            ),
        )
        cursor.executemany(
            """
            INSERT INTO booking_items (
                booking_id, item_type, item_id, name, quantity, unit_price,
                total_price, start_date, end_date, nights, participants
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            [
                (
                    booking.booking_id,
                    item.item_type,
                    item.item_id,
                    item.name,
                    item.quantity,
                    item.unit_price,
                    item.total_price,
                    item.start_date,
                    item.end_date,
                    item.nights,
                    item.participants,
                )
                for item in breakdown.items
            ],
        )

    def create_room_booking(
        self,
        booking: NewBooking,
        breakdown: PriceBreakdown,
        room: Room,
        check_in: str,
        check_out: str,
        beds_needed: int,
    ) -> list[int]:
        """Re-check capacity and write booking plus assignments atomically.

        ``BEGIN IMMEDIATE`` takes the database write lock before the capacity
        read, so two concurrent bookers cannot both pass the check. Returns the
        bed numbers assigned.
        """
        stay_days = [
            day.isoformat()
            for day in iter_days(
                parse_iso_date(check_in),
                parse_iso_date(check_out) - timedelta(days=1),
            )
        ]
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("BEGIN IMMEDIATE;")
                cursor.execute(
                    """
                    SELECT bed_number, check_in_date, check_out_date
                    FROM room_assignments
                    WHERE room_id = ?
                      AND check_in_date < ?
                      AND check_out_date > ?;
                    """,
                    (room.room_id, check_out, check_in),
                )
                overlapping = cursor.fetchall()

                peak_occupied = max(
                    (
                        sum(
                            1
                            for row in overlapping
                            if row["check_in_date"] <= day < row["check_out_date"]
                        )
                        for day in stay_days
                    ),
                    default=0,
                )
                if peak_occupied + beds_needed > room.capacity:
                    raise CapacityConflictError(
                        f"{room.name} has {max(0, room.capacity - peak_occupied)} free "
                        f"beds for the selected dates; {beds_needed} requested"
                    )

                taken_beds = {int(row["bed_number"]) for row in overlapping if row["bed_number"] is not None}
                free_beds = [bed for bed in range(1, room.capacity + 1) if bed not in taken_beds]
                assigned_beds = free_beds[:beds_needed]

                self._insert_booking(cursor, booking, breakdown)
                cursor.executemany(
                    """
                    INSERT INTO room_assignments (
                        room_id, bed_number, check_in_date, check_out_date, booking_id
                    )
                    VALUES (?, ?, ?, ?, ?);
                    """,
                    [
                        (
                            room.room_id,
                            assigned_beds[index] if index < len(assigned_beds) else None,
                            check_in,
                            check_out,
                            booking.booking_id,
                        )
                        for index in range(beds_needed)
                    ],
                )
                conn.commit()
                return assigned_beds
        except sqlite3.Error as exc:
            raise RepositoryUnavailableError(f"Room booking write failed: {exc}") from exc

    def create_surf_camp_booking(
        self,
        booking: NewBooking,
        breakdown: PriceBreakdown,
        camp: SurfCamp,
        participants: int,
    ) -> int:
        """Write a camp booking if seats remain; returns seats left afterwards."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("BEGIN IMMEDIATE;")
                cursor.execute(
                    """
                    SELECT COALESCE(SUM(bi.participants), 0) AS booked
                    FROM booking_items AS bi
                    INNER JOIN bookings AS b ON b.id = bi.booking_id
                    WHERE bi.item_type = 'surfCamp'
                      AND bi.item_id = ?
                      AND b.status != 'cancelled';
                    """,
                    (camp.camp_id,),
                )
                booked = int(cursor.fetchone()["booked"])
                seats_left = camp.max_participants - booked
                if participants > seats_left:
                    raise CapacityConflictError(
                        f"{camp.name} has {max(0, seats_left)} seats left; {participants} requested"
                    )
                self._insert_booking(cursor, booking, breakdown)
                conn.commit()
                return seats_left - participants
        except sqlite3.Error as exc:
            raise RepositoryUnavailableError(f"Surf camp booking write failed: {exc}") from exc

    def get_booking(self, booking_id: str) -> Optional[BookingRecord]:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT id, booking_number, client_name, email, status, subtotal,
                           taxes, fees, discounts, total, source, created_at
                    FROM bookings
                    WHERE id = ?;
                    """,
                    (booking_id,),
                )
                row = cursor.fetchone()
                if row is None:
                    return None
                return BookingRecord(
                    booking_id=str(row["id"]),
                    booking_number=str(row["booking_number"]),
                    client_name=str(row["client_name"]),
                    email=str(row["email"]),
                    status=str(row["status"]),
                    subtotal=float(row["subtotal"]),
                    taxes=float(row["taxes"]),
                    fees=float(row["fees"]),
                    discounts=float(row["discounts"]),
                    total=float(row["total"]),
                    source=str(row["source"]),
                    created_at=str(row["created_at"]),
                )
        except sqlite3.Error as exc:
            raise RepositoryUnavailableError(f"Booking lookup failed: {exc}") from exc

    def list_booking_items(self, booking_id: str) -> list[BookingItem]:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    SELECT item_type, item_id, name, quantity, unit_price, total_price,
                           start_date, end_date, nights, participants
                    FROM booking_items
                    WHERE booking_id = ?
                    ORDER BY id ASC;
                    """,
                    (booking_id,),
                )
                return [
                    BookingItem(
                        item_type=str(row["item_type"]),
                        item_id=str(row["item_id"]),
                        name=str(row["name"]),
                        quantity=int(row["quantity"]),
                        unit_price=float(row["unit_price"]),
                        total_price=float(row["total_price"]),
                        start_date=row["start_date"],
                        end_date=row["end_date"],
                        nights=row["nights"],
                        participants=row["participants"],
                    )
                    for row in cursor.fetchall()
                ]
        except sqlite3.Error as exc:
            raise RepositoryUnavailableError(f"Booking item query failed: {exc}") from exc

    def cancel_booking(self, booking_id: str) -> int:
        """Mark a booking cancelled and release its assignments; returns released rows."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "UPDATE bookings SET status = 'cancelled' WHERE id = ?;",
                    (booking_id,),
                )
                cursor.execute(
                    "DELETE FROM room_assignments WHERE booking_id = ?;",
                    (booking_id,),
                )
                released = cursor.rowcount
                conn.commit()
                return int(released)
        except sqlite3.Error as exc:
            raise RepositoryUnavailableError(f"Booking cancellation failed: {exc}") from exc

    def count_bookings(self) -> int:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) AS count FROM bookings;")
                return int(cursor.fetchone()["count"])
        except sqlite3.Error as exc:
            raise RepositoryUnavailableError(f"Booking count failed: {exc}") from exc
