"""
Flight records and their time-derived state.

A flight only stores its schedule. Status, progress and position are
derived from the current time on every read, so the stored list never
needs a background tick. Timestamps are UTC epoch milliseconds.
"""

import math
import re
from dataclasses import dataclass, fields, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, Optional

from skydispatch.airports import AirportDirectory
from skydispatch.geo import Position, interpolate_great_circle

MSK = timezone(timedelta(hours=3), 'MSK')

FLIGHT_PHASES = (
    'Preparation',
    'Engine start',
    'Pushback',
    'Taxi',
    'Holding short',
    'Takeoff',
    'Climb',
    'Cruise',
    'Descent',
    'Approach',
    'Landing',
    'Taxi to gate',
    'Parked / Completed',
)
DEFAULT_PHASE = FLIGHT_PHASES[0]


class FlightStatus(str, Enum):
    SCHEDULED = 'scheduled'
    ACTIVE = 'active'
    COMPLETED = 'completed'


class Priority(str, Enum):
    NORMAL = 'NORMAL'
    HIGH = 'HIGH'
    EMERGENCY = 'EMERGENCY'


_ISO_MSK = re.compile(r'^(\d{4})-(\d{2})-(\d{2})\s+(\d{2}):(\d{2})$')
_DOTTED_MSK = re.compile(r'^(\d{2})\.(\d{2})\.(\d{4})\s+(\d{2}):(\d{2})$')


@dataclass(frozen=True)
class Flight:
    """
    One flight in the shared list.

    Frozen: every change produces a new record via ``dataclasses.replace``,
    which keeps normalization steps like ``clear_expired_transfer`` pure.
    """
    id: str
    callsign: str
    from_icao: str
    to_icao: str
    departure_utc: int
    arrival_utc: int
    phase: str = DEFAULT_PHASE
    speed: Optional[float] = None
    altitude: Optional[float] = None
    awaiting_atc: bool = False
    priority: str = Priority.NORMAL.value
    owner_id: Optional[str] = None
    owner_name: Optional[str] = None
    is_locked: bool = False
    locked_by: Optional[str] = None
    transfer_pending: bool = False
    transfer_to_user_id: Optional[str] = None
    transfer_requested_at: Optional[int] = None
    transfer_expires_at: Optional[int] = None
    created_at: Optional[int] = None

    def to_dict(self) -> dict:
        """Stored fields in the camelCase wire format."""
        return {
            'id': self.id,
            'callsign': self.callsign,
            'fromIcao': self.from_icao,
            'toIcao': self.to_icao,
            'departureUtc': self.departure_utc,
            'arrivalUtc': self.arrival_utc,
            'phase': self.phase or DEFAULT_PHASE,
            'speed': self.speed,
            'altitude': self.altitude,
            'awaitingAtc': bool(self.awaiting_atc),
            'priority': normalize_priority(self.priority),
            'ownerId': self.owner_id or None,
            'ownerName': self.owner_name or None,
            'isLocked': bool(self.is_locked),
            'lockedBy': self.locked_by or None,
            'transferPending': bool(self.transfer_pending),
            'transferToUserId': self.transfer_to_user_id or None,
            'transferRequestedAt': self.transfer_requested_at or None,
            'transferExpiresAt': self.transfer_expires_at or None,
            'createdAt': self.created_at,
        }


FLIGHT_FIELDS = tuple(f.name for f in fields(Flight))


# -------------------------------------------------------------------------
# Input normalization
# -------------------------------------------------------------------------

def normalize_callsign(value) -> str:
    return str(value or '').strip().upper()


def normalize_icao(value) -> str:
    return str(value or '').strip().upper()


def normalize_priority(value) -> str:
    normalized = str(value or '').strip().upper()
    if normalized in Priority.__members__:
        return normalized
    return Priority.NORMAL.value


def normalize_phase(value, fallback: str = DEFAULT_PHASE) -> str:
    return value if value in FLIGHT_PHASES else fallback


def parse_number(value) -> Optional[float]:
    """Finite number from a JSON value, or None for blanks and junk."""
    if value is None or isinstance(value, bool) or value == '':
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_msk_datetime(value) -> Optional[int]:
    """
    Parse a Moscow-time wall clock string into UTC epoch milliseconds.

    Accepts ``YYYY-MM-DD HH:MM`` (``T`` separator allowed) and
    ``DD.MM.YYYY HH:MM``. Returns None for anything else.
    """
    if not isinstance(value, str):
        return None
    cleaned = value.strip().replace('T', ' ')

    match = _ISO_MSK.match(cleaned)
    if match:
        year, month, day, hour, minute = match.groups()
    else:
        match = _DOTTED_MSK.match(cleaned)
        if not match:
            return None
        day, month, year, hour, minute = match.groups()

    try:
        moment = datetime(int(year), int(month), int(day), int(hour), int(minute), tzinfo=MSK)
    except ValueError:
        return None
    return int(moment.timestamp() * 1000)


def format_msk(timestamp: Optional[int]) -> Optional[str]:
    """UTC epoch milliseconds rendered as ``YYYY-MM-DD HH:MM`` in Moscow time."""
    if timestamp is None or not math.isfinite(timestamp):
        return None
    moment = datetime.fromtimestamp(timestamp / 1000, tz=MSK)
    return moment.strftime('%Y-%m-%d %H:%M')


# -------------------------------------------------------------------------
# Derived state
# -------------------------------------------------------------------------

def get_status(flight: Flight, now: int) -> FlightStatus:
    if now < flight.departure_utc:
        return FlightStatus.SCHEDULED
    if now >= flight.arrival_utc:
        return FlightStatus.COMPLETED
    return FlightStatus.ACTIVE


def get_progress(flight: Flight, now: int) -> float:
    """Elapsed fraction of the departure -> arrival window, clamped to [0, 1]."""
    duration = flight.arrival_utc - flight.departure_utc
    if duration <= 0:
        return 1.0 if now >= flight.arrival_utc else 0.0
    return min(1.0, max(0.0, (now - flight.departure_utc) / duration))


def get_flight_position(flight: Flight, airports: AirportDirectory, now: int) -> Optional[Position]:
    """
    Live position of the flight.

    Parked at the origin before departure, at the destination after
    arrival, on the great circle in between. None if either airport is
    unknown to the dataset.
    """
    origin = airports.get(flight.from_icao)
    destination = airports.get(flight.to_icao)
    if origin is None or destination is None:
        return None

    status = get_status(flight, now)
    if status is FlightStatus.SCHEDULED:
        return origin.position
    if status is FlightStatus.COMPLETED:
        return destination.position
    return interpolate_great_circle(origin.position, destination.position, get_progress(flight, now))


def clear_transfer(flight: Flight) -> Flight:
    return replace(
        flight,
        transfer_pending=False,
        transfer_to_user_id=None,
        transfer_requested_at=None,
        transfer_expires_at=None,
    )


def clear_expired_transfer(flight: Flight, now: int) -> Flight:
    """
    Drop a pending transfer whose deadline has passed.

    Expiry is never swept in the background, so every path that touches a
    flight runs this first. Returns the same object when nothing changed.
    """
    expires_at = flight.transfer_expires_at
    if flight.transfer_pending and expires_at is not None and now >= expires_at:
        return clear_transfer(flight)
    return flight


def is_callsign_taken(callsign: str, flights: Iterable[Flight], now: int, ignore_id: Optional[str] = None) -> bool:
    """Completed flights release their callsign for reuse."""
    for flight in flights:
        if ignore_id and flight.id == ignore_id:
            continue
        if get_status(flight, now) is FlightStatus.COMPLETED:
            continue
        if flight.callsign == callsign:
            return True
    return False


def to_view(flight: Flight, airports: AirportDirectory, now: int) -> dict:
    """Stored fields plus everything the map UI derives from them."""
    origin = airports.get(flight.from_icao)
    destination = airports.get(flight.to_icao)

    view = flight.to_dict()
    view.update({
        'status': get_status(flight, now).value,
        'progress': get_progress(flight, now),
        'departureMsk': format_msk(flight.departure_utc),
        'arrivalMsk': format_msk(flight.arrival_utc),
        'origin': origin.to_dict() if origin else None,
        'destination': destination.to_dict() if destination else None,
    })
    return view
