"""
Zone topology and dispatcher occupancy.

Zones are circular authority regions anchored on airports. They form a
tree through ``parent_id``: a region zone groups the airport zones inside
it. The topology is static and built once at startup; which dispatcher
currently holds which zone is tracked separately by ``ZoneAssignments``.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np

from skydispatch.airports import AirportDirectory
from skydispatch.errors import ConflictError, ValidationError
from skydispatch.geo import EARTH_RADIUS_KM, Position

logger = logging.getLogger(__name__)


class ZoneType(str, Enum):
    MOSCOW_REGION = 'moscow_region'
    MOSCOW_AIRPORT = 'moscow_airport'
    CITY = 'city'


class ZoneLevel(str, Enum):
    REGION = 'region'
    AIRPORT = 'airport'
    CITY = 'city'


MOSCOW_REGION_ID = 'moscow_region'
DEFAULT_ZONE_RADIUS_KM = 50.0
MOSCOW_AIRPORT_RADIUS_KM = 35.0
MOSCOW_REGION_RADIUS_KM = 220.0


@dataclass(frozen=True)
class ZoneDefinition:
    """
    Configured zone before it is resolved against the airport dataset.

    Region zones list their member airports in ``icaos`` and are centered on
    their mean position; every other zone anchors on ``icao``.
    """
    id: str
    name: str
    icao: Optional[str] = None
    icaos: Tuple[str, ...] = ()
    type: ZoneType = ZoneType.CITY
    level: ZoneLevel = ZoneLevel.CITY
    radius_km: float = DEFAULT_ZONE_RADIUS_KM
    parent_id: Optional[str] = None


def _city(zone_id: str, name: str, icao: str) -> ZoneDefinition:
    return ZoneDefinition(id=zone_id, name=name, icao=icao)


ZONE_DEFINITIONS: Tuple[ZoneDefinition, ...] = (
    ZoneDefinition(
        id=MOSCOW_REGION_ID,
        name='Moscow (region)',
        icaos=('UUDD', 'UUEE'),
        type=ZoneType.MOSCOW_REGION,
        level=ZoneLevel.REGION,
        radius_km=MOSCOW_REGION_RADIUS_KM,
    ),
    ZoneDefinition(
        id='moscow_uudd',
        name='Domodedovo',
        icao='UUDD',
        type=ZoneType.MOSCOW_AIRPORT,
        level=ZoneLevel.AIRPORT,
        radius_km=MOSCOW_AIRPORT_RADIUS_KM,
        parent_id=MOSCOW_REGION_ID,
    ),
    ZoneDefinition(
        id='moscow_uuee',
        name='Sheremetyevo',
        icao='UUEE',
        type=ZoneType.MOSCOW_AIRPORT,
        level=ZoneLevel.AIRPORT,
        radius_km=MOSCOW_AIRPORT_RADIUS_KM,
        parent_id=MOSCOW_REGION_ID,
    ),
    _city('pulkovo', 'Pulkovo', 'ULLI'),
    _city('sochi', 'Sochi', 'URSS'),
    _city('vladikavkaz', 'Vladikavkaz', 'URMO'),
    _city('simferopol', 'Simferopol', 'UKFF'),
    _city('nizhny_novgorod', 'Nizhny Novgorod', 'UWGG'),
    _city('minsk', 'Minsk', 'UMMS'),
    _city('samara', 'Samara', 'UWWW'),
    _city('platov', 'Platov', 'URRR'),
    _city('ufa', 'Ufa', 'UWUU'),
    _city('yekaterinburg', 'Yekaterinburg', 'USSS'),
    _city('chelyabinsk', 'Chelyabinsk', 'USCC'),
    _city('perm', 'Perm', 'USPP'),
    _city('tyumen', 'Tyumen', 'USTR'),
    _city('omsk', 'Omsk', 'UNOO'),
    _city('nizhnevartovsk', 'Nizhnevartovsk', 'USNN'),
    _city('novosibirsk', 'Novosibirsk', 'UNNT'),
    _city('kemerovo', 'Kemerovo', 'UNKM'),
    _city('krasnoyarsk', 'Krasnoyarsk', 'UNKL'),
    _city('murmansk', 'Murmansk', 'ULMM'),
    _city('arkhangelsk', 'Arkhangelsk', 'ULAA'),
    _city('kaliningrad', 'Kaliningrad', 'UMKK'),
    _city('helsinki', 'Helsinki', 'EFHK'),
    _city('vilnius', 'Vilnius', 'EYVI'),
    _city('riga', 'Riga', 'EVRA'),
    _city('tallinn', 'Tallinn', 'EETN'),
    _city('istanbul', 'Istanbul', 'LTFM'),
    _city('sacramento', 'Sacramento', 'KSMF'),
    _city('san_francisco', 'San Francisco', 'KSFO'),
    _city('monterey', 'Monterey', 'KMRY'),
    _city('san_diego', 'San Diego', 'KSAN'),
    _city('los_angeles', 'Los Angeles', 'KLAX'),
    _city('palm_springs', 'Palm Springs', 'KPSP'),
    _city('las_vegas', 'Las Vegas', 'KLAS'),
    _city('salt_lake_city', 'Salt Lake City', 'KSLC'),
    _city('denver', 'Denver', 'KDEN'),
)


@dataclass(frozen=True)
class Zone:
    """A resolved zone with a concrete center."""
    id: str
    name: str
    type: str
    level: str
    radius_km: float
    lat: float
    lon: float
    icao: Optional[str] = None
    parent_id: Optional[str] = None

    @property
    def center(self) -> Position:
        return (self.lat, self.lon)

    def to_dict(self) -> dict:
        data = {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'level': self.level,
            'radiusKm': self.radius_km,
            'lat': self.lat,
            'lon': self.lon,
            'parentId': self.parent_id,
        }
        if self.icao:
            data['icao'] = self.icao
        return data


def resolve_zone(definition: ZoneDefinition, airports: AirportDirectory) -> Optional[Zone]:
    """
    Resolve a definition against the airport dataset.

    Returns None when the anchor airport (or every member airport of a
    region) is missing; a partial dataset just yields fewer zones.
    """
    common = dict(
        id=definition.id,
        name=definition.name,
        type=ZoneType(definition.type).value,
        level=ZoneLevel(definition.level).value,
        radius_km=float(definition.radius_km),
        parent_id=definition.parent_id,
    )

    if definition.icaos:
        members = [airports.get(icao) for icao in definition.icaos]
        members = [a for a in members if a is not None]
        if not members:
            return None
        # Plain mean of coordinates, fine at regional scale
        coords = np.array([[a.lat, a.lon] for a in members], dtype=float)
        lat, lon = coords.mean(axis=0)
        return Zone(lat=float(lat), lon=float(lon), **common)

    airport = airports.get(definition.icao)
    if airport is None:
        return None
    return Zone(lat=airport.lat, lon=airport.lon, icao=airport.icao, **common)


class ZoneRegistry:
    """
    Static zone topology.

    Keeps the zones in definition order plus a parent -> children index and
    NumPy arrays of centers and radii for containment queries.
    """

    def __init__(self, zones: List[Zone]):
        self._zones = list(zones)
        self._by_id: Dict[str, Zone] = {z.id: z for z in self._zones}
        self._children: Dict[str, List[Zone]] = {}
        for zone in self._zones:
            if zone.parent_id:
                self._children.setdefault(zone.parent_id, []).append(zone)

        self._lat_rad = np.radians([z.lat for z in self._zones]) if self._zones else np.empty(0)
        self._lon_rad = np.radians([z.lon for z in self._zones]) if self._zones else np.empty(0)
        self._radius_km = np.array([z.radius_km for z in self._zones], dtype=float)

    @classmethod
    def build(cls, airports: AirportDirectory, definitions=ZONE_DEFINITIONS) -> 'ZoneRegistry':
        zones = []
        for definition in definitions:
            zone = resolve_zone(definition, airports)
            if zone is None:
                logger.debug(f'Zone {definition.id} dropped: anchor airport missing')
                continue
            zones.append(zone)
        logger.info(f'Zone registry built with {len(zones)} of {len(definitions)} zones')
        return cls(zones)

    def __len__(self) -> int:
        return len(self._zones)

    def __iter__(self):
        return iter(self._zones)

    def get(self, zone_id: Optional[str]) -> Optional[Zone]:
        if not zone_id:
            return None
        return self._by_id.get(zone_id)

    def descendants(self, zone_id: str) -> List[Zone]:
        """All zones below ``zone_id`` in the tree, depth-first."""
        result = []
        stack = list(reversed(self._children.get(zone_id, ())))
        while stack:
            zone = stack.pop()
            result.append(zone)
            stack.extend(reversed(self._children.get(zone.id, ())))
        return result

    def zones_containing(self, position: Optional[Position]) -> List[Zone]:
        """Every zone whose circle contains the position, vectorized over the registry."""
        if position is None or not self._zones:
            return []
        lat = np.radians(position[0])
        lon = np.radians(position[1])

        h = (
            np.sin((self._lat_rad - lat) / 2) ** 2 +
            np.cos(lat) * np.cos(self._lat_rad) *
            np.sin((self._lon_rad - lon) / 2) ** 2
        )
        distances = 2 * np.arcsin(np.minimum(1.0, np.sqrt(h))) * EARTH_RADIUS_KM
        return [self._zones[i] for i in np.flatnonzero(distances <= self._radius_km)]

    def to_list(self, assignments: 'ZoneAssignments') -> List[dict]:
        """Zones enriched with live occupancy for the API."""
        result = []
        for zone in self._zones:
            data = zone.to_dict()
            assignment = assignments.get(zone.id)
            data['occupied'] = assignment is not None
            data['dispatcher'] = assignment.to_dispatcher_dict() if assignment else None
            result.append(data)
        return result


@dataclass
class ZoneAssignment:
    """A dispatcher currently holding a zone."""
    user_id: str
    username: str
    role: str
    assigned_at: int

    def to_dispatcher_dict(self) -> dict:
        return {'id': self.user_id, 'username': self.username, 'role': self.role}


class ZoneAssignments:
    """
    Mutable map of zone id -> holder.

    At most one user per zone and one zone per user. Neither is a storage
    constraint: both are checked by ``validate_selection`` before assigning.
    """

    def __init__(self, registry: ZoneRegistry):
        self.registry = registry
        self._assignments: Dict[str, ZoneAssignment] = {}

    def __len__(self) -> int:
        return len(self._assignments)

    def get(self, zone_id: Optional[str]) -> Optional[ZoneAssignment]:
        if not zone_id:
            return None
        return self._assignments.get(zone_id)

    def is_occupied(self, zone_id: str) -> bool:
        return zone_id in self._assignments

    def is_held_by(self, zone_id: Optional[str], user_id: str) -> bool:
        assignment = self.get(zone_id)
        return assignment is not None and assignment.user_id == user_id

    def find_by_user(self, user_id: str) -> Optional[Tuple[str, ZoneAssignment]]:
        for zone_id, assignment in self._assignments.items():
            if assignment.user_id == user_id:
                return zone_id, assignment
        return None

    def validate_selection(self, zone_id: str, user_id: Optional[str] = None) -> Zone:
        """
        Check that ``user_id`` may take ``zone_id``.

        Without a user id (registration) any holder makes the zone busy.
        """
        zone = self.registry.get(zone_id)
        if zone is None:
            raise ValidationError('invalid_zone')

        existing = self._assignments.get(zone_id)
        if existing is not None and existing.user_id != user_id:
            raise ConflictError('zone_busy')

        current = self.find_by_user(user_id) if user_id else None
        if current is not None and current[0] != zone_id:
            raise ConflictError('zone_busy')
        return zone

    def assign(self, zone: Zone, user_id: str, username: str, role: str, now: int) -> ZoneAssignment:
        assignment = ZoneAssignment(
            user_id=user_id,
            username=username,
            role=role or 'dispatcher',
            assigned_at=now,
        )
        self._assignments[zone.id] = assignment
        logger.info(f'Zone {zone.id} assigned to {username}')
        return assignment

    def release(self, zone_id: Optional[str], user_id: str) -> bool:
        """Release the zone only if ``user_id`` still holds it."""
        if not zone_id:
            return False
        if self.is_held_by(zone_id, user_id):
            del self._assignments[zone_id]
            logger.info(f'Zone {zone_id} released')
            return True
        return False

    def release_all(self, user_id: str) -> List[str]:
        released = [z for z, a in self._assignments.items() if a.user_id == user_id]
        for zone_id in released:
            del self._assignments[zone_id]
        return released
