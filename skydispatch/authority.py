"""
Zone authority: may this user act on this flight right now?

Admins always may. A dispatcher may when the flight's live position is
inside the zone they hold, unless a more specific zone below theirs also
contains the position and is held by someone else. That keeps a region
dispatcher and an airport dispatcher from both claiming an aircraft in
the airport's circle, while the region still covers airports nobody holds.
"""

import logging
from typing import Optional

from skydispatch.airports import AirportDirectory
from skydispatch.flights import Flight, get_flight_position
from skydispatch.geo import Position, is_position_in_zone
from skydispatch.zones import Zone, ZoneAssignments, ZoneRegistry

logger = logging.getLogger(__name__)


class AuthorityEngine:

    def __init__(self, registry: ZoneRegistry, assignments: ZoneAssignments, airports: AirportDirectory):
        self.registry = registry
        self.assignments = assignments
        self.airports = airports

    def shadowing_zone(self, zone: Zone, position: Position) -> Optional[Zone]:
        """The occupied descendant of ``zone`` that contains ``position``, if any."""
        descendant_ids = {z.id for z in self.registry.descendants(zone.id)}
        if not descendant_ids:
            return None
        for candidate in self.registry.zones_containing(position):
            if candidate.id in descendant_ids and self.assignments.is_occupied(candidate.id):
                return candidate
        return None

    def can_manage(self, user, flight: Flight, now: int) -> bool:
        """
        ``user`` is anything with ``is_admin`` and ``zone_id`` (a Session).
        """
        if user is None:
            return False
        if user.is_admin:
            return True

        zone = self.registry.get(user.zone_id)
        if zone is None:
            return False

        position = get_flight_position(flight, self.airports, now)
        if not is_position_in_zone(position, zone):
            return False

        shadow = self.shadowing_zone(zone, position)
        if shadow is not None:
            logger.debug(f'{flight.callsign} in {zone.id} is shadowed by occupied {shadow.id}')
            return False
        return True
