"""
Demo data created at startup.

A fresh store gets a handful of long-haul flights spread around the
current time, plus three short European hops that are always in the air
together (the conflict set used to exercise zone overlaps). Seeded
flights are unowned.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import List

from skydispatch.flights import Flight
from skydispatch.state import DispatchState

logger = logging.getLogger(__name__)

MINUTE_MS = 60 * 1000


@dataclass(frozen=True)
class FlightSeed:
    callsign: str
    from_icao: str
    to_icao: str
    offset_min: int    # departure relative to startup
    duration_min: int
    phase: str


DEMO_FLIGHTS = (
    FlightSeed('AAL102', 'KJFK', 'KLAX', -120, 360, 'Cruise'),
    FlightSeed('BAW35', 'EGLL', 'KJFK', -90, 420, 'Cruise'),
    FlightSeed('DLH401', 'EDDF', 'KJFK', -45, 480, 'Climb'),
    FlightSeed('AFR22', 'LFPG', 'VHHH', -30, 720, 'Cruise'),
    FlightSeed('UAE202', 'OMDB', 'RJTT', 30, 540, 'Preparation'),
    FlightSeed('QTR17', 'OTHH', 'EGLL', 60, 420, 'Preparation'),
    FlightSeed('SIA25', 'WSSS', 'KLAX', 15, 900, 'Climb'),
    FlightSeed('JAL44', 'RJAA', 'KLAX', -10, 600, 'Cruise'),
    FlightSeed('ANA215', 'RJTT', 'RJAA', 5, 75, 'Preparation'),
    FlightSeed('KLM605', 'EHAM', 'LFPG', -20, 80, 'Descent'),
)

CONFLICT_FLIGHTS = (
    FlightSeed('CNF101', 'EGLL', 'EDDF', -20, 90, 'Cruise'),
    FlightSeed('CNF202', 'EHAM', 'LFPG', -18, 95, 'Cruise'),
    FlightSeed('CNF303', 'EDDF', 'EGLL', -15, 85, 'Cruise'),
)


def _build(seed: FlightSeed, now: int, speed: float, altitude: float, awaiting_atc: bool) -> Flight:
    departure = now + seed.offset_min * MINUTE_MS
    return Flight(
        id=str(uuid.uuid4()),
        callsign=seed.callsign,
        from_icao=seed.from_icao,
        to_icao=seed.to_icao,
        departure_utc=departure,
        arrival_utc=departure + seed.duration_min * MINUTE_MS,
        phase=seed.phase,
        speed=speed,
        altitude=altitude,
        awaiting_atc=awaiting_atc,
        created_at=now,
    )


def seed_flights_if_empty(state: DispatchState) -> int:
    if state.storage.load_flights():
        return 0

    now = state.now()
    flights: List[Flight] = []
    for seed in DEMO_FLIGHTS:
        if seed.from_icao not in state.airports or seed.to_icao not in state.airports:
            continue
        parked = seed.phase == 'Preparation'
        flights.append(_build(
            seed, now,
            speed=0 if parked else 420,
            altitude=0 if parked else 33000,
            awaiting_atc=parked,
        ))

    if flights:
        state.storage.save_flights(flights)
        logger.info(f'Seeded {len(flights)} demo flights')
    return len(flights)


def seed_conflict_flights_if_missing(state: DispatchState) -> int:
    now = state.now()
    flights = state.storage.load_flights()
    callsigns = {f.callsign for f in flights}

    added = 0
    for seed in CONFLICT_FLIGHTS:
        if seed.callsign in callsigns:
            continue
        if seed.from_icao not in state.airports or seed.to_icao not in state.airports:
            continue
        flights.append(_build(seed, now, speed=430, altitude=35000, awaiting_atc=False))
        added += 1

    if added:
        state.storage.save_flights(flights)
        logger.info(f'Seeded {added} conflict flights')
    return added
