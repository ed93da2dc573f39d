"""
Tests for zone authority over flights.
"""

import pytest

from skydispatch.authority import AuthorityEngine
from skydispatch.flights import Flight
from skydispatch.sessions import Session
from skydispatch.zones import MOSCOW_REGION_ID, ZoneAssignments, ZoneRegistry

HOUR_MS = 60 * 60 * 1000
NOW = 1_772_348_400_000


def dispatcher(user_id: str, zone_id: str) -> Session:
    return Session(
        token=f'token-{user_id}', user_id=user_id, username=user_id, role='dispatcher',
        zone_id=zone_id, zone_name=None, zone_type=None, created_at=NOW,
    )


def admin() -> Session:
    return Session(
        token='token-admin', user_id='admin', username='admin', role='admin',
        zone_id=None, zone_name=None, zone_type=None, created_at=NOW,
    )


def flight(from_icao: str, to_icao: str, departure: int, arrival: int) -> Flight:
    return Flight(
        id='f1', callsign='TST1', from_icao=from_icao, to_icao=to_icao,
        departure_utc=departure, arrival_utc=arrival,
    )


@pytest.fixture
def registry(airports):
    return ZoneRegistry.build(airports)


@pytest.fixture
def assignments(registry):
    return ZoneAssignments(registry)


@pytest.fixture
def engine(registry, assignments, airports):
    return AuthorityEngine(registry, assignments, airports)


@pytest.fixture
def parked_at_domodedovo():
    # Not departed yet, so it sits at the origin
    return flight('UUDD', 'URSS', NOW + HOUR_MS, NOW + 3 * HOUR_MS)


def hold(assignments, registry, user_id, zone_id):
    assignments.assign(registry.get(zone_id), user_id, user_id, 'dispatcher', now=NOW)


def test_admin_always_manages(engine, parked_at_domodedovo):
    assert engine.can_manage(admin(), parked_at_domodedovo, NOW)


def test_no_user(engine, parked_at_domodedovo):
    assert not engine.can_manage(None, parked_at_domodedovo, NOW)


def test_airport_dispatcher_manages_flight_in_circle(engine, assignments, registry, parked_at_domodedovo):
    hold(assignments, registry, 'alice', 'moscow_uudd')
    assert engine.can_manage(dispatcher('alice', 'moscow_uudd'), parked_at_domodedovo, NOW)


def test_neighbouring_airport_has_no_authority(engine, assignments, registry, parked_at_domodedovo):
    hold(assignments, registry, 'bob', 'moscow_uuee')
    assert not engine.can_manage(dispatcher('bob', 'moscow_uuee'), parked_at_domodedovo, NOW)


def test_region_covers_unheld_airport(engine, assignments, registry, parked_at_domodedovo):
    hold(assignments, registry, 'rita', MOSCOW_REGION_ID)
    assert engine.can_manage(dispatcher('rita', MOSCOW_REGION_ID), parked_at_domodedovo, NOW)


def test_region_is_shadowed_by_held_airport(engine, assignments, registry, parked_at_domodedovo):
    hold(assignments, registry, 'rita', MOSCOW_REGION_ID)
    hold(assignments, registry, 'alice', 'moscow_uudd')

    assert not engine.can_manage(dispatcher('rita', MOSCOW_REGION_ID), parked_at_domodedovo, NOW)
    assert engine.can_manage(dispatcher('alice', 'moscow_uudd'), parked_at_domodedovo, NOW)
    assert engine.shadowing_zone(registry.get(MOSCOW_REGION_ID), (55.4088, 37.9063)).id == 'moscow_uudd'


def test_held_airport_elsewhere_does_not_shadow(engine, assignments, registry, parked_at_domodedovo):
    hold(assignments, registry, 'rita', MOSCOW_REGION_ID)
    hold(assignments, registry, 'bob', 'moscow_uuee')
    assert engine.can_manage(dispatcher('rita', MOSCOW_REGION_ID), parked_at_domodedovo, NOW)


def test_authority_moves_with_the_flight(engine, assignments, registry):
    hold(assignments, registry, 'lena', 'los_angeles')
    la_dispatcher = dispatcher('lena', 'los_angeles')
    transcon = flight('KJFK', 'KLAX', NOW - 2 * HOUR_MS, NOW + 4 * HOUR_MS)

    assert not engine.can_manage(la_dispatcher, transcon, NOW)
    assert engine.can_manage(la_dispatcher, transcon, NOW + 4 * HOUR_MS)


def test_unknown_airport_means_no_position(engine, assignments, registry):
    hold(assignments, registry, 'alice', 'moscow_uudd')
    orphan = flight('UUDD', 'ZZZZ', NOW + HOUR_MS, NOW + 2 * HOUR_MS)
    assert not engine.can_manage(dispatcher('alice', 'moscow_uudd'), orphan, NOW)


def test_unknown_zone(engine, parked_at_domodedovo):
    assert not engine.can_manage(dispatcher('ghost', 'atlantis'), parked_at_domodedovo, NOW)
