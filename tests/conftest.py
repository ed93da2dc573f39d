"""
Shared fixtures: an app over in-memory SQLite, the bundled airport
dataset and a clock the tests can move.
"""

import pytest

from skydispatch.airports import AirportDirectory
from skydispatch.app import create_app
from skydispatch.config import (
    BUNDLED_AIRPORTS_FILE,
    AdminConfig,
    AirportsConfig,
    AppConfig,
    DatabaseConfig,
    TransferConfig,
)
from skydispatch.flights import parse_msk_datetime

ADMIN_PIN = '0000'
HOUR_MS = 60 * 60 * 1000


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


def make_config(**overrides) -> AppConfig:
    values = dict(
        database=DatabaseConfig(url='sqlite://'),
        airports=AirportsConfig(path=str(BUNDLED_AIRPORTS_FILE)),
        admin=AdminConfig(username='admin', pin=ADMIN_PIN),
        transfer=TransferConfig(timeout_ms=15000),
        secret_key='test',
        debug=False,
        seed_flights=False,
    )
    values.update(overrides)
    return AppConfig(**values)


@pytest.fixture(scope='session')
def airports():
    return AirportDirectory.from_file(str(BUNDLED_AIRPORTS_FILE))


@pytest.fixture
def clock():
    return FakeClock(parse_msk_datetime('2026-03-01 12:00'))


@pytest.fixture
def app(clock, airports):
    app = create_app(make_config(), clock=clock, airports=airports)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def state(app):
    return app.extensions['skydispatch'].state


# -------------------------------------------------------------------------
# API helpers
# -------------------------------------------------------------------------

def auth_header(token: str) -> dict:
    return {'Authorization': f'Bearer {token}'}


def register(client, username: str, zone_id: str, pin: str = '1234'):
    return client.post('/auth/register', json={'username': username, 'pin': pin, 'zoneId': zone_id})


def login(client, username: str, zone_id: str = '', pin: str = '1234'):
    return client.post('/auth/login', json={'username': username, 'pin': pin, 'zoneId': zone_id})


def register_and_login(client, username: str, zone_id: str) -> dict:
    """Register a dispatcher and log them in to ``zone_id``. Returns the login body."""
    assert register(client, username, zone_id).status_code == 200
    response = login(client, username, zone_id)
    assert response.status_code == 200, response.get_json()
    return response.get_json()


def admin_token(client) -> str:
    response = login(client, 'admin', pin=ADMIN_PIN)
    assert response.status_code == 200
    return response.get_json()['token']


def flight_body(callsign: str, from_icao: str, to_icao: str, departure: str, arrival: str, **extra) -> dict:
    body = {
        'callsign': callsign,
        'fromIcao': from_icao,
        'toIcao': to_icao,
        'departureMsk': departure,
        'arrivalMsk': arrival,
    }
    body.update(extra)
    return body
