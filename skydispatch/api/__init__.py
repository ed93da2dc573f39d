"""
API module for SkyDispatch.

Provides REST endpoints for:
- Authentication and zone occupancy
- Flights, transfers and locks
- Zones and airport lookup
- Dispatcher management and the audit log
"""

from skydispatch.api.auth import auth_bp
from skydispatch.api.directory import airports_bp, zones_bp
from skydispatch.api.dispatchers import dispatchers_bp, logs_bp
from skydispatch.api.flights import flights_bp, transfers_bp

BLUEPRINTS = (
    auth_bp,
    zones_bp,
    airports_bp,
    flights_bp,
    transfers_bp,
    dispatchers_bp,
    logs_bp,
)

__all__ = [
    'BLUEPRINTS',
    'auth_bp',
    'zones_bp',
    'airports_bp',
    'flights_bp',
    'transfers_bp',
    'dispatchers_bp',
    'logs_bp',
]
