"""
SkyDispatch Backend Package.

Zone-based flight dispatch built with Flask, SQLAlchemy, and NumPy.

Modules:
    api/          REST endpoints for auth, flights, transfers, zones and dispatchers
    models/       SQLAlchemy ORM models (FlightRecord, UserRecord, AuditLogRecord)
    geo.py        Great-circle distance and interpolation
    airports.py   Airport reference dataset and search
    zones.py      Zone tree and dispatcher occupancy
    flights.py    Flight records and time-derived status/position
    authority.py  Who may act on which flight
    sessions.py   In-memory login sessions
    auth.py       Accounts, login/logout, dispatcher removal
    dispatch.py   Flight CRUD, ownership transfer and admin locks
    storage.py    Full-list persistence and the audit log
    config.py     Centralized configuration from environment variables
"""

__version__ = '1.0.0'
