"""
Database models for SkyDispatch.

Three flat collections: flights, users and the audit log. The first two
are read and rewritten as whole lists; the log is append-only.
"""

from skydispatch.models.base import Base, build_engine, build_session_factory, session_scope, init_db
from skydispatch.models.flight_record import FlightRecord
from skydispatch.models.user import UserRecord
from skydispatch.models.audit_log import AuditLogRecord

__all__ = [
    'Base',
    'build_engine',
    'build_session_factory',
    'session_scope',
    'init_db',
    'FlightRecord',
    'UserRecord',
    'AuditLogRecord',
]
