"""
Persistence for the flat collections.

The rest of the application sees a narrow document-store contract:
``load_flights()`` returns the whole list, ``save_flights(list)`` replaces
it. Nothing here guards a read-modify-write cycle: two requests that load
the same list and save it back are last-write-wins.

Reads degrade to an empty list when the database cannot be read; the
service stays up and serves what it can. Writes propagate their errors.
"""

import logging
from dataclasses import asdict, dataclass
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from skydispatch.config import DatabaseConfig
from skydispatch.flights import Flight, FLIGHT_FIELDS
from skydispatch.models import (
    AuditLogRecord,
    FlightRecord,
    UserRecord,
    build_engine,
    build_session_factory,
    init_db,
    session_scope,
)

logger = logging.getLogger(__name__)


@dataclass
class User:
    id: str
    username: str
    pin_hash: str
    role: str = 'dispatcher'
    created_at: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'

    def to_dict(self) -> dict:
        return {'id': self.id, 'username': self.username, 'role': self.role or 'dispatcher'}


@dataclass
class AuditLogEntry:
    """One line of the audit trail."""
    timestamp: int
    actor_id: Optional[str]
    actor_name: str
    actor_role: str
    action_type: str
    entity_type: str
    entity_id: Optional[str]
    summary: str
    diff: Optional[dict] = None

    def to_dict(self) -> dict:
        data = {
            'timestamp': self.timestamp,
            'actorId': self.actor_id,
            'actorName': self.actor_name,
            'actorRole': self.actor_role,
            'actionType': self.action_type,
            'entityType': self.entity_type,
            'entityId': self.entity_id,
            'summary': self.summary,
        }
        if self.diff is not None:
            data['diff'] = self.diff
        return data


class Storage:
    """SQLAlchemy-backed store for flights, users and the audit log."""

    def __init__(self, database: DatabaseConfig, echo: bool = False):
        self.engine = build_engine(database, echo=echo)
        self._session_factory = build_session_factory(self.engine)

    def init_schema(self) -> None:
        logger.info('Initializing database schema...')
        init_db(self.engine)

    def session(self):
        return session_scope(self._session_factory)

    # -------------------------------------------------------------------------
    # Flights
    # -------------------------------------------------------------------------

    def load_flights(self) -> List[Flight]:
        try:
            with self.session() as session:
                rows = session.scalars(select(FlightRecord).order_by(FlightRecord.position)).all()
        except SQLAlchemyError as e:
            logger.warning(f'Flight list unreadable, serving empty list: {e}')
            return []
        return [Flight(**{name: getattr(row, name) for name in FLIGHT_FIELDS}) for row in rows]

    def save_flights(self, flights: List[Flight]) -> None:
        with self.session() as session:
            session.execute(delete(FlightRecord))
            session.add_all(
                FlightRecord(position=index, **asdict(flight))
                for index, flight in enumerate(flights)
            )
        logger.debug(f'Saved {len(flights)} flights')

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def load_users(self) -> List[User]:
        try:
            with self.session() as session:
                rows = session.scalars(select(UserRecord).order_by(UserRecord.position)).all()
        except SQLAlchemyError as e:
            logger.warning(f'User list unreadable, serving empty list: {e}')
            return []
        return [
            User(
                id=row.id,
                username=row.username,
                pin_hash=row.pin_hash,
                role=row.role or 'dispatcher',
                created_at=row.created_at,
            )
            for row in rows
        ]

    def save_users(self, users: List[User]) -> None:
        with self.session() as session:
            session.execute(delete(UserRecord))
            session.add_all(
                UserRecord(
                    id=user.id,
                    position=index,
                    username=user.username,
                    pin_hash=user.pin_hash,
                    role=user.role or 'dispatcher',
                    created_at=user.created_at,
                )
                for index, user in enumerate(users)
            )

    # -------------------------------------------------------------------------
    # Audit log
    # -------------------------------------------------------------------------

    def append_log(self, entry: AuditLogEntry) -> None:
        with self.session() as session:
            session.add(AuditLogRecord(**asdict(entry)))

    def load_logs(self) -> List[AuditLogEntry]:
        try:
            with self.session() as session:
                rows = session.scalars(select(AuditLogRecord).order_by(AuditLogRecord.id)).all()
        except SQLAlchemyError as e:
            logger.warning(f'Audit log unreadable, serving empty list: {e}')
            return []
        return [
            AuditLogEntry(
                timestamp=row.timestamp,
                actor_id=row.actor_id,
                actor_name=row.actor_name,
                actor_role=row.actor_role,
                action_type=row.action_type,
                entity_type=row.entity_type,
                entity_id=row.entity_id,
                summary=row.summary,
                diff=row.diff,
            )
            for row in rows
        ]
