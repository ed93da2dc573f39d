"""
Application state shared by every request.

Sessions and zone assignments are process-wide mutable maps. They are
owned by one ``DispatchState`` built in the application factory instead
of living in module globals, so each test app gets a fresh set.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from skydispatch.airports import AirportDirectory
from skydispatch.authority import AuthorityEngine
from skydispatch.config import AppConfig
from skydispatch.sessions import SessionStore
from skydispatch.storage import AuditLogEntry, Storage
from skydispatch.zones import ZoneAssignments, ZoneRegistry

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Wall clock in UTC epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Actor:
    """Who an audit entry is attributed to."""
    id: Optional[str]
    name: str
    role: str

    @classmethod
    def of(cls, principal) -> 'Actor':
        """Actor for a Session (``user_id``) or a User (``id``)."""
        user_id = getattr(principal, 'user_id', None) or getattr(principal, 'id', None)
        return cls(id=user_id, name=principal.username, role=principal.role or 'dispatcher')


SYSTEM_ACTOR = Actor(id=None, name='system', role='system')


class DispatchState:

    def __init__(
        self,
        config: AppConfig,
        storage: Storage,
        airports: AirportDirectory,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.config = config
        self.storage = storage
        self.airports = airports
        self.zones = ZoneRegistry.build(airports)
        self.assignments = ZoneAssignments(self.zones)
        self.sessions = SessionStore()
        self.authority = AuthorityEngine(self.zones, self.assignments, airports)
        self._clock = clock or now_ms

    def now(self) -> int:
        return int(self._clock())

    def audit(
        self,
        actor: Actor,
        action_type: str,
        entity_type: str,
        entity_id: Optional[str],
        summary: str,
        diff: Optional[dict] = None,
        now: Optional[int] = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            timestamp=self.now() if now is None else now,
            actor_id=actor.id,
            actor_name=actor.name,
            actor_role=actor.role,
            action_type=action_type,
            entity_type=entity_type,
            entity_id=None if entity_id is None else str(entity_id),
            summary=summary,
            diff=diff,
        )
        self.storage.append_log(entry)
        return entry
