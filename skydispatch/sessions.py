"""
In-memory login sessions.

Tokens live only in process memory: a restart logs everybody out, and
there is no idle expiry. A session remembers the zone it was opened for
so each request can re-check that the zone is still held by its user.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Dict, Optional, Set

from skydispatch.zones import Zone

logger = logging.getLogger(__name__)


@dataclass
class Session:
    token: str
    user_id: str
    username: str
    role: str
    zone_id: Optional[str]
    zone_name: Optional[str]
    zone_type: Optional[str]
    created_at: int

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'

    def to_dict(self) -> dict:
        return {
            'id': self.user_id,
            'username': self.username,
            'role': self.role or 'dispatcher',
            'zoneId': self.zone_id,
            'zoneName': self.zone_name,
            'zoneType': self.zone_type,
        }


class SessionStore:
    """Token -> Session map."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def issue(self, user_id: str, username: str, role: str, zone: Optional[Zone], now: int) -> Session:
        session = Session(
            token=str(uuid.uuid4()),
            user_id=user_id,
            username=username,
            role=role or 'dispatcher',
            zone_id=zone.id if zone else None,
            zone_name=zone.name if zone else None,
            zone_type=zone.type if zone else None,
            created_at=now,
        )
        self._sessions[session.token] = session
        return session

    def get(self, token: Optional[str]) -> Optional[Session]:
        if not token:
            return None
        return self._sessions.get(token)

    def revoke(self, token: str) -> Optional[Session]:
        return self._sessions.pop(token, None)

    def revoke_user(self, user_id: str) -> int:
        """Drop every session of a user. Returns how many were dropped."""
        tokens = [t for t, s in self._sessions.items() if s.user_id == user_id]
        for token in tokens:
            del self._sessions[token]
        if tokens:
            logger.info(f'Revoked {len(tokens)} session(s) of user {user_id}')
        return len(tokens)

    def online_user_ids(self) -> Set[str]:
        return {s.user_id for s in self._sessions.values()}
