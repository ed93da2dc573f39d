"""
Accounts, login and zone occupancy.

A dispatcher logs in *to a zone*: login claims the zone and logout frees
it. Every authenticated request re-checks that claim, so a token whose
zone was released or taken over elsewhere stops working even though the
token itself is still known.
"""

import logging
import uuid
from dataclasses import replace
from typing import List, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from skydispatch.errors import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from skydispatch.sessions import Session
from skydispatch.state import Actor, DispatchState, SYSTEM_ACTOR
from skydispatch.storage import User

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MIN_PIN_LENGTH = 4


def hash_pin(pin: str) -> str:
    return generate_password_hash(str(pin))


def verify_pin(pin_hash: str, pin: str) -> bool:
    return check_password_hash(pin_hash, str(pin))


def _find_by_username(users: List[User], username: str) -> Optional[User]:
    wanted = username.lower()
    return next((u for u in users if u.username.lower() == wanted), None)


class AuthService:

    def __init__(self, state: DispatchState):
        self.state = state

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def ensure_admin_account(self) -> Optional[User]:
        """
        Make sure exactly one admin exists.

        Promotes the user named like the configured admin if there is one,
        otherwise creates the admin account. No-op when an admin exists.
        """
        admin = self.state.config.admin
        users = self.state.storage.load_users()
        if any(u.is_admin for u in users):
            return None

        existing = _find_by_username(users, admin.username)
        if existing is not None:
            existing.role = 'admin'
            self.state.storage.save_users(users)
            self.state.audit(SYSTEM_ACTOR, 'admin_promote', 'user', existing.id,
                             f'User {existing.username} promoted to admin')
            logger.info(f'Promoted {existing.username} to admin')
            return existing

        user = User(
            id=str(uuid.uuid4()),
            username=admin.username,
            pin_hash=hash_pin(admin.pin),
            role='admin',
            created_at=self.state.now(),
        )
        users.append(user)
        self.state.storage.save_users(users)
        self.state.audit(SYSTEM_ACTOR, 'admin_create', 'user', user.id, f'Admin {user.username} created')
        logger.info(f'Created admin account {user.username}')
        return user

    def register(self, username: str, pin: str, zone_id: str) -> User:
        username = (username or '').strip()
        pin = (pin or '').strip()
        zone_id = (zone_id or '').strip()

        if len(username) < MIN_USERNAME_LENGTH or len(pin) < MIN_PIN_LENGTH:
            raise ValidationError('invalid_credentials')
        if not zone_id:
            raise ValidationError('zone_required')
        self.state.assignments.validate_selection(zone_id)

        users = self.state.storage.load_users()
        if _find_by_username(users, username) is not None:
            raise ConflictError('user_exists')

        user = User(
            id=str(uuid.uuid4()),
            username=username,
            pin_hash=hash_pin(pin),
            role='dispatcher',
            created_at=self.state.now(),
        )
        users.append(user)
        self.state.storage.save_users(users)
        self.state.audit(Actor(id=None, name=username, role='dispatcher'), 'register', 'user', user.id,
                         f'Account {username} created')
        logger.info(f'Registered dispatcher {username}')
        return user

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def login(self, username: str, pin: str, zone_id: str) -> Session:
        username = (username or '').strip()
        pin = (pin or '').strip()
        zone_id = (zone_id or '').strip()
        now = self.state.now()

        user = _find_by_username(self.state.storage.load_users(), username)
        if user is None or not verify_pin(user.pin_hash, pin):
            raise AuthenticationError('invalid_login')

        if user.is_admin:
            # Admins are not bound to a zone; a selected zone is informational only
            zone = self.state.zones.get(zone_id)
        else:
            if not zone_id:
                raise ValidationError('zone_required')
            zone = self.state.assignments.validate_selection(zone_id, user.id)
            self.state.assignments.assign(zone, user.id, user.username, user.role, now)

        session = self.state.sessions.issue(user.id, user.username, user.role, zone, now)
        self.state.audit(Actor.of(user), 'login', 'user', user.id, f'{user.username} logged in', now=now)
        logger.info(f'{user.username} logged in' + (f' to zone {zone.id}' if zone else ''))
        return session

    def logout(self, session: Session) -> None:
        self.state.sessions.revoke(session.token)
        self.state.assignments.release(session.zone_id, session.user_id)
        self.state.audit(Actor.of(session), 'logout', 'user', session.user_id, f'{session.username} logged out')
        logger.info(f'{session.username} logged out')

    def authenticate(self, token: Optional[str]) -> Session:
        """
        Resolve a bearer token to its session.

        Non-admin sessions must still hold the zone they logged in to.
        """
        session = self.state.sessions.get(token)
        if session is None:
            raise AuthenticationError('unauthorized')
        if not session.is_admin and session.zone_id:
            if not self.state.assignments.is_held_by(session.zone_id, session.user_id):
                logger.debug(f'{session.username} no longer holds zone {session.zone_id}')
                raise ForbiddenError('zone_forbidden')
        return session

    # -------------------------------------------------------------------------
    # Dispatcher management
    # -------------------------------------------------------------------------

    def list_dispatchers(self) -> List[dict]:
        users = self.state.storage.load_users()
        flights = self.state.storage.load_flights()
        online = self.state.sessions.online_user_ids()
        result = []
        for user in users:
            if user.is_admin:
                continue
            data = user.to_dict()
            data['online'] = user.id in online
            data['activeFlights'] = sum(1 for f in flights if f.owner_id == user.id)
            result.append(data)
        return result

    def online_dispatchers(self, caller: Session) -> List[dict]:
        online = self.state.sessions.online_user_ids()
        return [
            user.to_dict()
            for user in self.state.storage.load_users()
            if not user.is_admin and user.id in online and user.id != caller.user_id
        ]

    def remove_dispatcher(self, admin: Session, user_id: str) -> User:
        """
        Delete an account and everything it holds.

        Sessions are revoked and zones freed; flights it owned stay in the
        list but become unowned.
        """
        users = self.state.storage.load_users()
        target = next((u for u in users if u.id == user_id), None)
        if target is None:
            raise NotFoundError('user_not_found')
        if target.is_admin:
            raise ValidationError('invalid_target')

        users.remove(target)
        self.state.storage.save_users(users)

        self.state.sessions.revoke_user(target.id)
        self.state.assignments.release_all(target.id)

        flights = self.state.storage.load_flights()
        orphaned = [f for f in flights if f.owner_id == target.id]
        if orphaned:
            flights = [
                replace(f, owner_id=None, owner_name=None) if f.owner_id == target.id else f
                for f in flights
            ]
            self.state.storage.save_flights(flights)

        self.state.audit(Actor.of(admin), 'dispatcher_delete', 'user', target.id,
                         f'Account {target.username} deleted')
        logger.info(f'{admin.username} deleted {target.username}, {len(orphaned)} flight(s) unowned')
        return target
