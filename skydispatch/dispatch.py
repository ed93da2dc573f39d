"""
Flight operations: create/update/delete, ownership transfer and locks.

Every operation follows the same shape: read the whole list, normalize
expired transfers, gate on lock/transfer/authority, apply, write the whole
list back and append an audit entry.

Gating order for non-admin mutations is fixed:
    transfer_pending (409) -> locked (423) -> zone_forbidden (403)
A pending transfer freezes the flight independently of the lock.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from skydispatch.errors import (
    ConflictError,
    ForbiddenError,
    LockedError,
    NotFoundError,
    ValidationError,
)
from skydispatch.flights import (
    DEFAULT_PHASE,
    Flight,
    clear_expired_transfer,
    clear_transfer,
    is_callsign_taken,
    normalize_callsign,
    normalize_icao,
    normalize_phase,
    normalize_priority,
    parse_msk_datetime,
    parse_number,
    to_view,
)
from skydispatch.sessions import Session
from skydispatch.state import Actor, DispatchState

logger = logging.getLogger(__name__)

MIN_CALLSIGN_LENGTH = 3


@dataclass(frozen=True)
class FlightInput:
    """Validated identity and schedule fields of a create/update body."""
    callsign: str
    from_icao: str
    to_icao: str
    departure_utc: int
    arrival_utc: int


class FlightService:

    def __init__(self, state: DispatchState):
        self.state = state

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _load_normalized(self, now: int) -> Tuple[List[Flight], bool]:
        """Whole list with expired transfers cleared, and whether anything changed."""
        flights = self.state.storage.load_flights()
        refreshed = [clear_expired_transfer(f, now) for f in flights]
        changed = any(a is not b for a, b in zip(flights, refreshed))
        return refreshed, changed

    def _find(self, flights: List[Flight], flight_id: str) -> int:
        for index, flight in enumerate(flights):
            if flight.id == flight_id:
                return index
        raise NotFoundError('not_found')

    def _view(self, flight: Flight, now: int) -> dict:
        return to_view(flight, self.state.airports, now)

    def _validate(self, body: dict) -> FlightInput:
        callsign = normalize_callsign(body.get('callsign'))
        from_icao = normalize_icao(body.get('fromIcao'))
        to_icao = normalize_icao(body.get('toIcao'))
        departure_utc = parse_msk_datetime(body.get('departureMsk'))
        arrival_utc = parse_msk_datetime(body.get('arrivalMsk'))

        if len(callsign) < MIN_CALLSIGN_LENGTH:
            raise ValidationError('invalid_callsign')
        if not from_icao or not to_icao or from_icao == to_icao:
            raise ValidationError('invalid_route')
        if from_icao not in self.state.airports or to_icao not in self.state.airports:
            raise ValidationError('unknown_airport')
        if departure_utc is None or arrival_utc is None or arrival_utc <= departure_utc:
            raise ValidationError('invalid_schedule')

        return FlightInput(callsign, from_icao, to_icao, departure_utc, arrival_utc)

    def _check_mutable(self, actor: Session, flight: Flight, now: int) -> None:
        if not actor.is_admin:
            if flight.transfer_pending:
                raise ConflictError('transfer_pending')
            if flight.is_locked:
                raise LockedError()
        self._check_authority(actor, flight, now)

    def _check_authority(self, actor: Session, flight: Flight, now: int) -> None:
        if not self.state.authority.can_manage(actor, flight, now):
            logger.debug(f'{actor.username} has no authority over {flight.callsign}')
            raise ForbiddenError('zone_forbidden')

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_flights(self) -> List[dict]:
        now = self.state.now()
        flights, changed = self._load_normalized(now)
        if changed:
            self.state.storage.save_flights(flights)
        return [self._view(f, now) for f in flights]

    def pending_transfers(self, actor: Session) -> List[dict]:
        """Flights whose live transfer is addressed to the caller."""
        now = self.state.now()
        flights, changed = self._load_normalized(now)
        if changed:
            self.state.storage.save_flights(flights)
        return [
            self._view(f, now)
            for f in flights
            if f.transfer_pending and f.transfer_to_user_id == actor.user_id
        ]

    # -------------------------------------------------------------------------
    # Create / update / delete
    # -------------------------------------------------------------------------

    def create_flight(self, actor: Session, body: dict) -> dict:
        now = self.state.now()
        fields = self._validate(body)

        flights = self.state.storage.load_flights()
        if is_callsign_taken(fields.callsign, flights, now):
            raise ConflictError('callsign_taken')

        flight = Flight(
            id=str(uuid.uuid4()),
            callsign=fields.callsign,
            from_icao=fields.from_icao,
            to_icao=fields.to_icao,
            departure_utc=fields.departure_utc,
            arrival_utc=fields.arrival_utc,
            phase=normalize_phase(body.get('phase')),
            speed=parse_number(body.get('speed')),
            altitude=parse_number(body.get('altitude')),
            awaiting_atc=bool(body.get('awaitingAtc')),
            priority=normalize_priority(body.get('priority')),
            owner_id=actor.user_id,
            owner_name=actor.username,
            created_at=now,
        )
        flights.append(flight)
        self.state.storage.save_flights(flights)

        self.state.audit(Actor.of(actor), 'flight_create', 'flight', flight.id,
                         f'Flight {flight.callsign} created ({flight.from_icao} -> {flight.to_icao})', now=now)
        logger.info(f'{actor.username} created {flight.callsign}')
        return self._view(flight, now)

    def update_flight(self, actor: Session, flight_id: str, body: dict) -> dict:
        now = self.state.now()
        flights = self.state.storage.load_flights()
        index = self._find(flights, flight_id)
        current = clear_expired_transfer(flights[index], now)
        flights[index] = current

        self._check_mutable(actor, current, now)
        fields = self._validate(body)
        if is_callsign_taken(fields.callsign, flights, now, ignore_id=flight_id):
            raise ConflictError('callsign_taken')

        speed = parse_number(body.get('speed'))
        altitude = parse_number(body.get('altitude'))
        awaiting_atc = body.get('awaitingAtc')
        priority = body.get('priority')

        # A dispatcher editing an unowned flight takes it over
        owner_id = current.owner_id
        owner_name = current.owner_name
        if not owner_id and not actor.is_admin:
            owner_id, owner_name = actor.user_id, actor.username

        updated = replace(
            current,
            callsign=fields.callsign,
            from_icao=fields.from_icao,
            to_icao=fields.to_icao,
            departure_utc=fields.departure_utc,
            arrival_utc=fields.arrival_utc,
            phase=normalize_phase(body.get('phase'), current.phase or DEFAULT_PHASE),
            speed=speed if speed is not None else current.speed,
            altitude=altitude if altitude is not None else current.altitude,
            awaiting_atc=bool(awaiting_atc) if awaiting_atc is not None else bool(current.awaiting_atc),
            priority=normalize_priority(priority if priority is not None else current.priority),
            owner_id=owner_id,
            owner_name=owner_name,
        )
        flights[index] = updated
        self.state.storage.save_flights(flights)

        self.state.audit(
            Actor.of(actor), 'flight_update', 'flight', updated.id,
            f'Flight {updated.callsign} updated',
            diff={
                'fromIcao': updated.from_icao,
                'toIcao': updated.to_icao,
                'departureUtc': updated.departure_utc,
                'arrivalUtc': updated.arrival_utc,
                'phase': updated.phase,
                'speed': updated.speed,
                'altitude': updated.altitude,
                'priority': updated.priority,
                'awaitingAtc': updated.awaiting_atc,
            },
            now=now,
        )
        return self._view(updated, now)

    def delete_flight(self, actor: Session, flight_id: str) -> Flight:
        now = self.state.now()
        flights = self.state.storage.load_flights()
        index = self._find(flights, flight_id)
        current = clear_expired_transfer(flights[index], now)

        self._check_mutable(actor, current, now)

        del flights[index]
        self.state.storage.save_flights(flights)
        self.state.audit(Actor.of(actor), 'flight_delete', 'flight', current.id,
                         f'Flight {current.callsign} deleted', now=now)
        logger.info(f'{actor.username} deleted {current.callsign}')
        return current

    # -------------------------------------------------------------------------
    # Ownership transfer
    # -------------------------------------------------------------------------

    def request_transfer(self, actor: Session, flight_id: str, to_user_id: Optional[str]) -> dict:
        """
        Offer the flight to another online dispatcher.

        The offer stays open for the configured timeout; once it lapses the
        next operation touching the flight drops it as an implicit decline.
        """
        now = self.state.now()
        to_user_id = str(to_user_id or '').strip()
        if not to_user_id:
            raise ValidationError('invalid_target')

        target = next((u for u in self.state.storage.load_users() if u.id == to_user_id), None)
        if target is None:
            raise NotFoundError('user_not_found')
        if target.id == actor.user_id or target.is_admin:
            raise ValidationError('invalid_target')
        if target.id not in self.state.sessions.online_user_ids():
            raise ConflictError('user_offline')

        flights = self.state.storage.load_flights()
        index = self._find(flights, flight_id)
        current = clear_expired_transfer(flights[index], now)

        if current.transfer_pending:
            raise ConflictError('transfer_pending')
        if current.is_locked and not actor.is_admin:
            raise LockedError()
        self._check_authority(actor, current, now)

        updated = replace(
            current,
            transfer_pending=True,
            transfer_to_user_id=target.id,
            transfer_requested_at=now,
            transfer_expires_at=now + self.state.config.transfer.timeout_ms,
        )
        flights[index] = updated
        self.state.storage.save_flights(flights)

        self.state.audit(
            Actor.of(actor), 'transfer_request', 'flight', updated.id,
            f'Transfer of {updated.callsign} to {target.username} requested',
            diff={'toUserId': target.id, 'toUserName': target.username},
            now=now,
        )
        logger.info(f'{actor.username} offered {updated.callsign} to {target.username}')
        return self._view(updated, now)

    def _resolve_transfer(self, actor: Session, flight_id: str, accept: bool) -> dict:
        now = self.state.now()
        flights = self.state.storage.load_flights()
        index = self._find(flights, flight_id)
        current = clear_expired_transfer(flights[index], now)

        if not current.transfer_pending or current.transfer_to_user_id != actor.user_id:
            raise ConflictError('transfer_not_found')

        updated = clear_transfer(current)
        if accept:
            updated = replace(updated, owner_id=actor.user_id, owner_name=actor.username)
        flights[index] = updated
        self.state.storage.save_flights(flights)

        if accept:
            self.state.audit(Actor.of(actor), 'transfer_accept', 'flight', updated.id,
                             f'Flight {updated.callsign} accepted', now=now)
        else:
            self.state.audit(Actor.of(actor), 'transfer_decline', 'flight', updated.id,
                             f'Flight {updated.callsign} declined', now=now)
        logger.info(f'{actor.username} {"accepted" if accept else "declined"} {updated.callsign}')
        return self._view(updated, now)

    def accept_transfer(self, actor: Session, flight_id: str) -> dict:
        return self._resolve_transfer(actor, flight_id, accept=True)

    def decline_transfer(self, actor: Session, flight_id: str) -> dict:
        return self._resolve_transfer(actor, flight_id, accept=False)

    # -------------------------------------------------------------------------
    # Admin lock
    # -------------------------------------------------------------------------

    def set_lock(self, actor: Session, flight_id: str, locked: bool) -> dict:
        if not actor.is_admin:
            raise ForbiddenError('forbidden')

        now = self.state.now()
        flights = self.state.storage.load_flights()
        index = self._find(flights, flight_id)
        current = clear_expired_transfer(flights[index], now)

        updated = replace(current, is_locked=locked, locked_by=actor.username if locked else None)
        flights[index] = updated
        self.state.storage.save_flights(flights)

        self.state.audit(Actor.of(actor), 'flight_lock' if locked else 'flight_unlock', 'flight', updated.id,
                         f'Flight {updated.callsign} {"locked" if locked else "unlocked"}', now=now)
        logger.info(f'{actor.username} {"locked" if locked else "unlocked"} {updated.callsign}')
        return self._view(updated, now)
