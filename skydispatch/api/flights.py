"""
Flight endpoints.

Provides endpoints for:
- GET    /flights                          - All flights with derived status/position data
- POST   /flights                          - Create a flight owned by the caller
- PUT    /flights/<id>                     - Update (owner, zone authority or admin)
- DELETE /flights/<id>                     - Delete (same gating as update)
- POST   /flights/<id>/transfer            - Offer the flight to another dispatcher
- POST   /flights/<id>/transfer/accept     - Take over an offered flight
- POST   /flights/<id>/transfer/decline    - Refuse an offered flight
- POST   /flights/<id>/lock                - Admin lock toggle
- GET    /transfers/pending                - Offers addressed to the caller
"""

import logging

from flask import Blueprint, g, jsonify

from skydispatch.api.guards import json_body, require_admin, require_auth, services

logger = logging.getLogger(__name__)

flights_bp = Blueprint('flights', __name__, url_prefix='/flights')
transfers_bp = Blueprint('transfers', __name__, url_prefix='/transfers')


@flights_bp.route('', methods=['GET'])
def list_flights():
    """
    List every flight.

    Pending transfers past their deadline are dropped (and persisted)
    before the list is rendered.
    """
    return jsonify(services().flights.list_flights())


@flights_bp.route('', methods=['POST'])
@require_auth
def create_flight():
    """
    Body: {"callsign", "fromIcao", "toIcao", "departureMsk", "arrivalMsk",
           "phase"?, "speed"?, "altitude"?, "awaitingAtc"?, "priority"?}
    Schedule strings are Moscow time, "YYYY-MM-DD HH:MM" or "DD.MM.YYYY HH:MM".
    """
    flight = services().flights.create_flight(g.user, json_body())
    return jsonify(flight), 201


@flights_bp.route('/<flight_id>', methods=['PUT'])
@require_auth
def update_flight(flight_id: str):
    return jsonify(services().flights.update_flight(g.user, flight_id, json_body()))


@flights_bp.route('/<flight_id>', methods=['DELETE'])
@require_auth
def delete_flight(flight_id: str):
    services().flights.delete_flight(g.user, flight_id)
    return jsonify({'ok': True})


@flights_bp.route('/<flight_id>/transfer', methods=['POST'])
@require_auth
def request_transfer(flight_id: str):
    """Body: {"toUserId": str}. The offer expires after the transfer timeout."""
    to_user_id = json_body().get('toUserId')
    return jsonify(services().flights.request_transfer(g.user, flight_id, to_user_id))


@flights_bp.route('/<flight_id>/transfer/accept', methods=['POST'])
@require_auth
def accept_transfer(flight_id: str):
    return jsonify(services().flights.accept_transfer(g.user, flight_id))


@flights_bp.route('/<flight_id>/transfer/decline', methods=['POST'])
@require_auth
def decline_transfer(flight_id: str):
    return jsonify(services().flights.decline_transfer(g.user, flight_id))


@flights_bp.route('/<flight_id>/lock', methods=['POST'])
@require_auth
@require_admin
def lock_flight(flight_id: str):
    locked = bool(json_body().get('locked'))
    return jsonify(services().flights.set_lock(g.user, flight_id, locked))


@transfers_bp.route('/pending', methods=['GET'])
@require_auth
def pending_transfers():
    return jsonify(services().flights.pending_transfers(g.user))
