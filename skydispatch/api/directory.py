"""
Reference data endpoints.

- GET /zones            - Zones with live occupancy
- GET /airports/search  - Ranked airport lookup (?q=, at least 2 chars)
"""

from flask import Blueprint, jsonify, request

from skydispatch.api.guards import services

zones_bp = Blueprint('zones', __name__, url_prefix='/zones')
airports_bp = Blueprint('airports', __name__, url_prefix='/airports')


@zones_bp.route('', methods=['GET'])
def list_zones():
    state = services().state
    return jsonify(state.zones.to_list(state.assignments))


@airports_bp.route('/search', methods=['GET'])
def search_airports():
    query = request.args.get('q', '')
    matches = services().state.airports.search(query)
    return jsonify([airport.to_dict() for airport in matches])
