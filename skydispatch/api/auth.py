"""
Authentication endpoints.

- POST /auth/register - Create a dispatcher account
- POST /auth/login    - Open a session (claims the zone for dispatchers)
- GET  /auth/me       - Describe the current session
- POST /auth/logout   - Close the session and free the zone
"""

import logging

from flask import Blueprint, g, jsonify

from skydispatch.api.guards import json_body, require_auth, services

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def _credentials(body: dict):
    return (
        str(body.get('username') or ''),
        str(body.get('pin') or ''),
        str(body.get('zoneId') or ''),
    )


@auth_bp.route('/register', methods=['POST'])
def register():
    username, pin, zone_id = _credentials(json_body())
    services().auth.register(username, pin, zone_id)
    return jsonify({'ok': True})


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Log in, optionally to a zone.

    Body: {"username": str, "pin": str, "zoneId": str}
    Dispatchers must pick a zone that nobody else holds.
    """
    username, pin, zone_id = _credentials(json_body())
    session = services().auth.login(username, pin, zone_id)
    result = session.to_dict()
    result['token'] = session.token
    return jsonify(result)


@auth_bp.route('/me', methods=['GET'])
@require_auth
def me():
    return jsonify(g.user.to_dict())


@auth_bp.route('/logout', methods=['POST'])
@require_auth
def logout():
    services().auth.logout(g.user)
    return jsonify({'ok': True})
