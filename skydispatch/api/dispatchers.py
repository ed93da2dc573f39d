"""
Dispatcher and audit endpoints.

- GET    /dispatchers         - All dispatchers with online flag and owned flight count (admin)
- GET    /dispatchers/online  - Online dispatchers other than the caller
- DELETE /dispatchers/<id>    - Delete a dispatcher, freeing zone and flights (admin)
- GET    /logs                - Full audit trail (admin)
- POST   /logs/events         - Append a client-side event
"""

from flask import Blueprint, g, jsonify

from skydispatch.api.guards import json_body, require_admin, require_auth, services
from skydispatch.state import Actor

dispatchers_bp = Blueprint('dispatchers', __name__, url_prefix='/dispatchers')
logs_bp = Blueprint('logs', __name__, url_prefix='/logs')


@dispatchers_bp.route('', methods=['GET'])
@require_auth
@require_admin
def list_dispatchers():
    return jsonify(services().auth.list_dispatchers())


@dispatchers_bp.route('/online', methods=['GET'])
@require_auth
def online_dispatchers():
    return jsonify(services().auth.online_dispatchers(g.user))


@dispatchers_bp.route('/<user_id>', methods=['DELETE'])
@require_auth
@require_admin
def delete_dispatcher(user_id: str):
    services().auth.remove_dispatcher(g.user, user_id)
    return jsonify({'ok': True})


@logs_bp.route('', methods=['GET'])
@require_auth
@require_admin
def list_logs():
    logs = services().state.storage.load_logs()
    return jsonify([entry.to_dict() for entry in logs])


@logs_bp.route('/events', methods=['POST'])
@require_auth
def record_event():
    """
    Body: {"actionType"?, "entityType"?, "entityId"?, "summary"?}
    Missing fields fall back to a generic system event.
    """
    body = json_body()
    services().state.audit(
        Actor.of(g.user),
        action_type=str(body.get('actionType') or 'event'),
        entity_type=str(body.get('entityType') or 'system'),
        entity_id=body.get('entityId') or None,
        summary=str(body.get('summary') or 'Event'),
    )
    return jsonify({'ok': True})
