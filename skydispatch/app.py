"""
SkyDispatch Flask Application.

Main entry point for the web application. Initializes:
- Database schema
- Airport dataset and zone registry
- Admin account and demo flights
- API routes

Usage:
    python -m skydispatch.app

Or with gunicorn:
    gunicorn 'skydispatch.app:create_app()'
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Optional

from flask import Flask, jsonify
from flask_cors import CORS

from skydispatch.airports import AirportDirectory
from skydispatch.api import BLUEPRINTS
from skydispatch.api.guards import EXTENSION_KEY
from skydispatch.auth import AuthService
from skydispatch.config import AppConfig, load_config
from skydispatch.dispatch import FlightService
from skydispatch.errors import DispatchError
from skydispatch.seed import seed_conflict_flights_if_missing, seed_flights_if_empty
from skydispatch.state import DispatchState
from skydispatch.storage import Storage

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )


@dataclass
class Services:
    """Everything the blueprints reach through ``current_app.extensions``."""
    state: DispatchState
    auth: AuthService
    flights: FlightService


def create_app(
    app_config: Optional[AppConfig] = None,
    clock: Optional[Callable[[], int]] = None,
    airports: Optional[AirportDirectory] = None,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        app_config: Configuration (loaded from the environment if None).
        clock: Callable returning UTC epoch milliseconds. Tests pass a
               controllable clock to move through flight schedules.
        airports: Preloaded airport dataset (read from config path if None).

    Returns:
        Configured Flask application instance.
    """
    app_config = app_config or load_config()
    configure_logging(app_config.debug)

    app = Flask(__name__)
    app.config['SECRET_KEY'] = app_config.secret_key
    app.config['DEBUG'] = app_config.debug
    app.json.sort_keys = False

    CORS(app)

    storage = Storage(app_config.database, echo=app_config.debug)
    storage.init_schema()

    if airports is None:
        airports = AirportDirectory.from_file(app_config.airports.path)

    state = DispatchState(app_config, storage, airports, clock=clock)
    services = Services(state=state, auth=AuthService(state), flights=FlightService(state))
    app.extensions[EXTENSION_KEY] = services

    if app_config.seed_flights:
        seed_flights_if_empty(state)
    services.auth.ensure_admin_account()
    if app_config.seed_flights:
        seed_conflict_flights_if_missing(state)

    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)

    @app.route('/health')
    def health():
        return {'ok': True}

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(DispatchError)
    def dispatch_error(e: DispatchError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'not_found'}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'internal_error'}, 500

    logger.info(f'SkyDispatch ready: {len(state.zones)} zones, {len(airports)} airports')
    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    port = int(os.environ.get('PORT', 8080))
    logger.info(f'Starting SkyDispatch on http://localhost:{port}')

    app.run(host='0.0.0.0', port=port, debug=app.debug, use_reloader=False)


if __name__ == '__main__':
    run_development_server()
