from flask import Flask
from flask_sqlalchemy import SQLAlchemy
import os
from fleet_dispatch.logger import get_logger

# Initialize extensions
db = SQLAlchemy()


def _env_flag(name, default='False'):
    return os.environ.get(name, default).lower() in ('true', '1', 'yes', 'on')


def create_app(config_overrides=None):
    from pathlib import Path

    app = Flask(__name__)

    # Get singleton logger
    logger = get_logger("fleet_dispatch")
    logger.info("Initializing Flask application")

    # Configuration
    # SECRET_KEY is only needed if sessions are ever enabled on top of the API
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY')

    # Prefer an explicit DATABASE_URL env var; otherwise store the SQLite
    # database inside the project's `instance/` directory.
    db_env = os.environ.get('DATABASE_URL')
    if db_env:
        app.config['SQLALCHEMY_DATABASE_URI'] = db_env
    else:
        base_dir = Path(__file__).parent.parent
        instance_dir = base_dir / 'instance'
        instance_dir.mkdir(parents=True, exist_ok=True)
        default_db_path = instance_dir / 'fleet_dispatch.db'
        app.config['SQLALCHEMY_DATABASE_URI'] = f"sqlite:///{str(default_db_path.resolve())}"

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Dispatch policy configuration
    # DISPATCH_ENFORCE_SHIFT_WINDOW: only offer drivers whose shift covers "now" (default: False)
    app.config['DISPATCH_ENFORCE_SHIFT_WINDOW'] = _env_flag('DISPATCH_ENFORCE_SHIFT_WINDOW')
    # DISPATCH_DEFAULT_PAGE_LIMIT: page size when a caller omits `limit` (clamped to 1..100)
    app.config['DISPATCH_DEFAULT_PAGE_LIMIT'] = int(os.environ.get('DISPATCH_DEFAULT_PAGE_LIMIT', '100'))

    if config_overrides:
        app.config.update(config_overrides)

    logger.debug(f"Database configured: {app.config['SQLALCHEMY_DATABASE_URI'].split(':', 1)[0]}")

    # Initialize extensions with app
    db.init_app(app)

    logger.debug("Extensions initialized")

    # Import models to ensure they're registered with SQLAlchemy
    from fleet_dispatch.data.bookings.booking import Booking
    from fleet_dispatch.data.fleet.driver import Driver
    from fleet_dispatch.data.dispatching.dispatch import Dispatch
    from fleet_dispatch.data.dispatching.history import DispatchHistory

    logger.debug("Models imported and registered")

    # Register blueprints
    from fleet_dispatch.presentation.routes import init_app as init_routes
    init_routes(app)

    return app
