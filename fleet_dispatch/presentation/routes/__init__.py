"""
Routes package for the fleet dispatch service
"""

from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.routes")


def init_app(app):
    """Initialize all route blueprints with the Flask app"""
    logger.debug("Initializing route blueprints")

    from .dispatching import dispatching_bp
    app.register_blueprint(dispatching_bp, url_prefix='/api/dispatches')

    from .health import health_bp
    app.register_blueprint(health_bp)
