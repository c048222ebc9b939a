#!/usr/bin/env python3
"""
Build orchestrator for the fleet dispatch service
Creates the database tables and optionally seeds debug data
"""

from fleet_dispatch import create_app, db
from fleet_dispatch.logger import get_logger

logger = get_logger("fleet_dispatch.build")


def build_models():
    """Create every table registered on the SQLAlchemy metadata"""
    # Importing the models registers them with db.metadata
    from fleet_dispatch.data.bookings.booking import Booking  # noqa: F401
    from fleet_dispatch.data.fleet.driver import Driver  # noqa: F401
    from fleet_dispatch.data.dispatching.dispatch import Dispatch  # noqa: F401
    from fleet_dispatch.data.dispatching.history import DispatchHistory  # noqa: F401

    logger.info("Building dispatch models")
    db.create_all()
    logger.info("All database tables created")


def build_database(enable_debug_data=True, app=None):
    """
    Main build entry point

    Args:
        enable_debug_data (bool): Whether to insert debug data (default: True)
        app (Flask, optional): Application to build against; a new one is created if omitted
    """
    app = app or create_app()

    with app.app_context():
        logger.info(f"Starting database build (debug data: {enable_debug_data})")
        build_models()

        if enable_debug_data:
            try:
                from fleet_dispatch.debug.add_dispatching_debugging_data import insert_debug_data
                logger.info("Inserting debug data...")
                insert_debug_data()
            except Exception as e:
                logger.error(f"Debug data insertion failed: {e}")
                raise

        logger.info("Database build completed successfully")
