"""
Data layer: Flask-SQLAlchemy models.

Bookings and drivers are owned by other services and are read-only here;
dispatches and their history are owned by the dispatch core.
"""
