"""
Bookings package (read-only to the dispatch core).
"""
