"""
Dispatching read-side services.
"""
