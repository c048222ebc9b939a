"""
Domain layer for the fleet dispatch core.
Contains business logic, state machines and policies
separated from data persistence concerns.
"""
