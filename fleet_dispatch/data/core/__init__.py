"""
Core data package.
Shared base classes for dispatch-owned tables.
"""
