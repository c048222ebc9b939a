"""
Core domain helpers shared by data models.
"""
