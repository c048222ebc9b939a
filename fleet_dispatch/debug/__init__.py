"""
Debug data loaders for local development
"""
