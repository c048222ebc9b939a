"""
Fleet package (drivers are read-mostly to the dispatch core).
"""
