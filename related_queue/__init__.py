"""
Related Queue

A dependency-aware work queue: entries wait until the identifiers of the entries
they relate to are known, then pass through a user-supplied handler.
"""

__version__ = "1.0.0"
