"""
filebox - file and archive operation engine.

Resolves paths that point into the real filesystem or into ZIP archives,
lists, reads, copies and moves across both, and builds folder size trees.
"""

__version__ = "1.0.0"
