"""
Core engine: data models, path resolution and folder scanning.

Nothing in this package depends on the UI.
"""
