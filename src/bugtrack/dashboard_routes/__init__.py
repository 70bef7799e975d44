"""Route modules for the bugtrack web dashboard.

Each module exposes ``create_router()``; ``bugtrack.dashboard.create_app``
mounts them all at the application root.
"""
