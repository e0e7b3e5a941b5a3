"""REST and WebSocket API layer for kubedeck.

Exposes:
    create_app -- FastAPI application factory.
    build_app  -- Alias for create_app (used by kubedeck.app bootstrap).
"""

from kubedeck.api.app import create_app

# The bootstrap in kubedeck.app imports `build_app` from this package.
build_app = create_app

__all__ = ["build_app", "create_app"]
