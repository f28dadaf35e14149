"""fluidmap REST API.

Exposes:
    create_app -- FastAPI application factory.
"""

from fluidmap.api.app import create_app

__all__ = ["create_app"]
