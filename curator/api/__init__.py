"""FastAPI application for the learning API."""

from curator.api.app import create_app
from curator.api.routes import create_routes

__all__ = ["create_app", "create_routes"]
