"""JSON API for the dashboard."""

from .flask_app import create_app

__all__ = ["create_app"]
