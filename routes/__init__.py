"""JSON API blueprint; importing this package registers every route module."""

from .base import api_bp

# Route modules attach their views to ``api_bp`` on import.
from . import auth, dashboard, deck_links, decks, games, settings, testing  # noqa: E402,F401

__all__ = ["api_bp"]
