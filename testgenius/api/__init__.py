# testgenius/api/__init__.py
"""
HTTP routes for the test wizard and history
"""

from .routes import router

__all__ = ["router"]
