# testgenius/core/__init__.py
"""
Core module containing configuration, data model, scoring, AI services and history storage
"""

from .config import config
from .database import get_history_store
from .ai_services import get_ai_service

__all__ = [
    "config",
    "get_history_store",
    "get_ai_service"
]
