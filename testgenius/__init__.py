# testgenius/__init__.py
"""
TestGenius - AI multiple-choice test generator
Turns documents, syllabi and topics into timed practice tests with scoring and history
"""

__version__ = "1.0.0"
__description__ = "AI-powered multiple-choice test generation, taking and scoring"

# Core module exports
from .core.config import config
from .main import app

__all__ = ["app", "config"]
