# testgenius/services/__init__.py
"""
Business logic services for test sessions, scoring orchestration and PDF generation
"""

from .test_service import get_test_service
from .pdf_service import get_pdf_service

__all__ = [
    "get_test_service",
    "get_pdf_service"
]
