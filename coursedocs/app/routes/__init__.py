"""
FastAPI routes (API only).
"""

from . import generate, templates

__all__ = ["generate", "templates"]
