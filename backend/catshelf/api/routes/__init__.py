"""API routes package.

This package contains all API route handlers for the application.
"""
from . import generate
from . import evaluate
from . import palette
from . import sessions

__all__ = [
    "generate",
    "evaluate",
    "palette",
    "sessions",
]
