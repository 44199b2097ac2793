# api/__init__.py
"""
API Endpoints Package

- chat: assistant session endpoints under /api/assistant
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .chat import router as assistant_router

__all__ = [
    "assistant_router"
]
