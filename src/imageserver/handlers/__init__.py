"""
Request handlers.
"""

from .images import ImageHandler

__all__ = [
    "ImageHandler",
]
