"""
Middleware: cross-cutting request/response processing.
"""

from .base import Middleware, MiddlewarePipeline
from .logging import LoggingMiddleware
from .cors import CORSMiddleware, CORSConfig

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "LoggingMiddleware",
    "CORSMiddleware",
    "CORSConfig",
]
