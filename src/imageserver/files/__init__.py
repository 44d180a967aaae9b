"""
Image file serving: path resolution, validators, the content cache and
size-tiered delivery.
"""

from .errors import ServeError
from .resolver import PathResolver, PathResult, resolve_path
from .validators import ResolvedFile, Validators, evaluate
from .cache import ContentCache, MemoryContentCache, CachePolicy
from .delivery import ContentDelivery, Delivery, FileStream

__all__ = [
    "ServeError",
    "PathResolver",
    "PathResult",
    "resolve_path",
    "ResolvedFile",
    "Validators",
    "evaluate",
    "ContentCache",
    "MemoryContentCache",
    "CachePolicy",
    "ContentDelivery",
    "Delivery",
    "FileStream",
]
