"""
=============================================================================
PATH RESOLUTION
=============================================================================

Turns the path captured from the URL into an absolute filesystem path that
is guaranteed to sit inside the base directory.

=============================================================================
PATH TRAVERSAL
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  base = /srv/images                                                 │
    │                                                                      │
    │  cats/tabby.jpg        → /srv/images/cats/tabby.jpg        served   │
    │  cats/../logo.png      → /srv/images/logo.png              served   │
    │  ../etc/passwd         → /srv/etc/passwd                   403      │
    │  /etc/passwd           → /etc/passwd (absolute wins)       403      │
    │  ../images-old/a.png   → /srv/images-old/a.png             403      │
    │  link-to-root/x        → wherever the symlink points       checked  │
    └─────────────────────────────────────────────────────────────────────┘

The containment check compares whole path segments (Path.relative_to), so
a sibling directory whose name merely starts with the base name, such as
/srv/images-old, is not mistaken for being inside /srv/images.

=============================================================================
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .errors import ServeError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathResult:
    """Outcome of resolving a path: either `path` or `error` is set."""

    path: Optional[Path] = None
    error: Optional[ServeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PathResolver:
    """
    Resolves request paths against a fixed base directory.

    The base directory is normalized once, here; the resolver never touches
    file contents, only the filesystem's view of names and symlinks.
    """

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir).resolve()

    def resolve(self, raw_path: str) -> PathResult:
        """
        Resolve a request path.

        Args:
            raw_path: Percent-decoded request path, leading "/" stripped.

        Returns:
            PathResult with the absolute path, or with BAD_REQUEST for an
            empty/unusable path, FORBIDDEN for a path outside the base.
        """
        if not raw_path or "\x00" in raw_path:
            return PathResult(error=ServeError.BAD_REQUEST)

        try:
            full_path = (self.base_dir / raw_path).resolve()
        except (OSError, RuntimeError, ValueError) as e:
            # e.g. a symlink loop
            logger.debug(f"Unresolvable path {raw_path!r}: {e}")
            return PathResult(error=ServeError.BAD_REQUEST)

        if not is_within(full_path, self.base_dir):
            logger.warning(f"Path traversal attempt: {raw_path!r}")
            return PathResult(error=ServeError.FORBIDDEN)

        return PathResult(path=full_path)


def is_within(path: Path, base: Path) -> bool:
    """True if `path` is `base` or lies below it, segment by segment."""
    try:
        path.relative_to(base)
    except ValueError:
        return False
    return True


def resolve_path(base_dir: Union[str, Path], raw_path: str) -> PathResult:
    """One-shot form of PathResolver(base_dir).resolve(raw_path)."""
    return PathResolver(base_dir).resolve(raw_path)
