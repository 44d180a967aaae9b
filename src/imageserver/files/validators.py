"""
=============================================================================
CONDITIONAL REQUESTS
=============================================================================

Cache validators for image responses, and the 304 decision.

    FIRST REQUEST
    ─────────────
    GET /logo.png
                                   200 OK
                                   ETag: "17F3A2B4C5D6E7F8-2800"
                                   Last-Modified: Tue, 14 Oct 2025 09:12:44 GMT
                                   Cache-Control: public, max-age=86400

    REVALIDATION (after max-age, or on reload)
    ──────────────────────────────────────────
    GET /logo.png
    If-None-Match: "17F3A2B4C5D6E7F8-2800"
                                   304 Not Modified   (no body)

The ETag is built from the modification time in nanoseconds and the size
in bytes, both in hex. Touching or rewriting the file changes the tag.
Matching is a strong, exact string comparison: no "*", no lists.

=============================================================================
"""

import errno
import os
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from ..http.response import format_http_date


_ABSENT_ERRNOS = (errno.ENAMETOOLONG, errno.ELOOP)


@dataclass(frozen=True)
class ResolvedFile:
    """Stat snapshot of a file about to be served. Re-read on every request."""

    path: Path
    size: int
    mtime_ns: int

    @classmethod
    def stat(cls, path: Union[str, Path]) -> Optional["ResolvedFile"]:
        """
        Stat a path.

        Returns None when nothing is there or it is not a regular file
        (directories included). A name too long to exist, or a symlink
        loop, counts as nothing there. Other OS errors propagate.
        """
        try:
            st = os.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as e:
            if e.errno in _ABSENT_ERRNOS:
                return None
            raise

        if not stat.S_ISREG(st.st_mode):
            return None

        return cls(path=Path(path), size=st.st_size, mtime_ns=st.st_mtime_ns)

    @property
    def last_modified(self) -> datetime:
        return datetime.fromtimestamp(self.mtime_ns / 1e9, tz=timezone.utc)


@dataclass(frozen=True)
class Validators:
    etag: str
    last_modified: str
    not_modified: bool = False


def make_etag(resolved: ResolvedFile) -> str:
    return f'"{resolved.mtime_ns:X}-{resolved.size:X}"'


def evaluate(resolved: ResolvedFile, if_none_match: Optional[str]) -> Validators:
    """
    Compute validators for a file and decide whether the client's copy is
    current.

    Args:
        resolved: The file being served.
        if_none_match: Raw If-None-Match header value, or None/"".

    Returns:
        Validators; `not_modified` is True only when the header is present
        and equal to the ETag.
    """
    etag = make_etag(resolved)
    return Validators(
        etag=etag,
        last_modified=format_http_date(resolved.last_modified),
        not_modified=bool(if_none_match) and if_none_match == etag,
    )
