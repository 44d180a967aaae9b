"""
Unit tests for ETag / Last-Modified generation and the 304 decision.
"""

import errno
import os
import re
from pathlib import Path

import pytest

from imageserver.files import ResolvedFile, evaluate
from imageserver.files.validators import make_etag


HTTP_DATE = re.compile(r"^[A-Z][a-z]{2}, \d{2} [A-Z][a-z]{2} \d{4} \d{2}:\d{2}:\d{2} GMT$")


def bump_mtime(path: Path, seconds: int = 10) -> None:
    """Move a file's modification time forward without changing its bytes."""
    st = path.stat()
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + seconds * 1_000_000_000))


class TestResolvedFile:
    """Tests for ResolvedFile.stat."""

    def test_regular_file(self, image_dir: Path):
        """Size and mtime come from the filesystem."""
        path = image_dir / "logo.png"
        resolved = ResolvedFile.stat(path)

        assert resolved is not None
        assert resolved.path == path
        assert resolved.size == path.stat().st_size
        assert resolved.mtime_ns == path.stat().st_mtime_ns

    def test_missing_file(self, image_dir: Path):
        """Missing files give None."""
        assert ResolvedFile.stat(image_dir / "missing.png") is None
        assert ResolvedFile.stat(image_dir / "logo.png" / "child.png") is None

    def test_directory(self, image_dir: Path):
        """Directories are not servable."""
        assert ResolvedFile.stat(image_dir / "gallery") is None

    def test_overlong_name(self, image_dir: Path):
        """A name too long for the filesystem cannot exist."""
        assert ResolvedFile.stat(image_dir / ("a" * 300 + ".png")) is None

    def test_symlink_loop(self, image_dir: Path):
        """A self-referencing link is treated as missing."""
        loop = image_dir / "loop.png"
        loop.symlink_to(loop)

        assert ResolvedFile.stat(loop) is None

    def test_permission_error_propagates(self, image_dir: Path, monkeypatch):
        """Errors other than absence are not hidden."""
        def denied(path):
            raise PermissionError(errno.EACCES, "denied", str(path))

        monkeypatch.setattr(os, "stat", denied)

        with pytest.raises(PermissionError):
            ResolvedFile.stat(image_dir / "logo.png")

    def test_last_modified_is_utc(self, image_dir: Path):
        """last_modified is a timezone-aware UTC datetime."""
        resolved = ResolvedFile.stat(image_dir / "logo.png")
        assert resolved.last_modified.utcoffset().total_seconds() == 0


class TestEvaluate:
    """Tests for evaluate()."""

    def test_etag_format(self, image_dir: Path):
        """The ETag is a quoted "<mtime hex>-<size hex>" string."""
        resolved = ResolvedFile.stat(image_dir / "logo.png")
        validators = evaluate(resolved, None)

        assert validators.etag == f'"{resolved.mtime_ns:X}-{resolved.size:X}"'
        assert validators.etag == make_etag(resolved)
        assert validators.etag.startswith('"') and validators.etag.endswith('"')

    def test_etag_stable(self, image_dir: Path):
        """Two stats of an unchanged file give the same ETag."""
        first = evaluate(ResolvedFile.stat(image_dir / "logo.png"), None)
        second = evaluate(ResolvedFile.stat(image_dir / "logo.png"), None)

        assert first.etag == second.etag
        assert first.last_modified == second.last_modified

    def test_etag_changes_with_mtime(self, image_dir: Path):
        """Touching a file changes its ETag even if the bytes are the same."""
        path = image_dir / "logo.png"
        before = evaluate(ResolvedFile.stat(path), None).etag

        bump_mtime(path)

        after = evaluate(ResolvedFile.stat(path), None).etag
        assert before != after

    def test_etag_changes_with_size(self, image_dir: Path):
        """Same mtime, different size: different ETag."""
        a = ResolvedFile(path=Path("a.png"), size=10, mtime_ns=1)
        b = ResolvedFile(path=Path("a.png"), size=11, mtime_ns=1)

        assert make_etag(a) != make_etag(b)

    def test_last_modified_format(self, image_dir: Path):
        """Last-Modified is an RFC 1123 date."""
        validators = evaluate(ResolvedFile.stat(image_dir / "logo.png"), None)
        assert HTTP_DATE.match(validators.last_modified)

    def test_last_modified_value(self):
        """Known timestamp, known date."""
        resolved = ResolvedFile(path=Path("x.gif"), size=1, mtime_ns=784111777 * 10**9)
        assert evaluate(resolved, None).last_modified == "Sun, 06 Nov 1994 08:49:37 GMT"

    def test_matching_etag_not_modified(self, image_dir: Path):
        """An exact match means 304."""
        resolved = ResolvedFile.stat(image_dir / "logo.png")
        etag = make_etag(resolved)

        assert evaluate(resolved, etag).not_modified is True

    def test_mismatch_modified(self, image_dir: Path):
        """Anything but an exact match means 200."""
        resolved = ResolvedFile.stat(image_dir / "logo.png")
        etag = make_etag(resolved)

        assert evaluate(resolved, '"0-0"').not_modified is False
        assert evaluate(resolved, etag.strip('"')).not_modified is False
        assert evaluate(resolved, f"W/{etag}").not_modified is False
        assert evaluate(resolved, "*").not_modified is False

    def test_missing_header(self, image_dir: Path):
        """No header or an empty header never gives 304."""
        resolved = ResolvedFile.stat(image_dir / "logo.png")

        assert evaluate(resolved, None).not_modified is False
        assert evaluate(resolved, "").not_modified is False

    def test_stale_etag_after_touch(self, image_dir: Path):
        """A client holding the old ETag gets the new file."""
        path = image_dir / "logo.png"
        old_etag = make_etag(ResolvedFile.stat(path))

        bump_mtime(path)

        assert evaluate(ResolvedFile.stat(path), old_etag).not_modified is False
