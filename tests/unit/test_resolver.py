"""
Unit tests for path resolution and containment.
"""

import os
from pathlib import Path

import pytest

from imageserver.files import PathResolver, ServeError, resolve_path
from imageserver.files.resolver import is_within


class TestPathResolver:
    """Tests for PathResolver.resolve."""

    def test_simple_file(self, image_dir: Path):
        """A plain relative path resolves inside the base."""
        result = PathResolver(image_dir).resolve("logo.png")

        assert result.ok
        assert result.error is None
        assert result.path == (image_dir / "logo.png").resolve()

    def test_nested_file(self, image_dir: Path):
        """Subdirectories are fine."""
        result = PathResolver(image_dir).resolve("gallery/cat photo.jpg")

        assert result.ok
        assert result.path.name == "cat photo.jpg"

    def test_missing_file_still_resolves(self, image_dir: Path):
        """Existence is checked later; resolution only checks containment."""
        result = PathResolver(image_dir).resolve("nope/missing.png")

        assert result.ok
        assert result.path == (image_dir / "nope" / "missing.png").resolve()

    def test_inner_dot_segments(self, image_dir: Path):
        """'..' that stays inside the base is allowed."""
        result = PathResolver(image_dir).resolve("gallery/../logo.png")

        assert result.ok
        assert result.path == (image_dir / "logo.png").resolve()

    def test_empty_path(self, image_dir: Path):
        """An empty path is a bad request."""
        result = PathResolver(image_dir).resolve("")

        assert not result.ok
        assert result.error is ServeError.BAD_REQUEST
        assert result.path is None

    def test_nul_byte(self, image_dir: Path):
        """Paths with NUL bytes can never name a file."""
        result = PathResolver(image_dir).resolve("logo.png\x00.jpg")
        assert result.error is ServeError.BAD_REQUEST

    @pytest.mark.parametrize("raw_path", [
        "../secret.txt",
        "../../etc/passwd",
        "gallery/../../secret.txt",
        "..",
    ])
    def test_traversal_forbidden(self, image_dir: Path, secret_file: Path, raw_path: str):
        """Escaping the base is forbidden, whether or not the target exists."""
        result = PathResolver(image_dir).resolve(raw_path)

        assert result.error is ServeError.FORBIDDEN
        assert result.path is None

    def test_absolute_path_forbidden(self, image_dir: Path, secret_file: Path):
        """An absolute path replaces the base and is rejected."""
        result = PathResolver(image_dir).resolve(str(secret_file))
        assert result.error is ServeError.FORBIDDEN

    def test_sibling_prefix_forbidden(self, image_dir: Path):
        """A sibling sharing the base's name as a prefix is outside."""
        sibling = image_dir.parent / (image_dir.name + "-evil")
        sibling.mkdir()
        (sibling / "x.png").write_bytes(b"x")

        result = PathResolver(image_dir).resolve(f"../{sibling.name}/x.png")

        assert result.error is ServeError.FORBIDDEN

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
    def test_symlink_escape_forbidden(self, image_dir: Path, secret_file: Path):
        """Symlinks are followed before the containment check."""
        link = image_dir / "innocent.png"
        try:
            link.symlink_to(secret_file)
        except OSError:
            pytest.skip("symlinks not permitted")

        result = PathResolver(image_dir).resolve("innocent.png")

        assert result.error is ServeError.FORBIDDEN

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
    def test_symlink_inside_allowed(self, image_dir: Path):
        """A symlink that stays inside the base is served."""
        link = image_dir / "alias.png"
        try:
            link.symlink_to(image_dir / "logo.png")
        except OSError:
            pytest.skip("symlinks not permitted")

        result = PathResolver(image_dir).resolve("alias.png")

        assert result.ok
        assert result.path == (image_dir / "logo.png").resolve()

    def test_base_dir_normalized(self, image_dir: Path):
        """The base is stored absolute and normalized."""
        resolver = PathResolver(str(image_dir / "gallery" / ".."))
        assert resolver.base_dir == image_dir.resolve()


class TestHelpers:
    """Tests for module-level helpers."""

    def test_resolve_path(self, image_dir: Path):
        """resolve_path is the one-shot form."""
        assert resolve_path(image_dir, "logo.png").ok
        assert resolve_path(image_dir, "../x").error is ServeError.FORBIDDEN

    def test_is_within(self):
        """Containment is segment-aligned."""
        base = Path("/srv/images")

        assert is_within(Path("/srv/images"), base)
        assert is_within(Path("/srv/images/a/b.png"), base)
        assert not is_within(Path("/srv/images-old/a.png"), base)
        assert not is_within(Path("/srv"), base)
