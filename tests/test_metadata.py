"""Tests for atomic_replace.metadata."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from atomic_replace.errors import NotFoundError, UnsupportedError
from atomic_replace.metadata import (
    Found,
    NotFound,
    num_hardlinks,
    probe_default_metadata,
    read_metadata,
)

pytestmark = pytest.mark.skipif(os.name != "posix", reason="POSIX permissions required")


@pytest.fixture
def umask027():
    old = os.umask(0o027)
    yield
    os.umask(old)


class TestReadMetadata:
    def test_existing_file(self, tmp_path: Path):
        path = tmp_path / "f.txt"
        path.write_text("x")
        os.chmod(path, 0o640)
        result = read_metadata(path)
        assert isinstance(result, Found)
        assert result.snapshot.uid == os.getuid()
        assert result.snapshot.gid == os.stat(path).st_gid
        assert stat.S_IMODE(result.snapshot.mode) == 0o640

    def test_missing_file(self, tmp_path: Path):
        path = tmp_path / "missing.txt"
        assert read_metadata(path) == NotFound(path)

    def test_parent_is_a_file(self, tmp_path: Path):
        (tmp_path / "plain").write_text("x")
        assert isinstance(read_metadata(tmp_path / "plain" / "child"), NotFound)


class TestProbeDefaultMetadata:
    def test_reports_umask_default_and_cleans_up(self, tmp_path: Path, umask027):
        snapshot = probe_default_metadata(tmp_path)
        assert stat.S_IMODE(snapshot.mode) == 0o640
        assert snapshot.uid == os.getuid()
        assert list(tmp_path.iterdir()) == []


class TestNumHardlinks:
    def test_single_link(self, tmp_path: Path):
        path = tmp_path / "f"
        path.write_text("x")
        assert num_hardlinks(path) == 1

    def test_counts_additional_links(self, tmp_path: Path):
        path = tmp_path / "f"
        path.write_text("x")
        os.link(path, tmp_path / "g")
        assert num_hardlinks(path) == 2
        assert num_hardlinks(tmp_path / "g") == 2

    def test_symlink_is_not_followed(self, tmp_path: Path):
        path = tmp_path / "f"
        path.write_text("x")
        os.link(path, tmp_path / "g")
        (tmp_path / "link").symlink_to(path)
        assert num_hardlinks(tmp_path / "link") == 1

    def test_missing_raises_not_found(self, tmp_path: Path):
        with pytest.raises(NotFoundError) as excinfo:
            num_hardlinks(tmp_path / "missing")
        assert isinstance(excinfo.value, FileNotFoundError)

    def test_zero_count_is_unsupported(self, tmp_path: Path):
        with patch("atomic_replace.metadata.os.lstat", return_value=SimpleNamespace(st_nlink=0)):
            with pytest.raises(UnsupportedError):
                num_hardlinks(tmp_path / "anything")

    def test_missing_attribute_is_unsupported(self, tmp_path: Path):
        with patch("atomic_replace.metadata.os.lstat", return_value=SimpleNamespace()):
            with pytest.raises(UnsupportedError):
                num_hardlinks(tmp_path / "anything")
