"""Ownership, permission and hard-link queries for replacement targets."""

from __future__ import annotations

import logging
import os
import random
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .errors import NotFoundError, UnsupportedError

logger = logging.getLogger(__name__)

PROBE_PREFIX = ".permissions_check"


@dataclass(frozen=True)
class MetadataSnapshot:
    uid: int
    gid: int
    mode: int
    nlink: int = 1

    @classmethod
    def from_stat(cls, st: os.stat_result) -> MetadataSnapshot:
        return cls(
            uid=getattr(st, "st_uid", 0),
            gid=getattr(st, "st_gid", 0),
            mode=st.st_mode,
            nlink=getattr(st, "st_nlink", 0),
        )


@dataclass(frozen=True)
class Found:
    snapshot: MetadataSnapshot


@dataclass(frozen=True)
class NotFound:
    path: Path


MetadataResult = Union[Found, NotFound]


def read_metadata(path: Path) -> MetadataResult:
    """Stat *path*, following symlinks, without raising for a missing entry."""
    try:
        st = os.stat(path)
    except (FileNotFoundError, NotADirectoryError):
        return NotFound(Path(path))
    return Found(MetadataSnapshot.from_stat(st))


def probe_default_metadata(directory: Path) -> MetadataSnapshot:
    """Discover what a freshly created file in *directory* would look like.

    A throwaway file is created with the process defaults (umask, group
    inheritance), stat'ed and removed again.
    """
    name = f"{PROBE_PREFIX}.{threading.get_ident()}.{os.getpid()}.{random.randrange(1000000)}"
    probe = Path(directory) / name
    probe.touch(exist_ok=False)
    try:
        return MetadataSnapshot.from_stat(os.stat(probe))
    finally:
        probe.unlink()


def num_hardlinks(path: Path) -> int:
    """Return the number of directory entries that reference *path*.

    The final component is not followed, so a symlink reports its own count.
    """
    try:
        st = os.lstat(path)
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise NotFoundError(exc.errno, exc.strerror, str(path)) from exc
    nlink = getattr(st, "st_nlink", 0)
    if not nlink:
        raise UnsupportedError(f"no hard link count available for {path}")
    return nlink
