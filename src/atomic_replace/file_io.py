"""Atomic, permission-preserving file replacement."""

from __future__ import annotations

import errno
import logging
import os
import shutil
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Any, Callable, Iterator, TypeVar, Union

from .errors import NotFoundError, UnsupportedError
from .metadata import Found, MetadataSnapshot, num_hardlinks, probe_default_metadata, read_metadata
from .tmpname import EntropySource, make_tmpname

logger = logging.getLogger(__name__)

SAFETY_MASK = 0o666

StrPath = Union[str, "os.PathLike[str]"]
T = TypeVar("T")


def force_rename(source: StrPath, destination: StrPath) -> None:
    """Move *source* onto *destination*, replacing whatever is there.

    A missing *source* is a silent no-op. Across filesystems the data is
    copied next to *destination* and swapped in, then *source* is removed.
    """
    source = Path(source)
    destination = Path(destination)
    if not os.path.lexists(source):
        return
    try:
        os.replace(source, destination)
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise
        logger.debug("%s and %s are on different filesystems; copying", source, destination)
        _copy_replace(source, destination)


def _copy_replace(source: Path, destination: Path) -> None:
    staged = destination.parent / make_tmpname(destination.name)
    try:
        shutil.copyfile(source, staged)
        shutil.copymode(source, staged)
        os.replace(staged, destination)
    except BaseException:
        _discard(staged)
        raise
    source.unlink()


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError:
        logger.debug("Could not remove temp file %s", path, exc_info=True)


def _truncates(mode: str) -> bool:
    return "w" in mode or "x" in mode


def _ensure_dir(directory: Path, override_mode: int | None) -> None:
    if directory.is_dir():
        return
    directory.mkdir(mode=0o777 if override_mode is None else override_mode, parents=True, exist_ok=True)


def _restore_owner(target: Path, snapshot: MetadataSnapshot) -> None:
    if not hasattr(os, "chown"):
        logger.debug("chown unavailable on this platform; keeping owner of %s", target)
        return
    os.chown(target, snapshot.uid, snapshot.gid)


def effective_mode(snapshot: MetadataSnapshot, override_mode: int | None) -> int:
    if override_mode is not None:
        return override_mode & SAFETY_MASK
    return stat.S_IMODE(snapshot.mode)


def _install(tmp: Path, target: Path, override_mode: int | None) -> None:
    result = read_metadata(target)
    if isinstance(result, Found):
        snapshot = result.snapshot
    else:
        logger.debug("%s does not exist yet; probing default permissions", target)
        snapshot = probe_default_metadata(target.parent)

    try:
        nlink = num_hardlinks(target)
    except (NotFoundError, UnsupportedError):
        nlink = 0
        _ensure_dir(target.parent, override_mode)
    if nlink > 1:
        logger.debug("%s has %d hard links; replacing detaches it from the others", target, nlink)

    new_mode = effective_mode(snapshot, override_mode)
    os.chmod(tmp, new_mode)
    force_rename(tmp, target)
    _restore_owner(target, snapshot)
    os.chmod(target, new_mode)


@contextmanager
def atomic_open(
    target: StrPath,
    mode: str = "w",
    override_mode: int | None = None,
    scratch_dir: StrPath | None = None,
    *,
    touch: bool = False,
    fsync: bool = False,
    encoding: str | None = None,
    entropy: EntropySource | None = None,
) -> Iterator[IO[Any]]:
    """Open a scratch copy of *target* and install it when the block exits.

    Readers of *target* see either the old content or the new content,
    never a mix. Owner, group and permission bits of the old file are kept;
    a new file gets the process defaults, or ``override_mode & 0o666``.

    Non-truncating modes (``"a"``, ``"r+"``, ...) start from a copy of the
    current content, or from an empty file when *target* is missing. If the
    block or the install raises, the scratch file is removed.

    ``touch=True`` creates an empty placeholder at a missing *target* before
    writing, for callers that poll for the file's existence.
    """
    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    if touch and override_mode is None and not target.exists():
        target.touch()

    scratch = Path(scratch_dir) if scratch_dir is not None else Path(tempfile.gettempdir())
    scratch.mkdir(parents=True, exist_ok=True)
    tmp = scratch / make_tmpname(target.name, entropy=entropy)
    if not _truncates(mode):
        if target.exists():
            shutil.copyfile(target, tmp)
        else:
            tmp.touch()

    try:
        with open(tmp, mode, encoding=encoding) as fh:
            yield fh
            if fsync:
                fh.flush()
                os.fsync(fh.fileno())
    except BaseException:
        _discard(tmp)
        raise

    try:
        _install(tmp, target, override_mode)
    except BaseException:
        _discard(tmp)
        raise
    logger.debug("Installed %s", target)


def atomic_write(
    target: StrPath,
    writer: Callable[[IO[Any]], T],
    mode: str = "w",
    override_mode: int | None = None,
    scratch_dir: StrPath | None = None,
    **kwargs: Any,
) -> T:
    """Run *writer* against a scratch handle and atomically install the result.

    Returns whatever *writer* returns. See :func:`atomic_open` for the
    keyword options.
    """
    with atomic_open(target, mode, override_mode, scratch_dir, **kwargs) as fh:
        return writer(fh)


def atomic_write_bytes(target: StrPath, data: bytes, *, append: bool = False, **kwargs: Any) -> int:
    return atomic_write(target, lambda fh: fh.write(data), "ab" if append else "wb", **kwargs)


def atomic_write_text(
    target: StrPath,
    text: str,
    *,
    encoding: str = "utf-8",
    append: bool = False,
    **kwargs: Any,
) -> int:
    return atomic_write(target, lambda fh: fh.write(text), "a" if append else "w", encoding=encoding, **kwargs)
