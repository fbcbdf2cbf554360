"""Error types raised by atomic-replace."""

from __future__ import annotations


class NotFoundError(FileNotFoundError):
    """A stat or link-count query targeted a path that does not exist."""


class UnsupportedError(OSError):
    """The host platform cannot answer a link-count or ownership query."""
