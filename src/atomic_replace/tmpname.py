"""Collision-resistant temporary file names."""

from __future__ import annotations

import os
import random
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Tuple, Union

RANDOM_BOUND = 0x100000000  # tokens are drawn from [0, 2**32)

_DIGITS = string.digits + string.ascii_lowercase

Basename = Union[str, Tuple[str, str]]


@dataclass(frozen=True)
class EntropySource:
    rng: random.Random = field(default_factory=random.SystemRandom)
    clock: Callable[[], datetime] = datetime.now
    pid: Callable[[], int] = os.getpid


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError(f"negative value: {value}")
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(_DIGITS[rem])
    return "".join(reversed(out))


def split_basename(basename: Basename) -> tuple[str, str]:
    """Return the (prefix, suffix) pair a temp name is built from.

    A plain name keeps itself as the prefix and its extension (with the dot)
    as the suffix. A tuple is taken as an explicit pair.
    """
    if isinstance(basename, tuple):
        prefix, suffix = basename
        return prefix, suffix
    return basename, os.path.splitext(basename)[1]


def make_tmpname(basename: Basename, *, entropy: EntropySource | None = None) -> str:
    """Build a temporary file name that is very unlikely to collide.

    Format: ``<prefix><YYYYMMDD>-<pid>-<base36 random>-<suffix>``.
    """
    src = entropy or _DEFAULT_ENTROPY
    prefix, suffix = split_basename(basename)
    stamp = src.clock().strftime("%Y%m%d")
    token = to_base36(src.rng.randrange(RANDOM_BOUND))
    return f"{prefix}{stamp}-{src.pid()}-{token}-{suffix}"


_DEFAULT_ENTROPY = EntropySource()
