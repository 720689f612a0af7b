from __future__ import annotations

"""
tagflow.core.utils
==================

Low-level helpers with **no external dependencies**:
- Stable, process-independent hashing of raw bytes.
- Compact JSON (de)serialization helpers.
- Job id generator (crypto-strong, lowercase alphanumeric).
"""

import json
from hashlib import blake2b
from secrets import choice
from typing import Any

from .types import DEFAULT_JOB_ID_ALPHABET, DEFAULT_JOB_ID_SIZE


def stable_hash_int(data: bytes, *, digest_size: int = 8) -> int:
    """
    Process-independent integer hash of raw bytes.

    Python's builtin ``hash()`` is salted per interpreter for str/bytes, so it
    cannot be used to route records consistently across worker processes.
    """
    return int.from_bytes(blake2b(data, digest_size=digest_size).digest(), "big")


def dumps(x: Any) -> bytes:
    """Compact JSON dump to UTF-8 bytes (ensure_ascii=False, no spaces)."""
    return json.dumps(x, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def loads(b: bytes) -> Any:
    """Inverse of dumps(): parse UTF-8 JSON bytes back to Python objects."""
    return json.loads(b.decode("utf-8"))


def new_job_id(size: int = DEFAULT_JOB_ID_SIZE, alphabet: str = DEFAULT_JOB_ID_ALPHABET) -> str:
    """
    Generate a random job identifier.

    Args:
        size: number of characters.
        alphabet: allowed characters.

    Returns:
        Random string of given size.
    """
    if size <= 0:
        raise ValueError("size must be positive")
    if not alphabet:
        raise ValueError("alphabet must be a non-empty string")
    return "".join(choice(alphabet) for _ in range(size))
