from __future__ import annotations

"""
tagflow.core.types
==================

Shared type aliases and small constants used across the codebase.
Keep this module **tiny** and dependency-free.
"""

import os
from pathlib import Path
from typing import Final, Union

# Paths
StrPath = Union[str, os.PathLike[str], Path]

# ---- Constants ---------------------------------------------------------------

# Well-known distribution keys for the dispatch tables.
CACHE_KEY_MAPPERS: Final[str] = "tagflow.input.mappers"
CACHE_KEY_COMBINERS: Final[str] = "tagflow.combiners"
CACHE_KEY_REDUCERS: Final[str] = "tagflow.output.reducers"
CACHE_KEY_SCHEMA: Final[str] = "tagflow.wire.schema"

# Staging output directory name under the job working directory.
DEFAULT_STAGING_DIR: Final[str] = "tmp-out"

# Job id defaults (URL-safe alphabet).
DEFAULT_JOB_ID_ALPHABET: Final[str] = "0123456789abcdefghijklmnopqrstuvwxyz"
DEFAULT_JOB_ID_SIZE: Final[int] = 12


__all__ = [
    "StrPath",
    "CACHE_KEY_MAPPERS",
    "CACHE_KEY_COMBINERS",
    "CACHE_KEY_REDUCERS",
    "CACHE_KEY_SCHEMA",
    "DEFAULT_STAGING_DIR",
    "DEFAULT_JOB_ID_ALPHABET",
    "DEFAULT_JOB_ID_SIZE",
]
