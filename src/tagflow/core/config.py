from __future__ import annotations

"""
tagflow.core.config
===================

Strongly-typed configuration for the job compiler and runner.
- Optional JSON file loading; a missing file yields defaults.
- Small env overrides for convenience.
"""

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .types import CACHE_KEY_COMBINERS, CACHE_KEY_MAPPERS, CACHE_KEY_REDUCERS, CACHE_KEY_SCHEMA, DEFAULT_STAGING_DIR


def _load_json(path: Path | None) -> dict[str, Any]:
    if not path or not path.exists():
        return {}
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"config file {path} must contain a JSON object")
    return data


def _default_working_dir() -> str:
    return str(Path(tempfile.gettempdir()) / "tagflow")


# ---------------------------------------------------------------------------


@dataclass
class CompilerConfig:
    """Compiler/runner configuration loaded from JSON/env."""

    # ---- Filesystem
    working_dir: str = field(default_factory=_default_working_dir)
    staging_dir_name: str = DEFAULT_STAGING_DIR

    # ---- Shuffle
    num_reduce_tasks: int = 1
    compress_map_output: bool = True
    map_output_codec: str = "gzip"

    # ---- Distribution keys
    cache_key_mappers: str = CACHE_KEY_MAPPERS
    cache_key_combiners: str = CACHE_KEY_COMBINERS
    cache_key_reducers: str = CACHE_KEY_REDUCERS
    cache_key_schema: str = CACHE_KEY_SCHEMA

    # ---- Cleanup
    cleanup_cache: bool = True

    # ---- Methods ------------------------------------------------------------

    def __post_init__(self) -> None:
        if not self.working_dir:
            raise ValueError("working_dir must be a non-empty string")
        if not self.staging_dir_name or "/" in self.staging_dir_name:
            raise ValueError("staging_dir_name must be a plain, non-empty directory name")
        self.num_reduce_tasks = int(self.num_reduce_tasks)
        if self.num_reduce_tasks <= 0:
            raise ValueError("num_reduce_tasks must be > 0")
        keys = [self.cache_key_mappers, self.cache_key_combiners, self.cache_key_reducers, self.cache_key_schema]
        if not all(isinstance(k, str) and k for k in keys):
            raise ValueError("cache keys must be non-empty strings")
        if len(set(keys)) != len(keys):
            raise ValueError("cache keys must be distinct")

    def job_working_dir(self, job_id: str) -> Path:
        return Path(self.working_dir) / job_id

    def staging_dir(self, job_id: str) -> Path:
        """Staging output directory for one job; never a final destination."""
        return self.job_working_dir(job_id) / self.staging_dir_name

    # Loader
    @classmethod
    def load(cls, path: Path | str | None = None, *, overrides: dict[str, Any] | None = None) -> CompilerConfig:
        """
        Load config from JSON file (if provided), then apply env and overrides.

        Env overrides:
          - TAGFLOW_WORKING_DIR
          - TAGFLOW_NUM_REDUCE_TASKS
        """
        data: dict[str, Any] = {}
        data.update(_load_json(Path(path) if path else None))

        if os.getenv("TAGFLOW_WORKING_DIR"):
            data["working_dir"] = os.environ["TAGFLOW_WORKING_DIR"]
        if os.getenv("TAGFLOW_NUM_REDUCE_TASKS"):
            data["num_reduce_tasks"] = int(os.environ["TAGFLOW_NUM_REDUCE_TASKS"])

        if overrides:
            data.update(overrides)

        return cls(**data)
