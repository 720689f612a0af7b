# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
External collaborators of the job runner.

`ExecutionEngine` runs the distributed map/shuffle/reduce described by a
JobConf; `FileSystem` provides the few file operations needed for staging,
demultiplexing and cleanup. Only a local filesystem implementation lives here;
engines are supplied by the caller.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ..core.types import StrPath
from .cache import DistributedCache

if TYPE_CHECKING:
    from ..compiler.assembler import JobConf

__all__ = ["EngineResult", "ExecutionEngine", "FileSystem", "LocalFileSystem"]


@dataclass(frozen=True)
class EngineResult:
    """Outcome reported by the engine once the distributed run has finished."""

    success: bool
    diagnostic: str | None = None


@runtime_checkable
class ExecutionEngine(Protocol):
    async def run(self, conf: JobConf, cache: DistributedCache) -> EngineResult:
        """
        Run the job to completion. Blocks (awaits) until the engine reports
        success or failure; cancellation is the engine's own business.
        """


@runtime_checkable
class FileSystem(Protocol):
    def exists(self, path: StrPath) -> bool: ...
    def mkdirs(self, path: StrPath) -> None: ...
    def list_names(self, path: StrPath) -> list[str]: ...
    def rename(self, src: StrPath, dst: StrPath) -> None: ...
    def delete(self, path: StrPath, *, recursive: bool = False) -> None: ...


class LocalFileSystem:
    """FileSystem over the local disk (pathlib/shutil)."""

    def exists(self, path: StrPath) -> bool:
        return Path(path).exists()

    def mkdirs(self, path: StrPath) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def list_names(self, path: StrPath) -> list[str]:
        p = Path(path)
        if not p.is_dir():
            return []
        return sorted(c.name for c in p.iterdir() if c.is_file())

    def rename(self, src: StrPath, dst: StrPath) -> None:
        # copies then unlinks when src and dst are on different filesystems
        shutil.move(str(src), str(dst))

    def delete(self, path: StrPath, *, recursive: bool = False) -> None:
        p = Path(path)
        if not p.exists():
            return
        if p.is_dir():
            if recursive:
                shutil.rmtree(p)
            else:
                p.rmdir()
        else:
            p.unlink()
