# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Error taxonomy for the tagflow job compiler.

Compile-time errors (TypeConflict, UnresolvedTag, GraphError) abort before
anything is submitted. SubmissionFailure is surfaced to the caller unchanged
and never retried here. DemuxMismatch describes a staging file that is logged
and skipped during demultiplexing.
"""

from typing import Any


class TagflowError(Exception):
    """Base class for all tagflow errors."""

    ...


class GraphError(TagflowError):
    """The channel graph handed over by the optimizer is structurally invalid."""

    ...


class TypeConflict(TagflowError):
    """Two registrations for the same tag disagree on their wire encoding."""

    def __init__(self, tag: int, existing: Any, attempted: Any) -> None:
        super().__init__(f"tag {tag}: conflicting wire types, registered {existing!r}, attempted {attempted!r}")
        self.tag = tag
        self.existing = existing
        self.attempted = attempted


class UnresolvedTag(TagflowError):
    """
    A tag (or a node expected to carry tags) has no registry/dispatch entry.

    Raised at compile time when detected, and at task runtime as an invariant
    violation: it means tagging and registration went out of sync.
    """

    def __init__(self, message: str, *, tag: int | None = None) -> None:
        super().__init__(message)
        self.tag = tag


class SubmissionFailure(TagflowError):
    """The execution engine rejected or failed the job (or job setup failed)."""

    def __init__(self, job_id: str, diagnostic: str) -> None:
        super().__init__(f"job {job_id} failed: {diagnostic}")
        self.job_id = job_id
        self.diagnostic = diagnostic


class DemuxMismatch(TagflowError):
    """A staging file name matches no expected (tag, sink) pair."""

    def __init__(self, file_name: str, reason: str = "no matching output channel") -> None:
        super().__init__(f"{file_name}: {reason}")
        self.file_name = file_name
        self.reason = reason


class InvalidStateTransition(TagflowError):
    """A job was driven through its lifecycle out of order (e.g. run twice)."""

    ...


class DemuxConflict(TagflowError):
    """
    Staging files would overwrite existing destination files. Nothing was
    moved; the staging directory is kept for inspection.
    """

    def __init__(self, job_id: str, files: list[str], staging_dir: str) -> None:
        super().__init__(f"job {job_id}: destination already holds {files}; output kept in {staging_dir}")
        self.job_id = job_id
        self.files = files
        self.staging_dir = staging_dir
