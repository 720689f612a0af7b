# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from .errors import (
    DemuxConflict,
    DemuxMismatch,
    GraphError,
    InvalidStateTransition,
    SubmissionFailure,
    TagflowError,
    TypeConflict,
    UnresolvedTag,
)
from .functions import Combiner, FnCombiner, FnMapper, FnReducer, KVType, Mapper, Reducer

__all__ = [
    "TagflowError",
    "GraphError",
    "TypeConflict",
    "UnresolvedTag",
    "SubmissionFailure",
    "DemuxMismatch",
    "DemuxConflict",
    "InvalidStateTransition",
    "KVType",
    "Mapper",
    "Combiner",
    "Reducer",
    "FnMapper",
    "FnCombiner",
    "FnReducer",
]
