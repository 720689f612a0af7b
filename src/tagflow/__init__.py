from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

try:
    __version__ = _pkg_version("tagflow")
except PackageNotFoundError:  # pragma: no cover - running from a source checkout
    __version__ = "0.0.0"

from .compiler import CompiledJob, JobConf, compile_job
from .core.config import CompilerConfig
from .graph import ChannelGraph
from .job.runner import DemuxReport, JobState, MapReduceJob, run_job

__all__ = [
    "ChannelGraph",
    "CompiledJob",
    "CompilerConfig",
    "DemuxReport",
    "JobConf",
    "JobState",
    "MapReduceJob",
    "compile_job",
    "run_job",
    "__version__",
]
