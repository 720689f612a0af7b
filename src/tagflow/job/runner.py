# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Job submission and output demultiplexing.

Lifecycle of one compiled job:

    BUILT -> SUBMITTED -> COMPLETED -> DEMUXED
                 \\            \\
                  +-> FAILED   +-> FAILED

The engine always writes to a per-job staging directory. Files are moved to
their final destinations only after the engine reported success, and only when
every one of them can be placed: a destination conflict moves nothing, and a
failed move puts the already-moved files back. In both cases the staging
directory is kept; otherwise it is removed. Distributed dispatch tables are
removed whatever the outcome.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..api.errors import DemuxConflict, DemuxMismatch, InvalidStateTransition, SubmissionFailure
from ..compiler.assembler import CompiledJob, NamedOutput, compile_job
from ..core.config import CompilerConfig
from ..core.log import get_logger, log_context, swallow
from ..graph.spec import ChannelGraph
from ..observability.metrics import JobMetrics, get_job_metrics
from ..runtime.cache import DistributedCache, push_object
from ..runtime.engine import ExecutionEngine, FileSystem, LocalFileSystem
from .naming import parse_output_file

__all__ = ["JobState", "DemuxReport", "MapReduceJob", "run_job"]

_log = get_logger("job.runner")


class JobState(str, Enum):
    BUILT = "built"
    SUBMITTED = "submitted"
    COMPLETED = "completed"
    DEMUXED = "demuxed"
    FAILED = "failed"


_TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.BUILT: frozenset({JobState.SUBMITTED, JobState.FAILED}),
    JobState.SUBMITTED: frozenset({JobState.COMPLETED, JobState.FAILED}),
    JobState.COMPLETED: frozenset({JobState.DEMUXED, JobState.FAILED}),
    JobState.DEMUXED: frozenset(),
    JobState.FAILED: frozenset(),
}


@dataclass
class DemuxReport:
    moved: list[tuple[str, str]] = field(default_factory=list)
    mismatched: list[DemuxMismatch] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.moved or self.mismatched)


class MapReduceJob:
    """Submits one compiled job and routes its output files to their sinks."""

    def __init__(
        self,
        compiled: CompiledJob,
        *,
        engine: ExecutionEngine,
        cache: DistributedCache,
        fs: FileSystem | None = None,
        metrics: JobMetrics | None = None,
    ) -> None:
        self.compiled = compiled
        self.engine = engine
        self.cache = cache
        self.fs = fs or LocalFileSystem()
        self.metrics = metrics or get_job_metrics()
        self._state = JobState.BUILT
        self._keep_staging = False

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def job_id(self) -> str:
        return self.compiled.job_id

    @property
    def staging_dir(self) -> Path:
        return Path(self.compiled.conf.output_dir)

    def _transition(self, new: JobState) -> None:
        if new not in _TRANSITIONS[self._state]:
            raise InvalidStateTransition(f"job {self.job_id}: {self._state.value} -> {new.value}")
        _log.debug("job state", event="job.state", state_from=self._state.value, state_to=new.value)
        self._state = new

    # ---- run ---------------------------------------------------------------

    async def run(self) -> DemuxReport:
        """
        Submit, wait for the engine, demultiplex.

        Raises SubmissionFailure on engine or setup failure, DemuxConflict when
        outputs would overwrite existing files, and the filesystem error when a
        move fails. The job ends FAILED in every case.
        """
        if self._state is not JobState.BUILT:
            raise InvalidStateTransition(f"job {self.job_id} already ran (state={self._state.value})")

        conf = self.compiled.conf
        with log_context(job_id=self.job_id):
            try:
                try:
                    await self._setup()
                    self._transition(JobState.SUBMITTED)
                    _log.info("job submitted", event="job.submitted", output_dir=conf.output_dir)
                    result = await self.engine.run(conf, self.cache)
                except Exception as e:
                    raise SubmissionFailure(self.job_id, f"{type(e).__name__}: {e}") from e
                if not result.success:
                    raise SubmissionFailure(self.job_id, result.diagnostic or "execution engine reported failure")

                self._transition(JobState.COMPLETED)
                _log.info("job completed", event="job.completed")
                report = self.demux()
                self._transition(JobState.DEMUXED)
                self.metrics.jobs.labels(outcome="demuxed").inc()
                return report
            except Exception as e:
                self._state = JobState.FAILED
                self.metrics.jobs.labels(outcome="failed").inc()
                _log.error("job failed", event="job.failed", error=str(e))
                raise
            finally:
                await self._cleanup()

    async def _setup(self) -> None:
        cfg = self.compiled.config
        tables = self.compiled.dispatch
        keys = self.compiled.conf.cache_keys

        if self.fs.exists(self.staging_dir):
            # leftovers of an earlier attempt with the same id must not be promoted
            self.fs.delete(self.staging_dir, recursive=True)
        self.fs.mkdirs(cfg.job_working_dir(self.job_id))

        sizes = {
            "mappers": await push_object(self.cache, keys["mappers"], dict(tables.mappers)),
            "reducers": await push_object(self.cache, keys["reducers"], dict(tables.reducers)),
            "schema": await push_object(self.cache, keys["schema"], self.compiled.schema),
        }
        if "combiners" in keys:
            sizes["combiners"] = await push_object(self.cache, keys["combiners"], dict(tables.combiners))
        _log.debug("dispatch tables distributed", event="job.distributed", sizes=sizes)

    async def _cleanup(self) -> None:
        cfg = self.compiled.config
        if self._keep_staging:
            _log.warning("staging output kept", event="job.cleanup.kept", staging=str(self.staging_dir))
        else:
            with swallow(logger=_log, code="job.cleanup.workdir", msg="working directory cleanup failed"):
                self.fs.delete(cfg.job_working_dir(self.job_id), recursive=True)
        if cfg.cleanup_cache:
            for key in self.compiled.conf.cache_keys.values():
                with swallow(logger=_log, code="job.cleanup.cache", msg="cache cleanup failed", extra={"key": key}):
                    await self.cache.delete(key)
        _log.debug("job artifacts removed", event="job.cleanup")

    # ---- demux -------------------------------------------------------------

    def _plan(self, report: DemuxReport) -> list[tuple[str, Path, NamedOutput]]:
        """Resolve every staging file to its destination; mismatches go to `report`."""
        expected: dict[tuple[int, int], NamedOutput] = {
            (no.tag, no.sink_index): no for no in self.compiled.conf.named_outputs
        }
        plan: list[tuple[str, Path, NamedOutput]] = []
        for name in self.fs.list_names(self.staging_dir):
            parsed = parse_output_file(name)
            target = expected.get((parsed.tag, parsed.sink)) if parsed is not None else None
            if target is None:
                reason = (
                    "name does not follow ch<tag>out<sink>-<split>"
                    if parsed is None
                    else f"no output channel for tag {parsed.tag} sink {parsed.sink}"
                )
                report.mismatched.append(DemuxMismatch(name, reason))
                self.metrics.demux_files.labels(result="mismatch").inc()
                # engine bookkeeping files (_SUCCESS, .crc, ...) are expected
                level = _log.debug if name.startswith(("_", ".")) else _log.warning
                level("staging file skipped", event="demux.mismatch", file=name, reason=reason)
                continue
            plan.append((name, Path(target.destination) / name, target))
        return plan

    def _rollback(self, moved: list[tuple[Path, Path]]) -> None:
        for src, dst in reversed(moved):
            with swallow(
                logger=_log, code="demux.rollback", msg="could not return file to staging", extra={"file": str(dst)}
            ):
                self.fs.rename(dst, src)

    def demux(self) -> DemuxReport:
        """
        Move every staging file named `ch<tag>out<sink>-...` into its sink's
        destination directory, all or nothing.

        Unmatched files are reported and skipped. If any destination file
        already exists, DemuxConflict is raised before anything moves. If a
        move fails, files already moved are returned to staging and the error
        propagates. In both cases the staging directory survives cleanup.
        An empty or missing staging directory yields an empty report.
        """
        report = DemuxReport()
        staging = self.staging_dir
        if not self.fs.exists(staging):
            _log.debug("nothing to demux", event="demux.empty", staging=str(staging))
            return report

        plan = self._plan(report)
        conflicts = [name for name, dst, _ in plan if self.fs.exists(dst)]
        if conflicts:
            self._keep_staging = True
            self.metrics.demux_files.labels(result="conflict").inc(len(conflicts))
            _log.error("destination files exist; nothing moved", event="demux.conflict", files=conflicts)
            raise DemuxConflict(self.job_id, conflicts, str(staging))

        moved: list[tuple[Path, Path]] = []
        try:
            for name, dst, target in plan:
                self.fs.mkdirs(dst.parent)
                self.fs.rename(staging / name, dst)
                moved.append((staging / name, dst))
                _log.debug("output moved", event="demux.moved", file=name, tag=target.tag, sink=target.sink_index)
        except Exception:
            self._keep_staging = True
            self._rollback(moved)
            raise

        report.moved = [(str(src), str(dst)) for src, dst in moved]
        self.metrics.demux_files.labels(result="moved").inc(len(moved))
        _log.info("demux finished", event="demux.finished", moved=len(report.moved), mismatched=len(report.mismatched))
        return report


async def run_job(
    graph: ChannelGraph,
    *,
    engine: ExecutionEngine,
    cache: DistributedCache,
    config: CompilerConfig | None = None,
    fs: FileSystem | None = None,
    metrics: JobMetrics | None = None,
) -> DemuxReport:
    """Compile `graph` and run it as one job."""
    compiled = compile_job(graph, config)
    return await MapReduceJob(compiled, engine=engine, cache=cache, fs=fs, metrics=metrics).run()
