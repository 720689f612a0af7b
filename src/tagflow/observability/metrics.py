from __future__ import annotations

"""
tagflow.observability.metrics
=============================

Prometheus counters for job submission and output demultiplexing.

Label names are validated against an allowlist to keep cardinality low: job
ids, tags and paths never become label values.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import prometheus_client as prom

__all__ = ["JobMetrics", "SafeCounter", "get_job_metrics"]


class _LabelChecker:
    """Validate label names against an allowlist."""

    __slots__ = ("_allowed",)

    def __init__(self, allowed: Iterable[str] | None) -> None:
        self._allowed = frozenset(allowed or ())

    def validate(self, labels: Mapping[str, str]) -> None:
        unknown = [k for k in labels.keys() if k not in self._allowed]
        if unknown:
            raise ValueError(f"Unknown label(s) for metric: {unknown}; allowed={sorted(self._allowed)}")


class SafeCounter:
    """
    Counter wrapper that validates label names against an allowlist.

    Example:
        cnt = SafeCounter("tagflow_jobs_total", "Jobs by outcome", label_names=["outcome"])
        cnt.labels(outcome="demuxed").inc()
    """

    def __init__(
        self,
        name: str,
        documentation: str,
        *,
        label_names: Sequence[str] | None = None,
        registry: Any | None = None,
    ) -> None:
        self._checker = _LabelChecker(label_names or [])
        self._metric = prom.Counter(
            name, documentation, labelnames=list(label_names or []), registry=registry or prom.REGISTRY
        )

    def labels(self, **labels: str):
        self._checker.validate(labels)
        return self._metric.labels(**labels)


class JobMetrics:
    """Counters updated by the job runner."""

    def __init__(self, registry: prom.CollectorRegistry | None = None) -> None:
        self.registry = registry or prom.REGISTRY
        self.jobs = SafeCounter(
            "tagflow_jobs",
            "Jobs submitted to the execution engine, by final outcome",
            label_names=["outcome"],
            registry=registry,
        )
        self.demux_files = SafeCounter(
            "tagflow_demux_files",
            "Staging files seen by output demultiplexing, by result",
            label_names=["result"],
            registry=registry,
        )


_default_metrics: JobMetrics | None = None


def get_job_metrics() -> JobMetrics:
    """Process-wide metrics on the default prometheus registry."""
    global _default_metrics
    if _default_metrics is None:
        _default_metrics = JobMetrics()
    return _default_metrics
