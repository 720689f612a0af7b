from __future__ import annotations

from .metrics import JobMetrics, get_job_metrics

__all__ = ["JobMetrics", "get_job_metrics"]
