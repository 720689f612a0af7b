# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

"""
Job submission and output demultiplexing.

Import `tagflow.job.runner.MapReduceJob` explicitly; this package init only
exposes the output naming grammar, which the compiler also depends on.
"""

from .naming import OutputFileName, named_output, parse_output_file

__all__ = ["OutputFileName", "named_output", "parse_output_file"]
