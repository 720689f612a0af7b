from __future__ import annotations

"""
tagflow.core.log
================

Structured logging for the compiler and job runner.

The library logs under the `tagflow` namespace and stays silent until an
entrypoint (or the test session) attaches a stdout handler. Keyword fields
passed to a logger call become record attributes, and fields bound with
`log_context` (the runner binds `job_id`) are added to every JSON line.
"""

import contextvars
import json
import logging
import os
import sys
from collections.abc import Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

__all__ = [
    "HumanFormatter",
    "JsonFormatter",
    "bind_context",
    "configure_from_env",
    "enable_stdout_logging",
    "get_logger",
    "log_context",
    "swallow",
]

_ROOT = "tagflow"
_HANDLER_NAME = "tagflow-stdout"

_ctx: contextvars.ContextVar[Mapping[str, Any]] = contextvars.ContextVar("tagflow_log_ctx", default={})

# attributes every LogRecord carries; anything else on a record is a user field
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def _merged(fields: Mapping[str, Any]) -> dict[str, Any]:
    return {**_ctx.get(), **{k: v for k, v in fields.items() if v is not None}}


def bind_context(**fields: Any) -> None:
    """Add fields to the log context of the current task/thread for good."""
    _ctx.set(_merged(fields))


@contextmanager
def log_context(**fields: Any):
    token = _ctx.set(_merged(fields))
    try:
        yield
    finally:
        _ctx.reset(token)


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, message, context, fields, error."""

    def __init__(self, *, include_stack: bool = False) -> None:
        super().__init__()
        self.include_stack = include_stack

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds")
        out: dict[str, Any] = {"ts": ts, "level": record.levelname, "logger": record.name}
        if record.msg:
            out["message"] = record.getMessage()
        out.update(_ctx.get())
        out.update({k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS})

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            out["error"] = {"type": type(exc).__name__, "message": str(exc)}
            if self.include_stack:
                out["error"]["stack"] = self.formatException(record.exc_info)
        return json.dumps(out, ensure_ascii=False, separators=(",", ":"), default=str)


class HumanFormatter(logging.Formatter):
    """`time LEVEL logger: message  [job_id=..., event=...]` for local runs."""

    _shown = ("job_id", "event", "tag", "sink")

    def format(self, record: logging.LogRecord) -> str:
        fields = {**_ctx.get(), **vars(record)}
        tail = ", ".join(f"{k}={fields[k]}" for k in self._shown if fields.get(k) is not None)
        line = f"{self.formatTime(record)} {record.levelname:<5} {record.name}: {record.getMessage()}"
        if tail:
            line += f"  [{tail}]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class _FieldsAdapter(logging.LoggerAdapter):
    """`log.info("msg", event="demux.moved", tag=3)`: unknown kwargs go to `extra`."""

    _passthrough = frozenset({"exc_info", "stack_info", "stacklevel"})

    def process(self, msg, kwargs):
        extra = dict(kwargs.pop("extra", None) or {})
        for k in [k for k in kwargs if k not in self._passthrough]:
            v = kwargs.pop(k)
            extra[f"field_{k}" if k in _RECORD_ATTRS else k] = v
        kwargs["extra"] = extra
        return msg, kwargs


_root = logging.getLogger(_ROOT)
if not _root.handlers:
    _root.addHandler(logging.NullHandler())
_root.setLevel(logging.INFO)


def get_logger(name: str | None = None) -> logging.LoggerAdapter:
    return _FieldsAdapter(_root.getChild(name) if name else _root, {})


def enable_stdout_logging(
    *,
    level: int | str = logging.INFO,
    json_output: bool = True,
    include_stack: bool = False,
    pretty: bool = False,
) -> None:
    """Attach (or replace) the stdout handler: JSON lines, or the human format when `pretty`."""
    for h in [h for h in _root.handlers if h.get_name() == _HANDLER_NAME]:
        _root.removeHandler(h)
    if pretty:
        fmt: logging.Formatter = HumanFormatter()
    elif json_output:
        fmt = JsonFormatter(include_stack=include_stack)
    else:
        fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    h = logging.StreamHandler(sys.stdout)
    h.set_name(_HANDLER_NAME)
    h.setLevel(level.upper() if isinstance(level, str) else level)
    h.setFormatter(fmt)
    _root.addHandler(h)


def _flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes", "on")


def configure_from_env() -> None:
    """
    Honors TAGFLOW_LOG_LEVEL, TAGFLOW_LOG_STDOUT (attach stdout handler),
    TAGFLOW_LOG_PRETTY (human format) and TAGFLOW_LOG_STACK (stacks in JSON).
    """
    level = os.getenv("TAGFLOW_LOG_LEVEL", "INFO").upper()
    _root.setLevel(level)
    if _flag("TAGFLOW_LOG_STDOUT"):
        pretty = _flag("TAGFLOW_LOG_PRETTY")
        enable_stdout_logging(level=level, json_output=not pretty, include_stack=_flag("TAGFLOW_LOG_STACK"), pretty=pretty)


@contextmanager
def swallow(
    *,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
    level: int = logging.WARNING,
    code: str,
    msg: str | None = None,
    extra: Mapping[str, Any] | None = None,
):
    """
    Log and suppress an exception, for cleanup steps that must not mask the outcome:
        with swallow(logger=log, code="job.cleanup.workdir"):
            fs.delete(path, recursive=True)
    """
    log = logger if isinstance(logger, logging.LoggerAdapter) else _FieldsAdapter(logger or _root, {})
    try:
        yield
    except Exception as e:
        log.log(level, msg or "suppressed exception", exc_info=e, code=code, **dict(extra or {}))
