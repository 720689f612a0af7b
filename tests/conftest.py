# conftest.py
from __future__ import annotations

import os
import uuid

import pytest
from prometheus_client import CollectorRegistry

from tagflow.core.config import CompilerConfig
from tagflow.core.log import bind_context, configure_from_env, enable_stdout_logging, get_logger, log_context
from tagflow.observability.metrics import JobMetrics
from tagflow.runtime.cache import InMemoryCache


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast, in-process unit tests")
    config.addinivalue_line("markers", "wire: tagged wire types, registry and partitioner")
    config.addinivalue_line("markers", "compiler: tagging, dispatch tables and job assembly")
    config.addinivalue_line("markers", "job: submission, demultiplexing and cleanup")


def pytest_addoption(parser):
    parser.addoption(
        "--log-json",
        action="store_true",
        default=False,
        help="Emit tagflow logs in JSON format during tests",
    )


@pytest.fixture(scope="session", autouse=True)
def _configure_tagflow_logging(request):
    configure_from_env()
    prefer_json = request.config.getoption("--log-json")
    if os.getenv("TAGFLOW_LOG_STDOUT", "").lower() not in ("1", "true", "yes", "on"):
        enable_stdout_logging(level="DEBUG", json_output=prefer_json, pretty=not prefer_json)
    bind_context(role="pytest")


@pytest.fixture(scope="session")
def session_run_id():
    return uuid.uuid4().hex[:8]


@pytest.fixture(autouse=True)
def _test_log_context(request, session_run_id):
    log = get_logger("test")
    with log_context(test=request.node.name, test_run=session_run_id):
        log.debug("pytest.test.start", event="pytest.test.start")
        yield


@pytest.fixture
def config(tmp_path) -> CompilerConfig:
    return CompilerConfig(working_dir=str(tmp_path / "work"))


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def metrics() -> JobMetrics:
    return JobMetrics(registry=CollectorRegistry())
