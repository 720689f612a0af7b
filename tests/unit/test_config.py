from __future__ import annotations

import json

import pytest

from tagflow.core.config import CompilerConfig

pytestmark = pytest.mark.unit


def test_defaults(tmp_path):
    cfg = CompilerConfig(working_dir=str(tmp_path))
    assert cfg.num_reduce_tasks == 1
    assert cfg.compress_map_output is True
    assert cfg.staging_dir("j1") == tmp_path / "j1" / "tmp-out"
    assert cfg.job_working_dir("j1") == tmp_path / "j1"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"num_reduce_tasks": 0},
        {"staging_dir_name": "a/b"},
        {"staging_dir_name": ""},
        {"cache_key_mappers": ""},
        {"cache_key_combiners": "tagflow.output.reducers"},
    ],
)
def test_invalid_values(tmp_path, kwargs):
    with pytest.raises(ValueError):
        CompilerConfig(working_dir=str(tmp_path), **kwargs)


def test_load_file_env_and_overrides(tmp_path, monkeypatch):
    path = tmp_path / "tagflow.json"
    path.write_text(json.dumps({"num_reduce_tasks": 2, "compress_map_output": False}))
    monkeypatch.setenv("TAGFLOW_WORKING_DIR", str(tmp_path / "env"))
    monkeypatch.delenv("TAGFLOW_NUM_REDUCE_TASKS", raising=False)

    cfg = CompilerConfig.load(path, overrides={"cleanup_cache": False})

    assert cfg.num_reduce_tasks == 2
    assert cfg.compress_map_output is False
    assert cfg.working_dir == str(tmp_path / "env")
    assert cfg.cleanup_cache is False

    monkeypatch.setenv("TAGFLOW_NUM_REDUCE_TASKS", "5")
    assert CompilerConfig.load(path).num_reduce_tasks == 5


def test_missing_file_gives_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("TAGFLOW_WORKING_DIR", raising=False)
    monkeypatch.delenv("TAGFLOW_NUM_REDUCE_TASKS", raising=False)
    cfg = CompilerConfig.load(tmp_path / "absent.json")
    assert cfg.num_reduce_tasks == 1


def test_non_object_file(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("[1, 2]")
    with pytest.raises(ValueError):
        CompilerConfig.load(path)
