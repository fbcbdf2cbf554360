"""Tests for atomic_replace.config."""

from __future__ import annotations

import json
import os
import stat
import tempfile
from pathlib import Path

import pytest

from atomic_replace import config as cfg

_ENV_VARS = [env_var for _, env_var in cfg._ENV_OVERRIDES]


@pytest.fixture
def config_env(tmp_path: Path, monkeypatch):
    home = tmp_path / "home"
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.setattr(cfg, "CONFIG_DIR", home)
    monkeypatch.chdir(project)
    for env_var in _ENV_VARS:
        monkeypatch.delenv(env_var, raising=False)
    return home, project


class TestLoadConfig:
    def test_empty_when_no_files(self, config_env):
        assert cfg.load_config() == {}

    def test_project_overrides_global(self, config_env):
        home, project = config_env
        home.mkdir()
        (home / "config.json").write_text(json.dumps({"scratch_dir": "/a", "fsync": True}))
        (project / ".atomic-replace.json").write_text(json.dumps({"scratch_dir": "/b"}))
        merged = cfg.load_config()
        assert merged == {"scratch_dir": "/b", "fsync": True}

    def test_env_overrides_everything(self, config_env, monkeypatch):
        _, project = config_env
        (project / ".atomic-replace.json").write_text(json.dumps({"scratch_dir": "/b", "debug": False}))
        monkeypatch.setenv("ATOMIC_REPLACE_SCRATCH_DIR", "/c")
        monkeypatch.setenv("ATOMIC_REPLACE_DEBUG", "true")
        merged = cfg.load_config()
        assert merged["scratch_dir"] == "/c"
        assert merged["debug"] is True

    def test_invalid_boolean_env_is_ignored(self, config_env, monkeypatch):
        monkeypatch.setenv("ATOMIC_REPLACE_FSYNC", "maybe")
        assert "fsync" not in cfg.load_config()


class TestSaveConfig:
    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions required")
    def test_writes_private_file(self, config_env):
        cfg.save_config({"fsync": True}, cfg.Scope.GLOBAL)
        path = cfg.config_path(cfg.Scope.GLOBAL)
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
        assert cfg.load_raw_config(cfg.Scope.GLOBAL) == {"fsync": True}
        assert path.read_text(encoding="utf-8").endswith("\n")

    def test_project_scope_lands_in_cwd(self, config_env):
        _, project = config_env
        cfg.save_config({"scratch_dir": "/x"}, cfg.Scope.PROJECT)
        assert json.loads((project / ".atomic-replace.json").read_text()) == {"scratch_dir": "/x"}
        assert sorted(p.name for p in project.iterdir()) == [".atomic-replace.json"]


class TestResolvers:
    def test_scratch_dir_defaults_to_system_temp(self):
        assert cfg.resolve_scratch_dir({}) == Path(tempfile.gettempdir())

    def test_scratch_dir_expands_user(self):
        assert cfg.resolve_scratch_dir({"scratch_dir": "~/scratch"}) == Path.home() / "scratch"

    def test_log_file_default(self, config_env):
        home, _ = config_env
        assert cfg.resolve_log_file({}) == home / "atomic-replace.log"

    def test_parse_bool(self):
        assert cfg.parse_bool("Yes") is True
        assert cfg.parse_bool("0") is False
        assert cfg.parse_bool("nope") is None
