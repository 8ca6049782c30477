"""
Tests for Config loading and logging setup.
"""
import logging
import textwrap
from pathlib import Path

import pytest

from taskboard.config import Config, ConfigError, configure_logging


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("TASKBOARD_DB", raising=False)
    monkeypatch.delenv("TASKBOARD_CONFIG", raising=False)


def _write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(text))
    return str(path)


class TestConfigLoad:

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = Config.load(str(tmp_path / "nope.yaml"))
        assert cfg.slot_key == "boards"
        assert cfg.log_level == "INFO"
        assert cfg.flush_timeout == 5.0
        assert cfg.db_path == str(Path("~/.local/share/taskboard/taskboard.db").expanduser())

    def test_values_from_yaml(self, tmp_path):
        path = _write(tmp_path, f"""
            db_path: {tmp_path}/boards.db
            slot_key: work
            log_level: debug
            flush_timeout: 2
            unknown_key: ignored
        """)
        cfg = Config.load(path)
        assert cfg.db_path == f"{tmp_path}/boards.db"
        assert cfg.slot_key == "work"
        assert cfg.log_level == "DEBUG"
        assert cfg.flush_timeout == 2.0

    def test_empty_file_uses_defaults(self, tmp_path):
        cfg = Config.load(_write(tmp_path, ""))
        assert cfg.slot_key == "boards"

    def test_env_config_path(self, tmp_path, monkeypatch):
        path = _write(tmp_path, "slot_key: from-env\n")
        monkeypatch.setenv("TASKBOARD_CONFIG", path)
        assert Config.load().slot_key == "from-env"

    def test_env_db_override(self, tmp_path, monkeypatch):
        path = _write(tmp_path, "db_path: /somewhere/else.db\n")
        monkeypatch.setenv("TASKBOARD_DB", str(tmp_path / "override.db"))
        assert Config.load(path).db_path == str(tmp_path / "override.db")

    def test_tilde_expanded(self, tmp_path):
        cfg = Config.load(_write(tmp_path, "db_path: ~/tb.db\n"))
        assert cfg.db_path == str(Path.home() / "tb.db")


class TestConfigErrors:

    def test_non_mapping(self, tmp_path):
        with pytest.raises(ConfigError, match="mapping"):
            Config.load(_write(tmp_path, "- just\n- a list\n"))

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read config"):
            Config.load(_write(tmp_path, "slot_key: [unclosed\n"))

    def test_bad_log_level(self):
        with pytest.raises(ConfigError, match="log_level"):
            Config(log_level="LOUD").resolve()

    def test_bad_flush_timeout(self):
        with pytest.raises(ConfigError, match="flush_timeout"):
            Config(flush_timeout="soon").resolve()
        with pytest.raises(ConfigError, match=">= 0"):
            Config(flush_timeout=-1).resolve()

    def test_empty_slot_key(self):
        with pytest.raises(ConfigError, match="slot_key"):
            Config(slot_key="  ").resolve()


def test_configure_logging_installs_stdout_handler(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))
    configure_logging("debug")
    assert calls["level"] == logging.DEBUG
    assert "[taskboard]" in calls["format"]
    assert len(calls["handlers"]) == 1
