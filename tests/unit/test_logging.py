"""Tests for structlog configuration."""

from __future__ import annotations

import json

from kubetopo.observability.logging import get_logger, setup_logging


class TestSetupLogging:
    def test_json_lines_to_stderr(self, capsys) -> None:
        setup_logging("info")
        get_logger("test").info("topology_built", applications=3)
        err = capsys.readouterr().err.strip().splitlines()
        entry = json.loads(err[-1])
        assert entry["event"] == "topology_built"
        assert entry["component"] == "test"
        assert entry["level"] == "info"
        assert entry["applications"] == 3
        assert entry["ts"].endswith("Z")

    def test_level_filters(self, capsys) -> None:
        setup_logging("warning")
        get_logger("test").info("quiet")
        get_logger("test").warning("loud")
        err = capsys.readouterr().err
        assert "quiet" not in err
        assert "loud" in err

    def test_console_format(self, capsys) -> None:
        setup_logging("info", "console")
        get_logger("test").info("hello", answer=42)
        err = capsys.readouterr().err
        assert "hello" in err
        assert "answer=42" in err
        assert not err.lstrip().startswith("{")
