# RCD - tests - logging
# Copyright (C) 2025  Clyso GmbH
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.

from pathlib import Path

import pytest

from rcdlib.config.server import LogsConfig, ServerConfig
from rcdlib.logger import logging_config, uvicorn_logging_config


@pytest.fixture(autouse=True)
def _no_debug_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RCD_DEBUG", raising=False)


def test_console_only_by_default() -> None:
    cfg = logging_config(LogsConfig())
    assert list(cfg["handlers"]) == ["console"]
    assert cfg["handlers"]["console"]["level"] == "INFO"
    assert cfg["root"] == {"level": "INFO", "handlers": ["console"]}
    assert cfg["loggers"]["httpx"]["level"] == "WARNING"


def test_file_handler_from_server_config(tmp_path: Path) -> None:
    server = ServerConfig.model_validate(
        {
            "db": str(tmp_path / "rcd.db"),
            "logs": {
                "level": "WARNING",
                "file": str(tmp_path / "rcd.log"),
                "file-level": "INFO",
                "max-bytes": 1024,
                "backup-count": 3,
            },
        }
    )
    cfg = logging_config(server.logs)

    log_file = cfg["handlers"]["log_file"]
    assert log_file["filename"] == str(tmp_path / "rcd.log")
    assert log_file["level"] == "INFO"
    assert log_file["maxBytes"] == 1024
    assert log_file["backupCount"] == 3
    assert cfg["handlers"]["console"]["level"] == "WARNING"
    # the root logger lets through what the file handler wants.
    assert cfg["root"] == {"level": "INFO", "handlers": ["console", "log_file"]}


def test_debug_env_overrides_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RCD_DEBUG", "1")
    logs = LogsConfig(level="ERROR")

    cfg = logging_config(logs)
    assert cfg["handlers"]["console"]["level"] == "DEBUG"
    assert cfg["root"]["level"] == "DEBUG"
    assert cfg["loggers"]["httpx"]["level"] == "INFO"

    uv = uvicorn_logging_config(logs)
    assert uv["handlers"]["access"]["level"] == "DEBUG"


def test_uvicorn_config_keeps_uvicorn_defaults() -> None:
    uv = uvicorn_logging_config(LogsConfig(level="WARNING"))
    assert uv["handlers"]["default"]["level"] == "WARNING"
    # merged on top of uvicorn's own config, not replacing it.
    assert "class" in uv["handlers"]["default"]
    assert "uvicorn.access" in uv["loggers"]
    assert uv["formatters"]["access"]["fmt"].endswith("%(status_code)s")


def test_unknown_level_rejected() -> None:
    with pytest.raises(ValueError, match="level"):
        _ = LogsConfig.model_validate({"level": "LOUD"})
