from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from ct2_session import telemetry


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    # Pytest uses exit code 5 when no tests are collected; a filtered run
    # (`-k`) that selects nothing should not fail the gate.
    if exitstatus == 5:
        session.exitstatus = 0


def pytest_ignore_collect(collection_path: Path, config: pytest.Config) -> bool:
    del config
    ignored_parts = {
        ".uv-cache",
        ".venv",
        "__pycache__",
        "build",
    }
    return any(part in collection_path.parts for part in ignored_parts)


@pytest.fixture(autouse=True)
def _isolated_telemetry(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Iterator[Path]:
    log_dir = tmp_path / "logs"
    telemetry.disable_file_log()
    monkeypatch.setenv("CT2_SESSION_LOG_DIR", str(log_dir))
    monkeypatch.delenv("CT2_SESSION_LOGGING", raising=False)
    monkeypatch.delenv("CT2_SESSION_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    yield log_dir
    telemetry.disable_file_log()
