from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import Result
from typer.testing import CliRunner

from signalwatch.cli.main import create_app

_ENV_OVERRIDES = (
    "SIGNALWATCH_BASE_DIR",
    "SIGNALWATCH_DEFAULT_CURRENCY",
    "SIGNALWATCH_DEDUPE_SECONDS",
    "SIGNALWATCH_STALE_LIMIT",
    "SIGNALWATCH_LOGGING_LEVEL",
    "SIGNALWATCH_LOGGING_FILE",
)

Invoke = Callable[..., Result]


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def invoke(runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Invoke:
    """Run the CLI against a store rooted at ``tmp_path`` with no user configuration."""

    for name in _ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)

    def _invoke(*args: str) -> Result:
        base = ["--base-dir", str(tmp_path), "--config", str(tmp_path / "config.toml"), "--log-level", "ERROR"]
        return runner.invoke(create_app(), [*base, *args])

    return _invoke


@pytest.fixture()
def tick_file(tmp_path: Path) -> Callable[[str, str], Path]:
    def _write(channel_id: str, text: str) -> Path:
        path = tmp_path / "tick" / f"{channel_id}.txt"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
