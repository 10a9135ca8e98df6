from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console
from typer.testing import CliRunner

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def isolate_config(tmp_path: Path, monkeypatch: Any) -> Path:
    """Point config to a temp path so tests don't read the user's ~/.ctxpack.toml."""
    cfg_path = tmp_path / "config.toml"
    monkeypatch.setenv("CTXPACK_CONFIG", str(cfg_path))
    for key in ("CTXPACK_LOG_LEVEL", "CTXPACK_CONTEXT__DEFAULT_MAX_TOKENS"):
        monkeypatch.delenv(key, raising=False)
    return cfg_path


@pytest.fixture
def capture_console(monkeypatch: Any) -> Console:
    """Use a wide in-memory Rich console for CLI output assertions."""
    test_console = Console(record=True, width=240)
    import ctxpack.commands.context as context_cmd
    import ctxpack.commands.watch as watch_cmd
    import ctxpack.core.console as core_console
    import ctxpack.main as ctx_main

    for module in (core_console, ctx_main, context_cmd, watch_cmd):
        monkeypatch.setattr(module, "console", test_console)
    return test_console
