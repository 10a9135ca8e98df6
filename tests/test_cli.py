from __future__ import annotations

import json
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from ctxpack import __version__
from ctxpack.main import app


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    ws = tmp_path / "ws"
    (ws / "src").mkdir(parents=True)
    (ws / "node_modules").mkdir()
    (ws / "main.py").write_text("import os\n\ndef main():\n    return os.getcwd()\n", encoding="utf-8")
    (ws / "src" / "util.ts").write_text("export const x = () => 1;\n", encoding="utf-8")
    (ws / "node_modules" / "dep.js").write_text("module.exports = {};\n", encoding="utf-8")
    (ws / "README.md").write_text("# ws\n", encoding="utf-8")
    return ws


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


@pytest.mark.parametrize("command", ["gather", "scan", "estimate", "watch", "config", "version"])
def test_help(runner: CliRunner, command: str) -> None:
    result = runner.invoke(app, [command, "--help"])
    assert result.exit_code == 0


def test_gather_json(runner: CliRunner, workspace: Path) -> None:
    result = runner.invoke(
        app,
        [
            "gather",
            str(workspace),
            "--current",
            "main.py",
            "--line",
            "2",
            "--open",
            "src/util.ts",
            "--open",
            "main.py",
            "--project",
            "--json",
        ],
    )
    assert result.exit_code == 0, result.output

    package = json.loads(result.stdout)
    current = package["current_file"]
    assert current["path"].endswith("main.py")
    assert current["language"] == "python"
    assert current["cursor"] == {"line": 2, "column": 0}
    assert [Path(f["path"]).name for f in package["other_open_files"]] == ["util.ts"]
    assert package["recent_edits"] == []

    summary = package["project_summary"]
    assert summary["project_name"] == "ws"
    assert [Path(p).name for p in summary["source_files"]] == ["util.ts", "main.py"]


def test_gather_tiny_budget_truncates(runner: CliRunner, workspace: Path) -> None:
    result = runner.invoke(
        app, ["gather", str(workspace), "--current", "main.py", "-t", "4", "--json"]
    )
    assert result.exit_code == 0, result.output
    content = json.loads(result.stdout)["current_file"]["content"]
    assert content.endswith("... [truncated]")


def test_gather_seeds_recent_edits(runner: CliRunner, workspace: Path) -> None:
    result = runner.invoke(app, ["gather", str(workspace), "--recent", "5", "--json"])
    assert result.exit_code == 0, result.output

    edits = json.loads(result.stdout)["recent_edits"]
    assert len(edits) == 2
    assert all(e["description"].startswith("File saved: ") for e in edits)
    assert not any("node_modules" in e["file_path"] for e in edits)


def test_recent_edits_follow_configured_source_files(
    runner: CliRunner, isolate_config: Path, workspace: Path
) -> None:
    isolate_config.write_text('[context]\nsource_extensions = ["md"]\n', encoding="utf-8")

    result = runner.invoke(app, ["gather", str(workspace), "--recent", "5", "--project", "--json"])

    assert result.exit_code == 0, result.output
    package = json.loads(result.stdout)
    assert [e["description"] for e in package["recent_edits"]] == ["File saved: README.md"]
    assert [Path(p).name for p in package["project_summary"]["source_files"]] == ["README.md"]


def test_gather_table(runner: CliRunner, workspace: Path, capture_console: Console) -> None:
    result = runner.invoke(app, ["gather", str(workspace), "--current", "main.py"])
    assert result.exit_code == 0, result.output

    text = capture_console.export_text()
    assert "Context package" in text
    assert "Estimated tokens" in text


def test_gather_missing_root(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(app, ["gather", str(tmp_path / "missing"), "--json"])
    assert result.exit_code == 1


def test_scan_json(runner: CliRunner, workspace: Path) -> None:
    result = runner.invoke(app, ["scan", str(workspace), "--json"])
    assert result.exit_code == 0, result.output

    summary = json.loads(result.stdout)
    assert summary["project_name"] == "ws"
    assert summary["source_files"] == [
        str(workspace.resolve() / "src" / "util.ts"),
        str(workspace.resolve() / "main.py"),
    ]


def test_scan_table(runner: CliRunner, workspace: Path, capture_console: Console) -> None:
    result = runner.invoke(app, ["scan", str(workspace)])
    assert result.exit_code == 0, result.output
    assert "2 source files" in capture_console.export_text()


def test_estimate_with_budget(runner: CliRunner, workspace: Path, capture_console: Console) -> None:
    result = runner.invoke(
        app,
        ["estimate", str(workspace / "main.py"), str(workspace / "src" / "util.ts"), "-b", "1000"],
    )
    assert result.exit_code == 0, result.output

    text = capture_console.export_text()
    assert "Token estimates" in text
    assert "Total:" in text
    assert "Remaining:" in text


def test_config_shows_values(runner: CliRunner, capture_console: Console) -> None:
    result = runner.invoke(app, ["config"])
    assert result.exit_code == 0, result.output
    text = capture_console.export_text()
    assert "context.default_max_tokens" in text
    assert "4000" in text


def test_config_safe_mode(runner: CliRunner, isolate_config: Path, capture_console: Console) -> None:
    isolate_config.write_text("[context]\ndefault_max_tokens = -1\n", encoding="utf-8")

    result = runner.invoke(app, ["config"])

    assert result.exit_code == 0, result.output
    assert "Safe Mode" in capture_console.export_text()


def test_config_file_budget_applies_to_gather(
    runner: CliRunner, isolate_config: Path, workspace: Path
) -> None:
    isolate_config.write_text("[context]\ndefault_max_tokens = 4\n", encoding="utf-8")

    result = runner.invoke(app, ["gather", str(workspace), "--current", "main.py", "--json"])

    assert result.exit_code == 0, result.output
    content = json.loads(result.stdout)["current_file"]["content"]
    assert content.endswith("... [truncated]")


def test_watch_with_zero_duration(runner: CliRunner, workspace: Path, capture_console: Console) -> None:
    result = runner.invoke(app, ["watch", str(workspace), "--duration", "0"])
    assert result.exit_code == 0, result.output
    assert "Watching" in capture_console.export_text()
