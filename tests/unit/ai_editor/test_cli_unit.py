from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from ai_editor import __version__, cli
from ai_editor.formatting import NoopFormatter, PrettierFormatter
from ai_editor.parsing import local_repair, noop_repair
from ai_editor.settings import Settings

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.mark.unit
def test_parse_args_generate() -> None:
    settings = cli.parse_args(
        [
            "generate",
            "--prompt",
            "Add a health endpoint",
            "--scan-path",
            "src",
            "--scan-path",
            "README.md",
            "--repair",
            "llm",
            "--no-format",
            "--model",
            "gemini-x",
        ],
    )

    assert settings.command == "generate"
    assert settings.prompt == "Add a health endpoint"
    assert settings.scan_paths == ["src", "README.md"]
    assert settings.repair == "llm"
    assert settings.no_format is True
    assert settings.model == "gemini-x"


@pytest.mark.unit
def test_parse_args_generate_needs_a_prompt() -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["generate"])

    assert exc_info.value.code == 2


@pytest.mark.unit
def test_parse_args_scan_and_parse(tmp_path: Path) -> None:
    scan_settings = cli.parse_args(["scan", "src", "package.json", "--project-root", str(tmp_path)])
    parse_settings = cli.parse_args(["parse", "answer.txt", "--repair", "none"])

    assert scan_settings.command == "scan"
    assert scan_settings.scan_paths == ["src", "package.json"]
    assert scan_settings.project_root == tmp_path
    assert parse_settings.raw_file == Path("answer.txt")
    assert parse_settings.repair == "none"


@pytest.mark.unit
def test_parse_args_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["--version"])

    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


@pytest.mark.unit
def test_builders_follow_settings(mocker: MockerFixture) -> None:
    assert isinstance(cli.build_formatter(Settings(no_format=True)), NoopFormatter)
    prettier = cli.build_formatter(Settings(prettier_bin="npx prettier"))
    assert isinstance(prettier, PrettierFormatter)
    assert prettier.command == ["npx", "prettier"]

    assert cli.build_repair(Settings(repair="none")) is noop_repair
    assert cli.build_repair(Settings(repair="local")) is local_repair
    assert cli.build_repair(Settings(repair="llm")) is local_repair
    llm_repair = cli.build_repair(Settings(repair="llm"), mocker.Mock())
    assert llm_repair not in {local_repair, noop_repair}


@pytest.mark.unit
def test_main_scan_writes_output_file(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.py").write_text("print('hi')\n", encoding="utf-8")
    (tmp_path / "src" / "logo.png").write_bytes(b"\x89PNG")
    out = tmp_path / "scan.json"

    code = cli.main(["scan", "src", "--project-root", str(tmp_path), "--output", str(out)])

    assert code == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert [f["relativePath"] for f in data["files"]] == ["src/app.py"]
    assert data["files"][0]["content"] == "print('hi')\n"
    assert data["skipped"][0]["reason"] == "unsupported_type"


@pytest.mark.unit
def test_main_structure_prints_tree(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "b.txt").write_text("", encoding="utf-8")
    (tmp_path / "a").mkdir()
    (tmp_path / "a" / "c.md").write_text("", encoding="utf-8")

    code = cli.main(["structure", "--project-root", str(tmp_path), "--ignore", "b.txt"])

    assert code == 0
    assert capsys.readouterr().out == f"Project Structure (root: {tmp_path.name})\n- a\n  - c.md\n"


@pytest.mark.unit
def test_main_parse_valid_answer(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    raw = tmp_path / "answer.txt"
    raw.write_text(
        '```json\n{"summary": "ok", "changes": [{"filePath": "a.ts", "action": "delete"}]}\n```',
        encoding="utf-8",
    )

    code = cli.main(["parse", str(raw), "--no-format"])

    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data == {"changes": [{"filePath": "a.ts", "action": "delete"}], "summary": "ok"}


@pytest.mark.unit
def test_main_parse_invalid_change_exits_2(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    raw = tmp_path / "answer.txt"
    raw.write_text('{"summary": "s", "changes": [{"filePath": "a.ts", "action": "rename"}]}', encoding="utf-8")

    code = cli.main(["parse", str(raw), "--no-format"])

    assert code == 2
    assert "error: Invalid change object" in capsys.readouterr().err


@pytest.mark.unit
def test_main_parse_malformed_answer_exits_1(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    raw = tmp_path / "answer.txt"
    raw.write_text('{"summary": "s", "changes": [],}', encoding="utf-8")

    code = cli.main(["parse", str(raw), "--repair", "none", "--no-format"])

    assert code == 1
    assert "error: Invalid JSON response from LLM" in capsys.readouterr().err


@pytest.mark.unit
def test_main_parse_missing_file_exits_1(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(["parse", str(tmp_path / "missing.txt")])

    assert code == 1
    assert "Cannot read" in capsys.readouterr().err


@pytest.mark.unit
def test_main_bad_timeout_exits_1(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("AI_EDITOR_REQUEST_TIMEOUT", "soon")

    code = cli.main(["parse", str(tmp_path / "answer.txt")])

    assert code == 1
    assert "error: Invalid settings" in capsys.readouterr().err
