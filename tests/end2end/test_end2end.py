import json
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from ai_editor import cli


def test_end_to_end_generate(tmp_path: Path, mocker: MockerFixture) -> None:
    repo = tmp_path / "repo"
    (repo / "src").mkdir(parents=True)
    (repo / "src" / "server.js").write_text("app.listen(3000);\n", encoding="utf-8")
    (repo / "README.md").write_text("# Server\n", encoding="utf-8")
    prompt_file = tmp_path / "prompt.txt"
    prompt_file.write_text("Add a /health endpoint", encoding="utf-8")
    output = tmp_path / "changes.json"

    gateway = mocker.Mock()
    gateway.generate_text.return_value = (
        "Sure!\n```json\n"
        '{"summary": "health endpoint", "thoughtProcess": "add a route",'
        ' "changes": [{"filePath": "src/health.js", "action": "add",'
        ' "newContent": "module.exports = 1;\\n", "reason": "new route"}]}\n```'
    )
    gateway_cls = mocker.patch.object(cli, "GeminiGateway", return_value=gateway)

    exit_code = cli.main(
        [
            "generate",
            "--project-root",
            str(repo),
            "--prompt-file",
            str(prompt_file),
            "--scan-path",
            "src",
            "--model",
            "gemini-test",
            "--no-format",
            "--output",
            str(output),
        ],
    )

    assert exit_code == 0
    assert gateway_cls.call_args.args[1] == "gemini-test"
    prompt = gateway.generate_text.call_args.args[0]
    assert "Add a /health endpoint" in prompt
    assert "// File: src/server.js\napp.listen(3000);" in prompt
    assert "// File: README.md" not in prompt
    data = json.loads(output.read_text(encoding="utf-8"))
    assert data == {
        "changes": [
            {
                "filePath": "src/health.js",
                "action": "add",
                "newContent": "module.exports = 1;\n",
                "reason": "new route",
            },
        ],
        "summary": "health endpoint",
        "thoughtProcess": "add a route",
    }


def test_end_to_end_generate_gateway_failure(
    tmp_path: Path,
    mocker: MockerFixture,
    capsys: pytest.CaptureFixture[str],
) -> None:
    (tmp_path / "README.md").write_text("# Demo\n", encoding="utf-8")
    mocker.patch.dict("os.environ", {"GOOGLE_GEMINI_API_KEY": "", "GOOGLE_GEMINI_MODEL": ""})

    exit_code = cli.main(["generate", "--project-root", str(tmp_path), "--prompt", "x", "--no-format"])

    assert exit_code == 1
    assert "GOOGLE_GEMINI_API_KEY" in capsys.readouterr().err


def test_end_to_end_scan(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "mod.py").write_text("x = 1\n", encoding="utf-8")
    (tmp_path / "pkg" / "yarn.lock").write_text("", encoding="utf-8")

    exit_code = cli.main(["scan", "--project-root", str(tmp_path)])

    assert exit_code == 0
    data = json.loads(capsys.readouterr().out)
    assert [f["relativePath"] for f in data["files"]] == ["pkg/mod.py"]
    assert {s["reason"] for s in data["skipped"]} == {"excluded_file"}
