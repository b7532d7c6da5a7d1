from __future__ import annotations

import subprocess  # noqa: S404
from typing import TYPE_CHECKING

import pytest

from ai_editor.exceptions import FormatterError
from ai_editor.formatting import PRETTIER_OPTIONS, PrettierFormatter

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.mark.unit
def test_detect_language_returns_plain_names() -> None:
    formatter = PrettierFormatter()

    assert formatter.detect_language("src/app.ts") == "typescript"
    assert formatter.detect_language("image.bin") is None


@pytest.mark.unit
def test_command_string_is_split() -> None:
    formatter = PrettierFormatter("npx prettier")

    assert formatter.build_command("babel") == ["npx", "prettier", "--parser", "babel", *PRETTIER_OPTIONS]


@pytest.mark.unit
def test_xml_gets_plugin() -> None:
    cmd = PrettierFormatter().build_command("xml")

    assert cmd[-2:] == ["--plugin", "@prettier/plugin-xml"]


@pytest.mark.unit
def test_language_without_parser_passes_through(mocker: MockerFixture) -> None:
    run = mocker.patch("ai_editor.formatting.subprocess.run")

    assert PrettierFormatter().format_code("print(1)", "python") == "print(1)"
    assert PrettierFormatter().format_code("x", "not-a-language") == "x"
    run.assert_not_called()


@pytest.mark.unit
def test_format_code_runs_prettier(mocker: MockerFixture) -> None:
    mocker.patch("ai_editor.formatting.which", return_value="/usr/bin/prettier")
    run = mocker.patch(
        "ai_editor.formatting.subprocess.run",
        return_value=subprocess.CompletedProcess(args=[], returncode=0, stdout="const a = 1;\n", stderr=""),
    )

    result = PrettierFormatter(timeout=5.0).format_code("const a=1", "javascript")

    assert result == "const a = 1;\n"
    args, kwargs = run.call_args
    assert args[0][:3] == ["prettier", "--parser", "babel"]
    assert kwargs["input"] == "const a=1"
    assert kwargs["timeout"] == 5.0
    assert kwargs["check"] is True
    assert kwargs["encoding"] == "utf-8"


@pytest.mark.unit
def test_missing_prettier_raises(mocker: MockerFixture) -> None:
    mocker.patch("ai_editor.formatting.which", return_value=None)

    with pytest.raises(FormatterError) as exc_info:
        PrettierFormatter().format_code("{}", "json")

    assert "not found in PATH" in str(exc_info.value)
    assert exc_info.value.language == "json"


@pytest.mark.unit
@pytest.mark.parametrize(
    "error",
    [
        subprocess.CalledProcessError(2, ["prettier"], output="", stderr="SyntaxError: Unexpected token"),
        subprocess.TimeoutExpired(["prettier"], 30),
        OSError("exec format error"),
    ],
)
def test_prettier_failures_raise(mocker: MockerFixture, error: Exception) -> None:
    mocker.patch("ai_editor.formatting.which", return_value="/usr/bin/prettier")
    mocker.patch("ai_editor.formatting.subprocess.run", side_effect=error)

    with pytest.raises(FormatterError):
        PrettierFormatter().format_code("a {", "css")
