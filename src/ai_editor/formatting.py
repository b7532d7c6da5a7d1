from __future__ import annotations

import shlex
import subprocess  # noqa: S404
from shutil import which
from typing import TYPE_CHECKING, Protocol

from ai_editor.config import PRETTIER_PARSER, PRETTIER_PLUGINS, Language, detect_language
from ai_editor.exceptions import FormatterError
from ai_editor.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

PRETTIER_OPTIONS = ("--single-quote", "--trailing-comma", "all", "--print-width", "100")


class CodeFormatter(Protocol):
    """Language detection plus formatting for proposed file contents."""

    def detect_language(self, file_path: str | Path) -> str | None: ...

    def format_code(self, content: str, language: str) -> str: ...


class NoopFormatter:
    """Formatter used when formatting is switched off: it never detects a language."""

    def detect_language(self, file_path: str | Path) -> str | None:  # noqa: ARG002, PLR6301
        return None

    def format_code(self, content: str, language: str) -> str:  # noqa: ARG002, PLR6301
        return content


class PrettierFormatter:
    """Format code by piping it through the Prettier CLI.

    Languages without a Prettier parser come back unchanged.
    """

    def __init__(self, command: str | Sequence[str] = "prettier", *, timeout: float = 30.0) -> None:
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        self.timeout = timeout

    def detect_language(self, file_path: str | Path) -> str | None:  # noqa: PLR6301
        lang = detect_language(file_path)
        return str(lang) if lang is not None else None

    def build_command(self, parser: str) -> list[str]:
        cmd = [*self.command, "--parser", parser, *PRETTIER_OPTIONS]
        for plugin in PRETTIER_PLUGINS.get(parser, []):
            cmd.extend(["--plugin", plugin])
        return cmd

    def format_code(self, content: str, language: str) -> str:
        """Run Prettier on `content` with the parser registered for `language`.

        Args:
            content (str): source text to format
            language (str): language name as returned by `detect_language`

        Raises:
            FormatterError: if Prettier is missing, fails, or times out.

        Returns:
            str: the formatted text, or `content` unchanged when no parser applies
        """
        try:
            parser = PRETTIER_PARSER.get(Language(language))
        except ValueError:
            parser = None
        if parser is None:
            logger.warning("no_prettier_parser", language=language)
            return content

        if not self.command or which(self.command[0]) is None:
            raise FormatterError(language=language, message=f"`{' '.join(self.command)}` not found in PATH")

        try:
            out = subprocess.run(  # noqa: S603
                self.build_command(parser),
                input=content,
                text=True,
                encoding="utf-8",
                capture_output=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as exc:
            raise FormatterError(
                language=language,
                message=f"Prettier failed for {language} (parser {parser}): {exc.stderr.strip()}",
            ) from exc
        except (subprocess.TimeoutExpired, OSError) as exc:
            raise FormatterError(language=language, message=f"Prettier failed for {language}: {exc}") from exc
        return out.stdout
