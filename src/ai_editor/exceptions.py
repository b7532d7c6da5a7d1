from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar


@dataclass(frozen=True)
class AiEditorError(Exception):
    """Base exception for errors in the ai_editor package.

    `status_code` tells the caller whether the failure is server-shaped (500)
    or request-shaped (400).
    """

    status_code: ClassVar[int] = 500

    message: str = "ai_editor failure."

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ScanIOError(AiEditorError):
    """Raised when a scanned file or directory cannot be read.

    The scanner never lets it escape: it becomes a skipped entry.
    """

    path: Path = field(default_factory=Path)
    message: str = "Could not read path during scan."


@dataclass(frozen=True)
class ProjectStructureError(AiEditorError):
    """Raised when the project tree cannot be listed."""

    root: Path = field(default_factory=Path)
    message: str = "Could not generate project structure."


@dataclass(frozen=True)
class ConfigurationError(AiEditorError):
    """Raised when a settings or scan policy source is invalid."""

    source: str = ""
    message: str = "Invalid configuration."


@dataclass(frozen=True)
class LlmGatewayError(AiEditorError):
    """Raised when the text-generation service fails or returns nothing."""

    status: int | None = None
    body: str = ""
    message: str = "Failed to get response from the LLM gateway."


@dataclass(frozen=True)
class MalformedResponseError(AiEditorError):
    """Raised when the model output cannot be turned into an `LlmOutput`."""

    raw: str = ""
    parse_error: str = ""
    repair_error: str = ""
    message: str = "Invalid JSON response from LLM."


@dataclass(frozen=True)
class InvalidChangeError(AiEditorError):
    """Raised when a proposed change has no path or an unknown action."""

    status_code: ClassVar[int] = 400

    change: str = ""
    message: str = "Invalid change object received from LLM: missing filePath or invalid action."


@dataclass(frozen=True)
class FormatterError(AiEditorError):
    """Raised by a code formatter; the validator logs it and keeps the original content."""

    language: str = ""
    message: str = "Code formatting failed."
