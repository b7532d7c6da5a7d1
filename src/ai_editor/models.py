from __future__ import annotations

from enum import StrEnum, auto
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_EXPECTED_OUTPUT_FORMAT = """\
Respond with a single JSON object inside a ```json fenced block, shaped as:
{
  "summary": "A brief summary of the proposed changes.",
  "thoughtProcess": "Detailed explanation of the reasoning and steps taken.",
  "changes": [
    {
      "filePath": "path/relative/to/project/root.ts",
      "action": "add" | "modify" | "delete",
      "newContent": "Full new file content for 'add'/'modify'",
      "reason": "Optional: explanation for this specific change"
    }
  ]
}"""

DEFAULT_SUMMARY = "Changes proposed by AI (summary not provided by LLM)."
DEFAULT_THOUGHT_PROCESS = (
    "LLM returned only the changes array, so a default summary and thought process are provided."
)


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileAction(StrEnum):
    """What a proposed change does to its file."""

    ADD = auto()
    MODIFY = auto()
    DELETE = auto()


class SkipReason(StrEnum):
    """Why the scanner left a path out."""

    EXCLUDED_DIR = auto()
    EXCLUDED_FILE = auto()
    UNSUPPORTED_TYPE = auto()
    DUPLICATE = auto()
    UNREADABLE = auto()
    INACCESSIBLE = auto()
    NOT_FILE_OR_DIR = auto()


class ScannedFile(_WireModel):
    """A file picked up by the scanner, with its text content.

    Attributes:
        file_path: Absolute path to the file on disk.
        relative_path: Path relative to the project root, with POSIX separators.
        content: UTF-8 decoded file content.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    file_path: Path = Field(..., description="Absolute file path")
    relative_path: str = Field(..., description="File path relative to the project root")
    content: str = Field(..., description="File content")


class SkippedEntry(_WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    path: Path
    reason: SkipReason
    detail: str = ""


class ScanResult(_WireModel):
    """Everything one scan saw: the files it kept and the paths it left out."""

    files: list[ScannedFile] = Field(default_factory=list)
    skipped: list[SkippedEntry] = Field(default_factory=list)


class ScanRequest(_WireModel):
    scan_paths: list[str] = Field(default_factory=lambda: ["."])
    project_root: Path = Field(default_factory=Path.cwd)
    verbose: bool = False


class LlmInput(_WireModel):
    """Everything the prompt is built from.

    `relevant_files` and `project_structure` are normally filled in by the
    pipeline from `scan_paths` and `project_root`.
    """

    user_prompt: str = Field(..., description="The user's request to the AI.")
    project_root: Path = Field(..., description="Absolute path of the project being edited.")
    project_structure: str = Field(default="", description="Free-text overview of the project tree.")
    relevant_files: list[ScannedFile] = Field(default_factory=list)
    additional_instructions: str = Field(default="", description="Behaviour and style constraints.")
    expected_output_format: str = Field(
        default=DEFAULT_EXPECTED_OUTPUT_FORMAT,
        description="Description of the JSON shape the model must answer with.",
    )
    scan_paths: list[str] = Field(default_factory=list, description="Paths to scan, relative to project_root.")


class ProposedFileChange(_WireModel):
    """One file mutation suggested by the model.

    `action` keeps the text the model sent so that an unknown action is
    reported by the validator rather than rejected while parsing.
    """

    file_path: str | None = None
    action: str | None = None
    new_content: str | None = None
    reason: str | None = None

    @property
    def file_action(self) -> FileAction | None:
        """The action as a `FileAction`, or None if it is not one of them."""
        try:
            return FileAction(self.action)
        except ValueError:
            return None


class LlmOutput(_WireModel):
    changes: list[ProposedFileChange] = Field(default_factory=list)
    summary: str
    thought_process: str | None = None
