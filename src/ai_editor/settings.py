from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field

ENV_FILE = find_dotenv(usecwd=True)
if ENV_FILE:
    load_dotenv(ENV_FILE)


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


class Settings(BaseModel):
    """Configuration settings for the ai_editor CLI.

    Values come from the parsed command line; service credentials and tool
    locations fall back to the environment (and a `.env` file, if found).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    command: Literal["scan", "structure", "generate", "parse"] = Field(
        default="generate",
        description="Subcommand to run.",
    )
    project_root: Path = Field(default_factory=Path.cwd, description="Project root.")
    scan_paths: list[str] = Field(default_factory=list, description="Paths to scan.")
    verbose: bool = Field(default=False, description="Log every scan decision.")
    log_file: str = Field(default="", description="Log file path.")
    output: Path | None = Field(default=None, description="Output file (stdout when unset).")
    policy: Path | None = Field(default=None, description="YAML scan policy file.")
    ignore: str = Field(default="", description="Comma list of names to leave out of the tree.")

    prompt: str = Field(default="", description="User request.")
    prompt_file: Path | None = Field(default=None, description="File holding the user request.")
    instructions: str = Field(default="", description="Additional instructions for the model.")
    output_format_file: Path | None = Field(
        default=None,
        description="File describing the expected JSON answer.",
    )
    raw_file: Path | None = Field(default=None, description="Saved model answer to parse.")
    repair: Literal["local", "none", "llm"] = Field(default="local", description="JSON repair strategy.")
    no_format: bool = Field(default=False, description="Do not run the code formatter.")

    gemini_api_key: str = Field(default_factory=lambda: _env("GOOGLE_GEMINI_API_KEY"))
    model: str = Field(default_factory=lambda: _env("GOOGLE_GEMINI_MODEL"), description="Gemini model.")
    gemini_api_url: str = Field(
        default_factory=lambda: _env(
            "GOOGLE_GEMINI_API_URL",
            "https://generativelanguage.googleapis.com/v1beta/models",
        ),
    )
    request_timeout: float = Field(
        default_factory=lambda: _env("AI_EDITOR_REQUEST_TIMEOUT") or "240",
        validate_default=True,
        description="Gemini request timeout in seconds.",
    )
    prettier_bin: str = Field(
        default_factory=lambda: _env("AI_EDITOR_PRETTIER_BIN", "prettier") or "prettier",
        description="Prettier command line.",
    )
