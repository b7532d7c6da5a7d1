from __future__ import annotations

import mimetypes
from enum import StrEnum, auto
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ai_editor.exceptions import ConfigurationError


class Language(StrEnum):
    """Source languages the change formatter knows about.

    Values double as the language names handed to the formatter.
    """

    JAVASCRIPT = auto()
    TYPESCRIPT = auto()
    JSON = auto()
    HTML = auto()
    EJS = auto()
    HANDLEBARS = auto()
    CSS = auto()
    SCSS = auto()
    LESS = auto()
    MARKDOWN = auto()
    PYTHON = auto()
    JAVA = auto()
    CPP = auto()
    CSHARP = auto()
    RUST = auto()
    SHELL = auto()
    YAML = auto()
    XML = auto()
    PLAINTEXT = auto()
    GO = auto()
    PHP = auto()
    VUE = auto()
    SVELTE = auto()
    SQL = auto()


EXT2LANG: dict[str, Language] = {
    ".cpp": Language.CPP,
    ".cs": Language.CSHARP,
    ".css": Language.CSS,
    ".ejs": Language.EJS,
    ".go": Language.GO,
    ".hbs": Language.HANDLEBARS,
    ".html": Language.HTML,
    ".java": Language.JAVA,
    ".js": Language.JAVASCRIPT,
    ".json": Language.JSON,
    ".jsx": Language.JAVASCRIPT,
    ".less": Language.LESS,
    ".md": Language.MARKDOWN,
    ".php": Language.PHP,
    ".py": Language.PYTHON,
    ".rs": Language.RUST,
    ".scss": Language.SCSS,
    ".sh": Language.SHELL,
    ".sql": Language.SQL,
    ".svelte": Language.SVELTE,
    ".ts": Language.TYPESCRIPT,
    ".tsx": Language.TYPESCRIPT,
    ".txt": Language.PLAINTEXT,
    ".vue": Language.VUE,
    ".xml": Language.XML,
    ".yaml": Language.YAML,
    ".yml": Language.YAML,
}

MIME2LANG: dict[str, Language] = {
    "application/json": Language.JSON,
    "application/javascript": Language.JAVASCRIPT,
    "application/x-sh": Language.SHELL,
    "application/x-typescript": Language.TYPESCRIPT,
    "application/x-yaml": Language.YAML,
    "application/xml": Language.XML,
    "text/css": Language.CSS,
    "text/html": Language.HTML,
    "text/javascript": Language.JAVASCRIPT,
    "text/markdown": Language.MARKDOWN,
    "text/plain": Language.PLAINTEXT,
    "text/typescript": Language.TYPESCRIPT,
    "text/x-python": Language.PYTHON,
}

# Prettier only ships parsers for the web-ish languages; the rest pass through unformatted.
PRETTIER_PARSER: dict[Language, str] = {
    Language.JAVASCRIPT: "babel",
    Language.TYPESCRIPT: "typescript",
    Language.JSON: "json",
    Language.HTML: "html",
    Language.EJS: "html",
    Language.HANDLEBARS: "html",
    Language.CSS: "css",
    Language.SCSS: "scss",
    Language.LESS: "less",
    Language.MARKDOWN: "markdown",
    Language.YAML: "yaml",
    Language.XML: "xml",
}

PRETTIER_PLUGINS: dict[str, list[str]] = {
    "xml": ["@prettier/plugin-xml"],
}

DEFAULT_EXCLUDED_DIR_NAMES = frozenset(
    {
        "node_modules",
        ".git",
        ".vscode",
        ".idea",
        "dist",
        "build",
        "out",
        "coverage",
        "__pycache__",
        "venv",
        "target",
        "vendor",
        ".ai-editor-logs",
    },
)

DEFAULT_EXCLUDED_FILE_NAMES = frozenset(
    {
        "package-lock.json",
        "yarn.lock",
        "pnpm-lock.yaml",
        ".DS_Store",
    },
)

DEFAULT_ALLOWED_EXTENSIONS = frozenset(
    {
        ".ts",
        ".tsx",
        ".js",
        ".jsx",
        ".json",
        ".md",
        ".yml",
        ".html",
        ".css",
        ".scss",
        ".less",
        ".cjs",
        ".mjs",
        ".toml",
        ".xml",
        ".jsonc",
        ".vue",
        ".svelte",
        ".graphql",
        ".gql",
        ".sql",
        ".py",
        ".rb",
        ".go",
        ".java",
        ".c",
        ".cpp",
        ".cs",
        ".php",
        ".sh",
        ".bash",
        ".zsh",
        ".env",
        ".txt",
    },
)

DEFAULT_ALLOWED_FILENAMES = frozenset(
    {
        "package.json",
        "tsconfig.json",
        "vite.config.ts",
        "webpack.config.js",
        "rollup.config.js",
        "tailwind.config.ts",
        ".gitignore",
        ".eslintrc.js",
        ".prettierrc.js",
        "Dockerfile",
        "Makefile",
        "LICENSE",
        "README.md",
        "README.txt",
        "biome.json",
        "jest.config.ts",
        ".env.local",
        ".env.development",
        ".env.production",
    },
)

DEFAULT_STRUCTURE_IGNORES = ("node_modules", ".git", "dist", "build")


class ScanPolicy(BaseModel):
    """Inclusion and exclusion rules applied by the directory scanner.

    Attributes:
        excluded_dir_names: Directory basenames that are never descended into.
        excluded_file_names: File basenames that are always skipped.
        allowed_extensions: Lowercase extensions (with the dot) of files to keep.
        allowed_filenames: Exact basenames kept whatever their extension.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    excluded_dir_names: frozenset[str] = Field(default=DEFAULT_EXCLUDED_DIR_NAMES)
    excluded_file_names: frozenset[str] = Field(default=DEFAULT_EXCLUDED_FILE_NAMES)
    allowed_extensions: frozenset[str] = Field(default=DEFAULT_ALLOWED_EXTENSIONS)
    allowed_filenames: frozenset[str] = Field(default=DEFAULT_ALLOWED_FILENAMES)

    @field_validator("allowed_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: Any) -> Any:  # noqa: ANN401
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(
                (ext if ext.startswith(".") else f".{ext}").lower() for ext in value if isinstance(ext, str) and ext
            )
        return value

    def is_excluded_dir(self, name: str) -> bool:
        return name in self.excluded_dir_names

    def is_excluded_file(self, name: str) -> bool:
        return name in self.excluded_file_names

    def is_relevant_file(self, name: str) -> bool:
        """Tell whether a walked file should be read, by extension or exact name."""
        return Path(name).suffix.lower() in self.allowed_extensions or name in self.allowed_filenames


def load_scan_policy(path: Path) -> ScanPolicy:
    """Load a scan policy from a YAML file.

    Every key present replaces the matching default set; missing keys keep
    their defaults.

    Args:
        path (Path): YAML file with any of `excluded_dir_names`, `excluded_file_names`,
            `allowed_extensions`, `allowed_filenames` as lists of strings.

    Raises:
        ConfigurationError: If the file cannot be read, is not a mapping, or has unknown keys.

    Returns:
        ScanPolicy: The resulting policy.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(source=str(path), message=f"Cannot read scan policy {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(source=str(path), message=f"Scan policy {path} must be a mapping.")
    try:
        return ScanPolicy.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(source=str(path), message=f"Invalid scan policy {path}: {exc}") from exc


def detect_language(file_path: str | Path, mime_type: str | None = None) -> Language | None:
    """Guess the source language of a file from its extension, then its MIME type.

    Args:
        file_path (str | Path): Path or bare file name.
        mime_type (str | None): Known MIME type, looked up from the name when omitted.

    Returns:
        Language | None: The detected language, or None if unknown.
    """
    if not file_path:
        return None
    path = Path(file_path)
    lang = EXT2LANG.get(path.suffix.lower())
    if lang is not None:
        return lang
    detected = mime_type or mimetypes.guess_type(path.name)[0]
    if detected:
        return MIME2LANG.get(detected.split(";")[0].strip().lower())
    return None
