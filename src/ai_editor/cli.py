"""
ai-editor: ask an LLM for file changes with the project as context.

Overview
--------
The `generate` command scans the requested paths of a project, renders them
with the project tree into a prompt, sends it to Google Gemini and prints the
proposed changes as JSON:

    {"summary": "...", "thoughtProcess": "...",
     "changes": [{"filePath": "...", "action": "add|modify|delete", "newContent": "..."}]}

The other commands expose the steps on their own: `scan` prints what would be
sent, `structure` prints the project tree, `parse` validates a saved model
answer offline.

Configuration
-------------
GOOGLE_GEMINI_API_KEY, GOOGLE_GEMINI_MODEL, GOOGLE_GEMINI_API_URL,
AI_EDITOR_PRETTIER_BIN and AI_EDITOR_REQUEST_TIMEOUT are read from the
environment or from a `.env` file.

Usage
-----
    ai-editor scan src package.json --project-root ~/my-app
    ai-editor generate --project-root ~/my-app --scan-path src --prompt "Add a health endpoint"
    ai-editor parse answer.txt --no-format
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from ai_editor import __version__
from ai_editor.config import DEFAULT_STRUCTURE_IGNORES, ScanPolicy, load_scan_policy
from ai_editor.exceptions import AiEditorError, ConfigurationError
from ai_editor.formatting import NoopFormatter, PrettierFormatter
from ai_editor.gateway import GeminiGateway
from ai_editor.logging import logger, setup_logging
from ai_editor.models import DEFAULT_EXPECTED_OUTPUT_FORMAT, LlmInput, LlmOutput, ScanRequest
from ai_editor.parsing import local_repair, make_llm_repair, noop_repair, parse_llm_response
from ai_editor.pipeline import generate_content
from ai_editor.scanner import DirectoryScanner, generate_project_structure
from ai_editor.settings import Settings
from ai_editor.validation import validate_and_format

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from ai_editor.formatting import CodeFormatter
    from ai_editor.gateway import LlmGateway
    from ai_editor.parsing import RepairFn


def build_parser() -> argparse.ArgumentParser:
    """Build the `ai-editor` argument parser and its subcommands.

    Returns:
        argparse.ArgumentParser: Configured parser.
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--log-file", type=str, default=None, help="Log file path.")
    common.add_argument("--verbose", action="store_true", default=None, help="Log every scan decision.")
    common.add_argument("--output", type=Path, default=None, help="Output file (stdout when unset).")

    rooted = argparse.ArgumentParser(add_help=False)
    rooted.add_argument("--project-root", type=Path, default=None, help="Project root (default: cwd).")

    formatting = argparse.ArgumentParser(add_help=False)
    formatting.add_argument("--no-format", action="store_true", default=None, help="Do not run Prettier.")
    formatting.add_argument("--prettier-bin", type=str, default=None, help="Prettier command line.")

    p = argparse.ArgumentParser(
        prog="ai-editor",
        description="Scan a project, ask an LLM for file changes, validate the answer.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", parents=[common, rooted], help="Print the files a request would carry.")
    scan.add_argument("scan_paths", nargs="*", default=None, help="Files or directories (default: .).")
    scan.add_argument("--policy", type=Path, default=None, help="YAML scan policy file.")

    structure = sub.add_parser("structure", parents=[common, rooted], help="Print the project tree.")
    structure.add_argument(
        "--ignore",
        type=str,
        default=None,
        help=f"Comma list of names to leave out (default: {','.join(DEFAULT_STRUCTURE_IGNORES)}).",
    )

    generate = sub.add_parser(
        "generate",
        parents=[common, rooted, formatting],
        help="Ask the model for changes.",
    )
    prompt = generate.add_mutually_exclusive_group(required=True)
    prompt.add_argument("--prompt", type=str, default=None, help="User request.")
    prompt.add_argument("--prompt-file", type=Path, default=None, help="File holding the user request.")
    generate.add_argument(
        "--scan-path",
        dest="scan_paths",
        action="append",
        default=None,
        help="Path to scan, relative to the project root (repeatable).",
    )
    generate.add_argument("--instructions", type=str, default=None, help="Additional instructions.")
    generate.add_argument(
        "--output-format-file",
        type=Path,
        default=None,
        help="File describing the expected JSON answer.",
    )
    generate.add_argument("--policy", type=Path, default=None, help="YAML scan policy file.")
    generate.add_argument("--repair", choices=["local", "none", "llm"], default=None, help="JSON repair strategy.")
    generate.add_argument("--model", type=str, default=None, help="Gemini model.")

    parse = sub.add_parser("parse", parents=[common, formatting], help="Validate a saved model answer.")
    parse.add_argument("raw_file", type=Path, help="File holding the raw model answer.")
    parse.add_argument("--repair", choices=["local", "none"], default=None, help="JSON repair strategy.")
    return p


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    args = build_parser().parse_args(argv)
    try:
        return Settings(**{k: v for k, v in vars(args).items() if v is not None})
    except ValidationError as exc:
        raise ConfigurationError(source="settings", message=f"Invalid settings: {exc}") from exc


def read_text_arg(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(source=str(path), message=f"Cannot read {path}: {exc}") from exc


def build_policy(settings: Settings) -> ScanPolicy:
    return load_scan_policy(settings.policy) if settings.policy else ScanPolicy()


def build_formatter(settings: Settings) -> CodeFormatter:
    if settings.no_format:
        return NoopFormatter()
    return PrettierFormatter(settings.prettier_bin)


def build_repair(settings: Settings, gateway: LlmGateway | None = None) -> RepairFn:
    if settings.repair == "none":
        return noop_repair
    if settings.repair == "llm" and gateway is not None:
        return make_llm_repair(gateway)
    return local_repair


def dump_output(output: LlmOutput) -> str:
    return output.model_dump_json(by_alias=True, exclude_none=True, indent=2) + "\n"


def run_scan(settings: Settings) -> str:
    request = ScanRequest(
        scan_paths=settings.scan_paths or ["."],
        project_root=settings.project_root,
        verbose=settings.verbose,
    )
    result = DirectoryScanner(build_policy(settings)).run(request)
    return result.model_dump_json(by_alias=True, indent=2) + "\n"


def run_structure(settings: Settings) -> str:
    ignore = [x.strip() for x in settings.ignore.split(",") if x.strip()]
    return generate_project_structure(settings.project_root, ignore or DEFAULT_STRUCTURE_IGNORES).lstrip("\n") + "\n"


def run_generate(settings: Settings) -> str:
    user_prompt = settings.prompt or (read_text_arg(settings.prompt_file) if settings.prompt_file else "")
    expected = (
        read_text_arg(settings.output_format_file) if settings.output_format_file else DEFAULT_EXPECTED_OUTPUT_FORMAT
    )
    llm_input = LlmInput(
        user_prompt=user_prompt,
        project_root=settings.project_root.resolve(),
        additional_instructions=settings.instructions,
        expected_output_format=expected,
        scan_paths=settings.scan_paths or ["."],
    )
    gateway = GeminiGateway(
        settings.gemini_api_key,
        settings.model,
        base_url=settings.gemini_api_url,
        timeout=settings.request_timeout,
    )
    output = generate_content(
        llm_input,
        gateway=gateway,
        formatter=build_formatter(settings),
        policy=build_policy(settings),
        repair=build_repair(settings, gateway),
        verbose=settings.verbose,
    )
    return dump_output(output)


def run_parse(settings: Settings) -> str:
    if settings.raw_file is None:
        raise ConfigurationError(source="raw_file", message="parse needs a raw answer file.")
    raw = read_text_arg(settings.raw_file)
    output = parse_llm_response(raw, build_repair(settings))
    validate_and_format(output, build_formatter(settings))
    return dump_output(output)


COMMANDS: dict[str, Callable[[Settings], str]] = {
    "scan": run_scan,
    "structure": run_structure,
    "generate": run_generate,
    "parse": run_parse,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Run one `ai-editor` command.

    Args:
        argv (Sequence[str] | None): Optional CLI arguments.

    Returns:
        int: 0 on success, 1 for server-side failures, 2 for invalid model changes.
    """
    try:
        settings = parse_args(argv)
    except ConfigurationError as exc:
        logger.error("invalid_settings", error=str(exc))
        sys.stderr.write(f"error: {exc}\n")
        return 1
    if settings.log_file or settings.verbose:
        setup_logging(settings.log_file or None, verbose=settings.verbose, force=True)

    try:
        content = COMMANDS[settings.command](settings)
    except AiEditorError as exc:
        logger.error("command_failed", command=settings.command, error=str(exc), status_code=exc.status_code)
        sys.stderr.write(f"error: {exc}\n")
        return 2 if exc.status_code < 500 else 1  # noqa: PLR2004

    if settings.output is None:
        sys.stdout.write(content)
    else:
        settings.output.write_text(content, encoding="utf-8")
        logger.info("output_written", path=str(settings.output), command=settings.command)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
