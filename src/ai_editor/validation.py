from __future__ import annotations

from typing import TYPE_CHECKING

from ai_editor.exceptions import InvalidChangeError
from ai_editor.formatting import PrettierFormatter
from ai_editor.logging import logger
from ai_editor.models import FileAction

if TYPE_CHECKING:
    from ai_editor.formatting import CodeFormatter
    from ai_editor.models import LlmOutput, ProposedFileChange


def check_change(change: ProposedFileChange) -> FileAction:
    """Return the change's action, or fail if the change cannot be applied at all.

    Raises:
        InvalidChangeError: if the path is empty or the action is not add, modify or delete.

    Returns:
        FileAction: the validated action
    """
    action = change.file_action
    if not change.file_path or action is None:
        dumped = change.model_dump_json(by_alias=True, exclude_none=True)
        logger.error("invalid_change", change=dumped)
        raise InvalidChangeError(change=dumped)
    return action


def format_content(change: ProposedFileChange, formatter: CodeFormatter) -> None:
    """Replace `change.new_content` with its formatted version, keeping it on any failure."""
    if change.new_content is None or change.file_path is None:
        return
    language: str | None = None
    try:
        language = formatter.detect_language(change.file_path)
        if not language:
            logger.warning("language_not_detected", file_path=change.file_path)
            return
        change.new_content = formatter.format_code(change.new_content, language)
    except Exception as exc:  # noqa: BLE001
        logger.error("format_failed", file_path=change.file_path, language=language, error=str(exc))


def validate_and_format(output: LlmOutput, formatter: CodeFormatter | None = None) -> LlmOutput:
    """Check every proposed change and format the new contents, in order.

    Structure is strict: a change without a path or with an unknown action
    stops the whole run. Content is lenient: missing content only warns, and
    formatting failures leave the content as the model wrote it.

    Args:
        output (LlmOutput): parsed model output, changed in place
        formatter (CodeFormatter | None): formatter to use, Prettier when None

    Returns:
        LlmOutput: `output` itself
    """
    formatter = formatter or PrettierFormatter()
    for change in output.changes:
        match check_change(change):
            case FileAction.ADD | FileAction.MODIFY if change.new_content is None:
                logger.warning(
                    "change_without_content",
                    file_path=change.file_path,
                    action=change.action,
                )
            case FileAction.ADD | FileAction.MODIFY:
                format_content(change, formatter)
            case FileAction.DELETE:
                pass
    return output
