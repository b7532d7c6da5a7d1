from __future__ import annotations

import io
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ai_editor.models import LlmInput, ScannedFile


def format_relevant_files(files: Sequence[ScannedFile]) -> str:
    """Render scanned files as `// File: <relative path>` blocks separated by blank lines.

    Args:
        files (Sequence[ScannedFile]): the files to render, in order

    Returns:
        str: the rendered listing
    """
    return "\n\n".join(f"// File: {f.relative_path}\n{f.content}" for f in files)


def build_prompt(llm_input: LlmInput) -> str:
    """Build the prompt body sent to the model.

    The body holds, in order: the request header, the user request, the
    project structure and the relevant files. The system instruction is not
    part of it (see `build_system_instruction`).

    Args:
        llm_input (LlmInput): the request and its context

    Returns:
        str: the prompt text
    """
    out = io.StringIO()
    out.write("# AI Code Generation Request\n\n")
    out.write("## User Request\n")
    out.write("```text\n")
    out.write(f"{llm_input.user_prompt}\n")
    out.write("```\n\n")
    out.write("## Project Context\n")
    out.write(f"{llm_input.project_structure}\n\n")
    out.write("### Relevant Files (for analysis)\n")
    out.write("```files\n")
    out.write(f"{format_relevant_files(llm_input.relevant_files)}\n")
    out.write("```\n")
    return out.getvalue().strip()


def build_system_instruction(llm_input: LlmInput) -> str:
    return f"{llm_input.additional_instructions}\n\n{llm_input.expected_output_format}"
