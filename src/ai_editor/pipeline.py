from __future__ import annotations

from typing import TYPE_CHECKING

from ai_editor.logging import logger
from ai_editor.parsing import parse_llm_response
from ai_editor.prompting import build_prompt, build_system_instruction
from ai_editor.scanner import DirectoryScanner, generate_project_structure
from ai_editor.validation import validate_and_format

if TYPE_CHECKING:
    from ai_editor.config import ScanPolicy
    from ai_editor.formatting import CodeFormatter
    from ai_editor.gateway import LlmGateway
    from ai_editor.models import LlmInput, LlmOutput
    from ai_editor.parsing import RepairFn


def prepare_input(
    llm_input: LlmInput,
    *,
    policy: ScanPolicy | None = None,
    verbose: bool = False,
) -> LlmInput:
    """Return a copy of `llm_input` carrying the scanned files and the project tree."""
    scan_result = DirectoryScanner(policy).scan(llm_input.scan_paths, llm_input.project_root, verbose=verbose)
    structure = generate_project_structure(llm_input.project_root)
    return llm_input.model_copy(
        update={"relevant_files": scan_result.files, "project_structure": structure},
    )


def generate_content(
    llm_input: LlmInput,
    *,
    gateway: LlmGateway,
    formatter: CodeFormatter | None = None,
    policy: ScanPolicy | None = None,
    repair: RepairFn | None = None,
    verbose: bool = False,
) -> LlmOutput:
    """Run one request through the whole pipeline.

    Scan, build the prompt, ask the model, parse and repair its answer, then
    validate and format the proposed changes.

    Args:
        llm_input (LlmInput): the user request; left untouched
        gateway (LlmGateway): text-generation service
        formatter (CodeFormatter | None): formatter for new contents, Prettier when None
        policy (ScanPolicy | None): scan rules, defaults when None
        repair (RepairFn | None): JSON repair strategy, local repair when None
        verbose (bool): log scan decisions and the raw model answer

    Returns:
        LlmOutput: the validated changes with summary and thought process
    """
    prepared = prepare_input(llm_input, policy=policy, verbose=verbose)
    prompt = build_prompt(prepared)
    system_instruction = build_system_instruction(prepared)
    logger.info("prompt_built", prompt_chars=len(prompt), files=len(prepared.relevant_files))

    raw = gateway.generate_text(prompt, system_instruction=system_instruction)
    logger.debug("raw_llm_response", raw=raw)

    output = parse_llm_response(raw, repair)
    validate_and_format(output, formatter)
    logger.info("changes_proposed", changes=len(output.changes))
    return output
