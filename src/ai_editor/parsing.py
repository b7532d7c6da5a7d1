"""Turn raw model text into an `LlmOutput`.

The model is asked for a fenced JSON object but does not always comply, so
parsing is tolerant in two ways: a repair strategy gets one chance to fix
invalid JSON, and a bare array of changes is accepted and wrapped with
placeholder summary texts.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from ai_editor.exceptions import MalformedResponseError
from ai_editor.logging import logger
from ai_editor.models import DEFAULT_SUMMARY, DEFAULT_THOUGHT_PROCESS, LlmOutput

if TYPE_CHECKING:
    from collections.abc import Callable

    from ai_editor.gateway import LlmGateway

    RepairFn = Callable[[str], str]

_JSON_BLOCK = re.compile(r"```json\n(.*?)\n```", re.DOTALL)
_ANY_BLOCK = re.compile(r"```[a-zA-Z]*\n(.*?)\n```", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z0-9_]+)(\s*:)")
_BAD_BACKSLASH = re.compile(r'\\(?!["\\/bfnrtu])')

LLM_REPAIR_PROMPT = """\
The following string is supposed to be valid JSON, but it may be broken or malformed. \
Please return ONLY the corrected JSON, without extra commentary.

Input:
```
{payload}
```"""


def extract_json_from_markdown(text: str) -> str:
    """Return the content of the first ```json block, or the whole trimmed text."""
    match = _JSON_BLOCK.search(text)
    if match and match.group(1):
        return match.group(1).strip()
    return text.strip()


def noop_repair(candidate: str) -> str:
    return candidate


def local_repair(candidate: str) -> str:
    """Fix the usual ways model JSON goes wrong, without calling anything.

    - typographic quotes become ASCII quotes
    - trailing commas before `}` or `]` are dropped
    - bare object keys get quoted
    - backslashes that do not start a JSON escape are doubled

    Best effort: the rewrite is regex based and may touch string contents.

    Args:
        candidate (str): text that failed to parse

    Returns:
        str: the rewritten text
    """
    repaired = candidate.replace("“", '"').replace("”", '"')
    repaired = repaired.replace("‘", "'").replace("’", "'")
    repaired = _TRAILING_COMMA.sub(r"\1", repaired)
    repaired = _BARE_KEY.sub(r'\1"\2"\3', repaired)
    return _BAD_BACKSLASH.sub(r"\\\\", repaired)


def make_llm_repair(gateway: LlmGateway) -> RepairFn:
    """Build a repair strategy that falls back to asking the model to fix its own JSON.

    The local repair is tried first; the gateway is only called when the
    locally repaired text still does not parse.

    Args:
        gateway (LlmGateway): the text-generation service to ask

    Returns:
        RepairFn: the repair strategy
    """

    def repair(candidate: str) -> str:
        repaired = local_repair(candidate)
        try:
            json.loads(repaired)
        except json.JSONDecodeError as exc:
            logger.warning("local_json_repair_failed", error=str(exc))
        else:
            return repaired
        answer = gateway.generate_text(LLM_REPAIR_PROMPT.format(payload=candidate))
        match = _ANY_BLOCK.search(answer)
        fixed = match.group(1) if match else answer
        logger.info("llm_json_repair", chars=len(fixed))
        return fixed.strip()

    return repair


def load_candidate(raw: str, repair: RepairFn = local_repair) -> Any:  # noqa: ANN401
    """Parse the JSON payload of a model answer, repairing it once if needed.

    Args:
        raw (str): the raw model text
        repair (RepairFn): strategy applied when the first parse fails

    Raises:
        MalformedResponseError: if the repaired text does not parse either

    Returns:
        Any: the decoded JSON value
    """
    candidate = extract_json_from_markdown(raw)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as parse_error:
        logger.warning("initial_json_parse_failed", error=str(parse_error))
        try:
            parsed = json.loads(repair(candidate))
        except Exception as repair_error:
            logger.error(
                "json_parse_failed_after_repair",
                raw=raw,
                candidate=candidate,
                repair_error=str(repair_error),
            )
            raise MalformedResponseError(
                raw=raw,
                parse_error=str(parse_error),
                repair_error=str(repair_error),
                message=(
                    f"Invalid JSON response from LLM: {parse_error}. Repair attempt failed: {repair_error}"
                ),
            ) from repair_error
        logger.info("json_parse_succeeded_after_repair")
        return parsed


def normalize_output(parsed: Any, raw: str = "") -> LlmOutput:  # noqa: ANN401
    """Coerce a decoded JSON value into an `LlmOutput`.

    A bare list is taken as the changes and given placeholder summary and
    thought process. An object must carry a `changes` list and a `summary`
    string.

    Args:
        parsed (Any): the decoded JSON value
        raw (str): the raw model text, kept for diagnostics

    Raises:
        MalformedResponseError: for any other shape, or change items that are not change records

    Returns:
        LlmOutput: the normalized output
    """
    if isinstance(parsed, list):
        logger.warning("llm_returned_bare_array", changes=len(parsed))
        data: dict[str, Any] = {
            "changes": parsed,
            "summary": DEFAULT_SUMMARY,
            "thoughtProcess": DEFAULT_THOUGHT_PROCESS,
        }
    elif isinstance(parsed, dict):
        if not (isinstance(parsed.get("changes"), list) and isinstance(parsed.get("summary"), str)):
            logger.error("llm_output_missing_fields", received=json.dumps(parsed, indent=2)[:2000])
            raise MalformedResponseError(
                raw=raw,
                message='LLM response object missing expected "changes" array or "summary" string.',
            )
        data = parsed
    else:
        logger.error("llm_output_wrong_type", type=type(parsed).__name__)
        raise MalformedResponseError(
            raw=raw,
            message="Invalid top-level JSON structure from LLM. Expected an object or an array.",
        )

    try:
        return LlmOutput.model_validate(data)
    except ValidationError as exc:
        raise MalformedResponseError(raw=raw, message=f"LLM response does not match the change schema: {exc}") from exc


def parse_llm_response(raw: str, repair: RepairFn | None = None) -> LlmOutput:
    """Parse raw model text into an `LlmOutput`.

    Args:
        raw (str): the raw model text
        repair (RepairFn | None): repair strategy, `local_repair` when None

    Returns:
        LlmOutput: the parsed and normalized output
    """
    parsed = load_candidate(raw, repair or local_repair)
    return normalize_output(parsed, raw)
