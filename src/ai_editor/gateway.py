from __future__ import annotations

from typing import Any, Protocol

import requests

from ai_editor.exceptions import LlmGatewayError
from ai_editor.logging import logger

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class LlmGateway(Protocol):
    """Anything that turns a prompt into model text."""

    def generate_text(self, prompt: str, system_instruction: str | None = None) -> str: ...


class GeminiGateway:
    """Text generation through the Google Gemini `generateContent` REST endpoint.

    One request per call: no history, no retries.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str = GEMINI_API_URL,
        timeout: float = 240.0,
        session: requests.Session | None = None,
    ) -> None:
        if not (api_key and model):
            raise LlmGatewayError(
                message="Gemini env missing. Set GOOGLE_GEMINI_API_KEY and GOOGLE_GEMINI_MODEL.",
            )
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def generate_url(self) -> str:
        return f"{self.base_url}/{self.model}:generateContent"

    def build_payload(self, prompt: str, system_instruction: str | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        return payload

    def generate_text(self, prompt: str, system_instruction: str | None = None) -> str:
        """Send one prompt and return the text of the first candidate.

        Raises:
            LlmGatewayError: on transport failure, a non-200 answer, or an empty candidate.

        Returns:
            str: the model text
        """
        logger.debug("gemini_request", model=self.model, prompt_chars=len(prompt))
        try:
            r = self.session.post(
                self.generate_url(),
                params={"key": self.api_key},
                json=self.build_payload(prompt, system_instruction),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise LlmGatewayError(message=f"Failed to get response from LLM: {exc}") from exc

        if r.status_code != 200:  # noqa: PLR2004
            raise LlmGatewayError(
                status=r.status_code,
                body=r.text[:2000],
                message=f"Gemini API error {r.status_code}: {r.text[:2000]}",
            )

        try:
            text = extract_candidate_text(r.json())
        except ValueError as exc:
            raise LlmGatewayError(
                status=r.status_code,
                body=r.text[:2000],
                message=f"Gemini API sent non-JSON: {exc}",
            ) from exc
        if not text:
            raise LlmGatewayError(status=r.status_code, message="Failed to get response from Google Gemini API.")
        return text


def extract_candidate_text(resp: Any) -> str:  # noqa: ANN401
    """Join the text parts of the first candidate of a `generateContent` answer.

    Any other shape gives an empty string.
    """
    candidates = resp.get("candidates") if isinstance(resp, dict) else None
    first = candidates[0] if isinstance(candidates, list) and candidates else None
    content = first.get("content") if isinstance(first, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    return "".join(p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str))
