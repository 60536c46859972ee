"""Client for the generative-language endpoint.

One POST per prompt, no retries. The two ways the endpoint can fail us are
kept apart: ModelRejectionError when no usable candidate comes back (safety
block, quota, transport failure) and, later in the pipeline,
ResponseParseError when text came back but in the wrong shape.
"""

from __future__ import annotations

import json

import httpx
import structlog

from smartreader.config import ModelSettings
from smartreader.errors import ModelRejectionError

log = structlog.get_logger()

HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


def build_request_body(prompt: str, settings: ModelSettings) -> dict:
    """Single free-text prompt plus generation parameters."""
    body: dict = {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {"temperature": settings.temperature},
    }
    if settings.safety_threshold:
        body["safetySettings"] = [
            {"category": category, "threshold": settings.safety_threshold}
            for category in HARM_CATEGORIES
        ]
    return body


def extract_candidate_text(payload: dict) -> str:
    """Return the concatenated text of the first candidate.

    Raises ModelRejectionError when there is no candidate or the candidate
    carries no text part, with the block/finish reason in the message.
    """
    candidates = payload.get("candidates") or []
    if not candidates:
        reason = (payload.get("promptFeedback") or {}).get("blockReason", "unknown")
        raise ModelRejectionError(
            f"Model returned no candidates (block reason: {reason})",
            raw_response=json.dumps(payload, ensure_ascii=False),
        )

    candidate = candidates[0]
    parts = (candidate.get("content") or {}).get("parts") or []
    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
    if not text.strip():
        reason = candidate.get("finishReason", "unknown")
        raise ModelRejectionError(
            f"Model candidate has no text (finish reason: {reason})",
            raw_response=json.dumps(payload, ensure_ascii=False),
        )
    return text


class GeminiClient:
    """generateContent client sharing the application's httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient, settings: ModelSettings) -> None:
        self._client = client
        self._settings = settings

    @property
    def url(self) -> str:
        endpoint = self._settings.endpoint.rstrip("/")
        return f"{endpoint}/models/{self._settings.name}:generateContent"

    async def generate(self, prompt: str) -> str:
        """Send ``prompt`` and return the raw model text."""
        try:
            response = await self._client.post(
                self.url,
                params={"key": self._settings.api_key},
                json=build_request_body(prompt, self._settings),
                timeout=self._settings.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise ModelRejectionError(f"Network error calling model: {exc}") from exc

        if not response.is_success:
            log.warning("model_call_failed", status_code=response.status_code)
            raise ModelRejectionError(
                f"Model endpoint returned HTTP {response.status_code}",
                raw_response=response.text,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ModelRejectionError(
                "Model endpoint returned a non-JSON body",
                raw_response=response.text,
            ) from exc
        if not isinstance(payload, dict):
            raise ModelRejectionError(
                "Model endpoint returned an unexpected body",
                raw_response=response.text,
            )

        text = extract_candidate_text(payload)
        log.info(
            "model_call_complete",
            model=self._settings.name,
            prompt_length=len(prompt),
            response_length=len(text),
        )
        return text
