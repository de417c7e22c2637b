"""Gemini generateContent wire format and HTTP transport."""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING, Any

import requests
from pydantic import BaseModel, ValidationError

from invoice_sorter.errors import MalformedResponseError, ModelCallError

if TYPE_CHECKING:
    from invoice_sorter.models import Attachment

logger = logging.getLogger(__name__)

API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT = 120.0


class _Part(BaseModel):
    text: str | None = None


class _Content(BaseModel):
    parts: list[_Part] = []


class _Candidate(BaseModel):
    content: _Content | None = None


class GenerateContentResponse(BaseModel):
    """Subset of a generateContent response that the pipeline reads."""

    candidates: list[_Candidate] = []


def build_request(
    prompt: str,
    attachment: Attachment,
    *,
    temperature: float,
    max_output_tokens: int,
) -> dict[str, Any]:
    """Build a generateContent body sending ``prompt`` plus the attachment inline."""
    return {
        "contents": [
            {
                "parts": [
                    {"text": prompt},
                    {
                        "inlineData": {
                            "mimeType": attachment.model_mime_type,
                            "data": base64.b64encode(attachment.read_bytes()).decode(
                                "ascii"
                            ),
                        }
                    },
                ]
            }
        ],
        "generationConfig": {
            "temperature": temperature,
            "maxOutputTokens": max_output_tokens,
        },
    }


def extract_text(body: dict[str, Any]) -> str:
    """Return the trimmed text at ``candidates[0].content.parts[0].text``.

    Raises ModelCallError for an embedded API error and
    MalformedResponseError when the text is missing or empty.
    """
    error = body.get("error")
    if error:
        if isinstance(error, dict):
            message = error.get("message", "unknown error")
            code = error.get("code")
        else:
            message, code = str(error), None
        raise ModelCallError(
            f"Gemini API error: {message}",
            status_code=code if isinstance(code, int) else None,
        )

    try:
        response = GenerateContentResponse.model_validate(body)
    except ValidationError as exc:
        msg = "Unexpected response format from Gemini API"
        raise MalformedResponseError(msg) from exc

    text = None
    if response.candidates:
        content = response.candidates[0].content
        if content is not None and content.parts:
            text = content.parts[0].text

    if not text or not text.strip():
        msg = "Unexpected response format from Gemini API"
        raise MalformedResponseError(msg)
    return text.strip()


class GeminiTransport:
    """POST generateContent requests for one model."""

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        session: requests.Session | None = None,
        base_url: str = API_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def generate(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Send ``payload`` and return the decoded JSON body.

        Non-2xx replies raise ModelCallError carrying the HTTP status.
        """
        response = self.session.post(
            self.url,
            json=payload,
            headers={"x-goog-api-key": self.api_key},
            timeout=self.timeout,
        )

        if not response.ok:
            message = _error_message(response)
            raise ModelCallError(
                f"Gemini API error ({response.status_code}): {message}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            msg = "Unexpected response format from Gemini API"
            raise MalformedResponseError(msg) from exc

        if not isinstance(body, dict):
            msg = "Unexpected response format from Gemini API"
            raise MalformedResponseError(msg)
        return body


def _error_message(response: requests.Response) -> str:
    """Pull ``error.message`` from an error reply, falling back to the reason."""
    try:
        body = response.json()
    except ValueError:
        return response.reason or "no details"
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message", response.reason))
    return response.reason or "no details"
