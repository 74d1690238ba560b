from __future__ import annotations

import base64
import json
import re
import time
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from tripdesk.core.config import settings
from tripdesk.core.logging import get_logger, log_event, monotonic_ms
from tripdesk.modules.imports.parsers.common import ParsedFile
from tripdesk.modules.imports.schemas import SmartImportResult
from tripdesk.modules.proposals.models import InclusionType, PricingType, StopType, TripType

logger = get_logger(__name__)

MAX_ATTEMPTS = 2
MAX_VENUE_NAMES = 400

EXTRACTION_FAILED_MESSAGE = (
    "The AI returned an unstructured response twice. "
    "Please upload clearer documents and try again."
)

_OUTPUT_SHAPE = """{
  "confidence": number between 0 and 1,
  "proposal": {
    "customer_name": string, "customer_email": string, "customer_phone": string,
    "trip_type": string, "trip_title": string, "party_size": integer,
    "start_date": "YYYY-MM-DD", "end_date": "YYYY-MM-DD",
    "introduction": string, "special_notes": string
  },
  "days": [
    {
      "date": "YYYY-MM-DD", "title": string, "description": string,
      "stops": [
        {
          "stop_type": string, "venue_name": string, "custom_name": string,
          "address": string, "scheduled_time": "HH:MM", "duration_minutes": integer,
          "notes": string
        }
      ]
    }
  ],
  "guests": [
    {
      "name": string, "email": string, "phone": string, "is_primary": boolean,
      "dietary_restrictions": string, "accessibility_needs": string,
      "special_requests": string
    }
  ],
  "inclusions": [
    {
      "inclusion_type": string, "description": string, "pricing_type": string,
      "quantity": number, "unit_price": number
    }
  ],
  "extraction_notes": string
}"""

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```$", re.S)


class ExtractionError(Exception):
    """The model did not produce a usable structured response."""


class LanguageModelClient(Protocol):
    def complete(self, messages: list[dict[str, Any]]) -> str: ...


class OpenAIChatClient:
    """OpenAI-compatible chat completions over httpx."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._api_key = api_key or settings.openai_api_key
        self._url = (base_url or settings.openai_base_url).rstrip("/") + "/chat/completions"
        self._model = model or settings.openai_model
        self._timeout = float(timeout or settings.smart_import_timeout_seconds)

    def complete(self, messages: list[dict[str, Any]]) -> str:
        resp = httpx.post(
            self._url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": self._model,
                "temperature": 0,
                "messages": messages,
            },
            timeout=self._timeout,
            follow_redirects=True,
        )
        resp.raise_for_status()
        raw = resp.json()
        try:
            content = raw["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return ""
        return content if isinstance(content, str) else ""


def language_model_available() -> bool:
    return bool(settings.openai_api_key)


def _values(enum_cls) -> str:
    return ", ".join(m.value for m in enum_cls)


def build_system_prompt(venue_names: list[str], *, strict: bool = False) -> str:
    lines = [
        "You extract wine-tour trip details from customer documents "
        "(itineraries, emails, spreadsheets, photos) for a tour operator.",
        "",
        "Rules:",
        "- Only use information explicitly present in the documents. Never fabricate data.",
        "- Omit any field you cannot find instead of guessing or returning null.",
        "- Dates MUST be YYYY-MM-DD. Times MUST be 24-hour HH:MM.",
        f"- trip_type is one of: {_values(TripType)}",
        f"- stop_type is one of: {_values(StopType)}",
        f"- inclusion_type is one of: {_values(InclusionType)}",
        f"- pricing_type is one of: {_values(PricingType)}",
        "- When a venue matches one of the known venues below, copy its name exactly "
        "into venue_name.",
        "- confidence reflects how complete and unambiguous the source documents are.",
        "- Use extraction_notes for anything ambiguous or that did not fit the schema.",
        "",
    ]
    names = [n for n in venue_names if n][:MAX_VENUE_NAMES]
    if names:
        lines.append("Known venues:")
        lines.extend(f"- {n}" for n in names)
        lines.append("")
    lines.append("Return a JSON object with this exact shape:")
    lines.append(_OUTPUT_SHAPE)
    if strict:
        lines.append("")
        lines.append(
            "IMPORTANT: return ONLY a raw JSON object. No markdown, no code fences, "
            "no explanation before or after the JSON."
        )
    return "\n".join(lines)


def _truncate_text(text: str, *, max_chars: int) -> str:
    t = (text or "").strip()
    if max_chars <= 0 or len(t) <= max_chars:
        return t
    return t[: max_chars - 20].rstrip() + "\n\n[TRUNCATED]"


def build_user_content(files: list[ParsedFile], *, max_chars: int | None = None) -> list[dict]:
    budget = int(max_chars if max_chars is not None else settings.smart_import_max_chars)
    parts: list[dict] = []
    texts: list[str] = []
    for parsed in files:
        if not parsed.ok:
            continue
        if parsed.text:
            texts.append(f"=== File: {parsed.filename} ===\n{parsed.text}")
        for image in parsed.images:
            encoded = base64.b64encode(image.data).decode("ascii")
            parts.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{image.media_type};base64,{encoded}"},
                }
            )

    content: list[dict] = []
    if texts:
        joined = _truncate_text("\n\n".join(texts), max_chars=budget)
        content.append({"type": "text", "text": joined})
    content.extend(parts)
    content.append(
        {
            "type": "text",
            "text": "Extract the trip proposal from the documents above. Return only JSON.",
        }
    )
    return content


def strip_code_fences(content: str) -> str:
    c = (content or "").strip()
    m = _FENCE_RE.match(c)
    return m.group(1).strip() if m else c


def parse_extraction(content: str) -> SmartImportResult:
    """Parse one model reply; raises ValueError or ValidationError when unusable."""
    cleaned = strip_code_fences(content)
    if not cleaned:
        raise ValueError("empty response")
    obj = json.loads(cleaned)
    if not isinstance(obj, dict):
        raise ValueError("response is not a JSON object")
    return SmartImportResult.model_validate(obj)


def _retry_messages(
    venue_names: list[str], user_content: list[dict], previous: str | None
) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = [
        {"role": "system", "content": build_system_prompt(venue_names, strict=True)},
        {"role": "user", "content": user_content},
    ]
    if previous:
        messages.append({"role": "assistant", "content": _truncate_text(previous, max_chars=4000)})
    messages.append(
        {
            "role": "user",
            "content": (
                "Your previous response could not be parsed as the requested JSON. "
                "Return ONLY the raw JSON object, with no markdown and no explanation."
            ),
        }
    )
    return messages


def extract_proposal(
    files: list[ParsedFile], venue_names: list[str], *, client: LanguageModelClient
) -> SmartImportResult:
    user_content = build_user_content(files)
    previous: str | None = None
    for attempt in range(1, MAX_ATTEMPTS + 1):
        if attempt == 1:
            messages = [
                {"role": "system", "content": build_system_prompt(venue_names)},
                {"role": "user", "content": user_content},
            ]
        else:
            messages = _retry_messages(venue_names, user_content, previous)

        start = time.monotonic()
        try:
            previous = client.complete(messages)
            result = parse_extraction(previous)
        except httpx.HTTPError as e:
            log_event(
                logger,
                "smart_import.model_call_failed",
                attempt=attempt,
                error=type(e).__name__,
                duration_ms=monotonic_ms(start),
            )
            continue
        except (ValueError, ValidationError) as e:
            log_event(
                logger,
                "smart_import.unparseable_response",
                attempt=attempt,
                error=str(e)[:300],
                duration_ms=monotonic_ms(start),
            )
            continue

        log_event(
            logger,
            "smart_import.extracted",
            attempt=attempt,
            confidence=result.confidence,
            days=len(result.days),
            duration_ms=monotonic_ms(start),
        )
        return result

    raise ExtractionError(EXTRACTION_FAILED_MESSAGE)
