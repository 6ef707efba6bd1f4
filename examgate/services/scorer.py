"""Proxy to the external writing-quality scoring API."""
from __future__ import annotations

import logging
import re
from typing import Any, Optional

import httpx

from examgate.config import Settings
from examgate.errors import UpstreamError, ValidationError


logger = logging.getLogger("examgate.scorer")

SYSTEM_PROMPT = (
    "You are an English examiner. Reject nonsense text. "
    "Score grammar, coherence and task completion."
)

_DATE_RANGE_RE = re.compile(r"from\s+\w+\s*\d+\s+to\s+\w+\s*\d+")
_DAY_COUNT_RE = re.compile(
    r"(\d+|one|two|three|four|five|six|seven|eight|nine|ten)\s+(day|days|night|nights)"
)
POLITE_CLOSINGS = (
    "kind regards",
    "best regards",
    "yours sincerely",
    "yours faithfully",
    "thank you",
    "thanks",
)


def writing_checks(text: str) -> dict[str, bool]:
    """Cheap local checks for a booking-letter task: date range, stay length, closing."""
    lower = text.lower()
    has_dates = _DATE_RANGE_RE.search(lower) is not None
    has_days = has_dates or _DAY_COUNT_RE.search(lower) is not None
    has_closing = any(closing in lower for closing in POLITE_CLOSINGS)
    return {"hasDates": has_dates, "hasDays": has_days, "hasClosing": has_closing}


def _output_text(data: Any) -> str:
    if isinstance(data, dict):
        if isinstance(data.get("output_text"), str):
            return data["output_text"]
        # The raw responses payload nests text under output[].content[]
        parts = []
        for item in data.get("output") or []:
            for content in item.get("content") or []:
                if content.get("type") == "output_text":
                    parts.append(content.get("text", ""))
        if parts:
            return "".join(parts)
    raise UpstreamError("Scoring service returned an unexpected payload")


class WritingScorer:
    """Forwards essay text to the scoring model and returns its verdict."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    async def score(self, text: Any) -> str:
        text = str(text or "").strip()
        if not text:
            raise ValidationError("Text is required")
        if not self.settings.OPENAI_API_KEY:
            raise UpstreamError("Scoring service is not configured", status_code=503)

        payload = {
            "model": self.settings.SCORER_MODEL,
            "input": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
        }
        headers = {"Authorization": f"Bearer {self.settings.OPENAI_API_KEY}"}
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.SCORER_TIMEOUT_SECONDS, transport=self._transport
            ) as client:
                resp = await client.post(self.settings.SCORER_URL, json=payload, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as exc:
            logger.warning("Scoring request timed out: %s", exc)
            raise UpstreamError("Scoring service timed out") from exc
        except httpx.HTTPStatusError as exc:
            logger.warning("Scoring service answered %s", exc.response.status_code)
            raise UpstreamError() from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Scoring request failed: %s", exc)
            raise UpstreamError() from exc
        return _output_text(data)
