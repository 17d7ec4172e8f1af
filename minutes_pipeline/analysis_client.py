"""
Structured analysis of a transcript.

The transcript is sent to a language model with instructions to answer with
a single JSON object holding a summary, key points, action items and the
participants mentioned.  Models do not always follow formatting
instructions, so the reply is cleaned of markdown fences and validated field
by field.  A reply that cannot be parsed at all yields
:meth:`AnalysisResult.fallback` instead of an error: the transcript is still
worth saving when insight extraction misbehaves.

Only the outbound HTTP call is retried, and only for rate-limit errors.
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import requests

from .errors import AnalysisParseError, AnalysisProviderError
from .gemini import GeminiRestClient, candidate_text, error_message
from .models import AnalysisResult, Participant
from .retry import with_backoff

logger = logging.getLogger(__name__)

GENERATION_CONFIG = {
    "temperature": 0.3,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 1024,
}

RATE_LIMIT_MARKERS = ("resource exhausted", "resource_exhausted", "quota")

ANALYSIS_PROMPT = """Analyze this meeting transcript and respond with ONLY valid JSON (no markdown, no extra text, no code blocks).

TRANSCRIPT:
{transcript}

Respond with this exact JSON structure:
{{
  "summary": "A 2-3 paragraph executive summary of the meeting's key decisions and outcomes",
  "keyPoints": ["Key point 1", "Key point 2", "Key point 3"],
  "actionItems": ["Action 1: Description", "Action 2: Description"],
  "participants": [
    {{ "name": "Full Name", "email": "email@example.com" }},
    {{ "name": "Another Person" }}
  ]
}}

For "participants", list the real names of the people mentioned or speaking in the transcript. Include an email only when one is stated. Use descriptive identifiers such as "Speaker 1" only if no names can be found.

IMPORTANT: Return ONLY the JSON object. Do not wrap it in markdown code fences. Start with {{ and end with }}."""

_LEADING_FENCE = re.compile(r"^```(?:json)?[ \t]*\n?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\n?```$")


@dataclass
class ParsedAnalysis:
    """Outcome of parsing a model reply.

    ``error`` is set when the reply was unusable and ``result`` holds the
    fallback analysis.
    """

    result: AnalysisResult
    error: Optional[AnalysisParseError] = None

    @property
    def degraded(self) -> bool:
        return self.error is not None


def build_analysis_prompt(transcript: str) -> str:
    return ANALYSIS_PROMPT.format(transcript=transcript)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json / ``` fence if the model added one."""
    text = text.strip()
    if text.startswith("```"):
        text = _LEADING_FENCE.sub("", text, count=1)
        text = _TRAILING_FENCE.sub("", text, count=1)
    return text.strip()


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item if isinstance(item, str) else str(item) for item in value if item is not None]


def _participants(value: Any) -> List[Participant]:
    if not isinstance(value, list):
        return []
    participants = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            continue
        email = entry.get("email")
        email = str(email).strip() if email else ""
        participants.append(Participant(name=name.strip(), email=email or None))
    return participants


def parse_analysis(text: str) -> ParsedAnalysis:
    """Turn a model reply into an :class:`AnalysisResult`.

    Never raises: unparsable input produces the fallback result with the
    parse error attached.
    """
    cleaned = strip_code_fences(text or "")
    try:
        parsed = json.loads(cleaned)
    except ValueError as exc:
        return ParsedAnalysis(AnalysisResult.fallback(), AnalysisParseError(str(exc)))
    if not isinstance(parsed, dict):
        return ParsedAnalysis(
            AnalysisResult.fallback(),
            AnalysisParseError(f"Expected a JSON object, got {type(parsed).__name__}"),
        )
    summary = parsed.get("summary")
    return ParsedAnalysis(
        AnalysisResult(
            summary=summary if isinstance(summary, str) and summary else "No summary generated",
            key_points=_string_list(parsed.get("keyPoints")),
            action_items=_string_list(parsed.get("actionItems")),
            participants=_participants(parsed.get("participants")),
        )
    )


def is_rate_limited(exc: BaseException) -> bool:
    """Whether ``exc`` looks like a provider rate-limit or quota error."""
    if not isinstance(exc, AnalysisProviderError):
        return False
    if exc.status_code == 429:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


class AnalysisClient:
    def __init__(
        self,
        gemini: GeminiRestClient,
        *,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        sleep: Callable[[float], Any] = time.sleep,
    ) -> None:
        self._gemini = gemini
        self._max_attempts = max_attempts
        self._initial_delay = initial_delay
        self._sleep = sleep

    def _request(self, prompt: str) -> str:
        try:
            response = self._gemini.generate_content(
                [{"text": prompt}], generation_config=GENERATION_CONFIG
            )
        except requests.RequestException as exc:
            raise AnalysisProviderError(f"Gemini analysis request failed: {exc}") from exc
        if not response.ok:
            message = error_message(response)
            logger.error("[ANALYSIS] Provider returned %s: %s", response.status_code, message)
            raise AnalysisProviderError(
                f"Gemini analysis error ({response.status_code}): {message}",
                status_code=response.status_code,
            )
        try:
            return candidate_text(response.json())
        except ValueError:
            # An undecodable body is treated like unparsable model output.
            return response.text

    def analyse(self, transcript: str) -> AnalysisResult:
        """Extract summary, key points, action items and participants.

        Raises:
            AnalysisProviderError: If the provider call fails for a reason
                other than rate limiting, or rate limiting outlasts the
                retry budget.
        """
        logger.info("[ANALYSIS] Analysing transcript of %d characters", len(transcript))
        reply = with_backoff(
            self._request,
            build_analysis_prompt(transcript),
            is_retryable=is_rate_limited,
            max_attempts=self._max_attempts,
            initial_delay=self._initial_delay,
            sleep=self._sleep,
        )
        outcome = parse_analysis(reply)
        if outcome.degraded:
            logger.warning(
                "[ANALYSIS] Could not parse model reply (%s); using fallback. Raw reply: %.300s",
                outcome.error,
                reply,
            )
        else:
            logger.info(
                "[ANALYSIS] Parsed %d key points, %d action items, %d participants",
                len(outcome.result.key_points),
                len(outcome.result.action_items),
                len(outcome.result.participants),
            )
        return outcome.result
