"""
Minimal REST client for the Gemini ``generateContent`` endpoint.

Both the transcription and the analysis stages talk to the same API; this
module holds the request plumbing they share.  Error classification is left
to the callers so that each stage can raise its own error type.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class GeminiRestClient:
    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        api_base: str,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._api_key = api_key
        self.model = model
        self._url = f"{api_base.rstrip('/')}/models/{model}:generateContent"
        self._timeout = timeout
        self._session = session or requests.Session()

    def generate_content(
        self, parts: List[Dict[str, Any]], *, generation_config: Optional[Dict[str, Any]] = None
    ) -> requests.Response:
        """POST a single-turn request and return the raw response."""
        body: Dict[str, Any] = {"contents": [{"parts": parts}]}
        if generation_config:
            body["generationConfig"] = generation_config
        started = time.monotonic()
        response = self._session.post(
            self._url,
            params={"key": self._api_key},
            headers={"Content-Type": "application/json"},
            json=body,
            timeout=self._timeout,
        )
        logger.info(
            "Gemini %s responded in %dms with status %s",
            self.model,
            (time.monotonic() - started) * 1000,
            response.status_code,
        )
        return response


def error_message(response: requests.Response) -> str:
    """Pull the provider's error message out of a failed response."""
    try:
        payload = response.json()
    except ValueError:
        return response.text or "Unknown error"
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.text or "Unknown error"


def candidate_text(payload: Any) -> str:
    """Return the text of the first part of the first candidate, or ``""``."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0].get("text")
    except (KeyError, IndexError, TypeError, AttributeError):
        return ""
    return text if isinstance(text, str) else ""
