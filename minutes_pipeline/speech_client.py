"""
Speech-to-text stage.

Recordings are sent to Gemini as inline base64 data together with a short
transcription instruction.  The returned text is passed on verbatim; no
cleaning or formatting happens at this stage.

Usage::

    client = SpeechTranscriptionClient(GeminiRestClient(key, "gemini-2.0-flash", api_base=base))
    text = client.transcribe(data, "standup.mp3")
"""

import base64
import logging
from pathlib import Path

import requests

from .errors import EmptyTranscriptionError, TranscriptionProviderError
from .gemini import GeminiRestClient, candidate_text, error_message

logger = logging.getLogger(__name__)

MIME_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "webm": "audio/webm",
    "mp4": "video/mp4",
    "mpeg": "video/mpeg",
    "mov": "video/quicktime",
}
DEFAULT_MIME_TYPE = "audio/mpeg"

# Largest multiple of 3 within 8 KiB, so every slice encodes without padding.
ENCODE_CHUNK_SIZE = 8190

TRANSCRIPTION_INSTRUCTION = (
    "Please transcribe this audio/video file accurately. "
    "Provide only the transcribed text."
)


def infer_mime_type(file_name: str) -> str:
    """Map a file name to the MIME type announced to the provider.

    Unknown extensions fall back to ``audio/mpeg``, even for video uploads.
    """
    extension = Path(file_name).suffix.lstrip(".").lower()
    return MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)


def encode_base64_chunked(data: bytes, chunk_size: int = ENCODE_CHUNK_SIZE) -> str:
    """Base64-encode ``data`` slice by slice.

    Raises:
        ValueError: If ``chunk_size`` is not a positive multiple of 3.
    """
    if chunk_size <= 0 or chunk_size % 3:
        raise ValueError(f"chunk_size must be a positive multiple of 3, got {chunk_size}")
    view = memoryview(data)
    pieces = []
    for offset in range(0, len(view), chunk_size):
        pieces.append(base64.b64encode(view[offset:offset + chunk_size]).decode("ascii"))
    return "".join(pieces)


class SpeechTranscriptionClient:
    def __init__(self, gemini: GeminiRestClient) -> None:
        self._gemini = gemini

    def transcribe(self, data: bytes, file_name: str) -> str:
        """Transcribe a recording and return the provider's text.

        Raises:
            TranscriptionProviderError: On a non-success HTTP status.
            EmptyTranscriptionError: If the reply carries no text.
        """
        mime_type = infer_mime_type(file_name)
        logger.info(
            "[TRANSCRIPTION] %s: %d bytes, MIME type %s", file_name, len(data), mime_type
        )
        parts = [
            {"text": TRANSCRIPTION_INSTRUCTION},
            {"inlineData": {"mimeType": mime_type, "data": encode_base64_chunked(data)}},
        ]
        try:
            response = self._gemini.generate_content(parts)
        except requests.RequestException as exc:
            raise TranscriptionProviderError(f"Gemini transcription request failed: {exc}") from exc
        if not response.ok:
            message = error_message(response)
            logger.error(
                "[TRANSCRIPTION] Provider returned %s: %s", response.status_code, message
            )
            raise TranscriptionProviderError(
                f"Gemini transcription error ({response.status_code}): {message}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise TranscriptionProviderError(
                "Gemini transcription error: response was not valid JSON",
                status_code=response.status_code,
            ) from exc
        text = candidate_text(payload)
        if not text:
            raise EmptyTranscriptionError("No transcription text received from Gemini API")
        logger.info("[TRANSCRIPTION] Received %d characters", len(text))
        return text
