"""
Data structures passed between the pipeline stages.

Field names follow Python conventions internally; the ``from_payload`` and
``to_*`` helpers translate to and from the camelCase JSON used on the wire
and the snake_case columns used by the record store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import ValidationError

REQUIRED_FIELDS = ("filePath", "fileType", "fileName", "userId")
FILE_TYPES = ("audio", "video")

FALLBACK_SUMMARY = (
    "Meeting analysis could not be parsed. Please review the transcript manually."
)
FALLBACK_KEY_POINT = "Analysis processing encountered an issue"
FALLBACK_ACTION_ITEM = "Review meeting transcript for action items"


class MeetingStatus:
    """Values of the ``status`` column written by the pipeline.

    Rows start as ``uploaded``, set by the upload flow.
    """

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class TranscriptionRequest:
    file_path: str
    file_type: str
    file_name: str
    user_id: str
    meeting_id: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "TranscriptionRequest":
        """Build a request from a decoded JSON body.

        Raises:
            ValidationError: If a required field is missing or empty, or if
                ``fileType`` is neither ``audio`` nor ``video``.
        """
        if not isinstance(payload, dict):
            payload = {}
        if not all(payload.get(name) for name in REQUIRED_FIELDS):
            raise ValidationError(
                "Missing required fields: " + ", ".join(REQUIRED_FIELDS)
            )
        if payload["fileType"] not in FILE_TYPES:
            raise ValidationError('Invalid fileType. Must be "audio" or "video".')
        return cls(
            file_path=str(payload["filePath"]),
            file_type=payload["fileType"],
            file_name=str(payload["fileName"]),
            user_id=str(payload["userId"]),
            meeting_id=payload.get("meetingId") or None,
        )


@dataclass(frozen=True)
class Participant:
    name: str
    email: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        data = {"name": self.name}
        if self.email:
            data["email"] = self.email
        return data


@dataclass
class AnalysisResult:
    summary: str
    key_points: List[str] = field(default_factory=list)
    action_items: List[str] = field(default_factory=list)
    participants: List[Participant] = field(default_factory=list)

    @classmethod
    def fallback(cls) -> "AnalysisResult":
        """The degraded result used when the model reply cannot be parsed."""
        return cls(
            summary=FALLBACK_SUMMARY,
            key_points=[FALLBACK_KEY_POINT],
            action_items=[FALLBACK_ACTION_ITEM],
            participants=[],
        )

    def participants_as_dicts(self) -> List[Dict[str, str]]:
        return [p.to_dict() for p in self.participants]


@dataclass
class PipelineResult:
    meeting_id: Optional[str]
    transcription: str
    analysis: AnalysisResult

    def to_response(self) -> Dict[str, Any]:
        """Render the JSON body returned to the caller on success."""
        return {
            "success": True,
            "meetingId": self.meeting_id,
            "transcription": self.transcription,
            "summary": self.analysis.summary,
            "keyPoints": list(self.analysis.key_points),
            "actionItems": list(self.analysis.action_items),
            "participants": self.analysis.participants_as_dicts(),
        }
