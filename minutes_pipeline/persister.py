"""
Status transitions for a meeting row.

``uploaded`` is set by the upload flow.  The pipeline moves a meeting to
``processing`` on entry and then to exactly one of ``completed`` or
``failed``.  A later manual retry starts again from ``processing``.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from .errors import PersistenceError
from .models import AnalysisResult, MeetingStatus

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ResultPersister:
    def __init__(self, store, *, clock: Callable[[], datetime] = _utc_now) -> None:
        self._store = store
        self._clock = clock

    def mark_processing(self, meeting_id: str) -> None:
        logger.info("[DATABASE] Meeting %s -> %s", meeting_id, MeetingStatus.PROCESSING)
        self._store.update(
            meeting_id,
            {"status": MeetingStatus.PROCESSING, "started_at": self._clock().isoformat()},
        )

    def mark_completed(self, meeting_id: str, transcript: str, analysis: AnalysisResult) -> None:
        """Write all results and the ``completed`` status in one update.

        Raises:
            PersistenceError: If the store rejects the update.
        """
        logger.info(
            "[DATABASE] Meeting %s -> %s (transcript %d chars, summary %d chars, "
            "%d key points, %d action items)",
            meeting_id,
            MeetingStatus.COMPLETED,
            len(transcript),
            len(analysis.summary),
            len(analysis.key_points),
            len(analysis.action_items),
        )
        self._store.update(
            meeting_id,
            {
                "transcript": transcript,
                "summary": analysis.summary,
                "key_points": list(analysis.key_points),
                "action_items": list(analysis.action_items),
                "participants": analysis.participants_as_dicts(),
                "status": MeetingStatus.COMPLETED,
            },
        )

    def mark_failed(self, meeting_id: str, message: str) -> Optional[PersistenceError]:
        """Record a failure, best effort.

        Returns the store error instead of raising it, so the triggering
        pipeline failure is what reaches the caller.
        """
        logger.info("[DATABASE] Meeting %s -> %s", meeting_id, MeetingStatus.FAILED)
        try:
            self._store.update(
                meeting_id, {"status": MeetingStatus.FAILED, "error_message": message}
            )
        except PersistenceError as exc:
            logger.error("[DATABASE] Failed to record failure for %s: %s", meeting_id, exc)
            return exc
        return None
