"""
Orchestration of the four pipeline stages.

A :class:`TranscriptionPipeline` runs, strictly in order:

1. Fetch the recording from the content store.
2. Transcribe it with the speech provider.
3. Analyse the transcript with the language model.
4. Store the results and the ``completed`` status on the meeting row.

If any stage fails the meeting is marked ``failed`` with the error message
and nothing from the earlier stages is saved.  When the request carries no
meeting id, the results are returned without touching the record store.
"""

from __future__ import annotations

import logging

import requests

from .analysis_client import AnalysisClient
from .blob_store import GcsBlobStore, SupabaseBlobStore
from .config import Settings
from .errors import ConfigurationError, failure_message
from .gemini import GeminiRestClient
from .meeting_store import SupabaseMeetingStore
from .models import PipelineResult, TranscriptionRequest
from .persister import ResultPersister
from .speech_client import SpeechTranscriptionClient

logger = logging.getLogger(__name__)


class TranscriptionPipeline:
    def __init__(
        self,
        blob_store,
        speech_client: SpeechTranscriptionClient,
        analysis_client: AnalysisClient,
        persister: ResultPersister,
    ) -> None:
        self._blob_store = blob_store
        self._speech_client = speech_client
        self._analysis_client = analysis_client
        self._persister = persister

    @classmethod
    def from_settings(cls, settings: Settings) -> "TranscriptionPipeline":
        """Wire the production collaborators described by ``settings``.

        Raises:
            ConfigurationError: If no Gemini API key is configured or the
                storage backend is unknown.
        """
        if not settings.gemini_api_key:
            raise ConfigurationError("Gemini API key not configured")

        def gemini(model: str) -> GeminiRestClient:
            return GeminiRestClient(
                settings.gemini_api_key,
                model,
                api_base=settings.gemini_api_base,
                timeout=settings.http_timeout,
            )

        session = requests.Session()
        if settings.storage_backend == "supabase":
            blob_store = SupabaseBlobStore(
                settings.supabase_url,
                settings.supabase_service_key,
                settings.storage_bucket,
                timeout=settings.http_timeout,
                session=session,
            )
        elif settings.storage_backend == "gcs":
            blob_store = GcsBlobStore(settings.storage_bucket)
        else:
            raise ConfigurationError(f"Unknown storage backend: {settings.storage_backend}")

        store = SupabaseMeetingStore(
            settings.supabase_url,
            settings.supabase_service_key,
            table=settings.meetings_table,
            timeout=settings.http_timeout,
            session=session,
        )
        return cls(
            blob_store,
            SpeechTranscriptionClient(gemini(settings.transcription_model)),
            AnalysisClient(
                gemini(settings.analysis_model),
                max_attempts=settings.analysis_max_attempts,
                initial_delay=settings.analysis_initial_delay,
            ),
            ResultPersister(store),
        )

    def run(self, request: TranscriptionRequest) -> PipelineResult:
        """Process one uploaded recording end to end.

        Raises:
            PipelineError: Whatever stage error ended the run, after the
                meeting has been marked ``failed``.
        """
        meeting_id = request.meeting_id
        logger.info("[PROCESSING] Starting transcription for %s", request.file_name)
        try:
            if meeting_id:
                self._persister.mark_processing(meeting_id)

            logger.info("[STEP 1/4] Downloading %s", request.file_path)
            data = self._blob_store.download(request.file_path)

            logger.info("[STEP 2/4] Transcribing %s", request.file_name)
            transcript = self._speech_client.transcribe(data, request.file_name)

            logger.info("[STEP 3/4] Generating summary and insights")
            analysis = self._analysis_client.analyse(transcript)

            if meeting_id:
                logger.info("[STEP 4/4] Updating meeting %s", meeting_id)
                self._persister.mark_completed(meeting_id, transcript, analysis)
            else:
                logger.info("[STEP 4/4] Skipped, no meeting id provided")
        except Exception as exc:
            logger.exception("[ERROR] Transcription processing failed: %s", exc)
            if meeting_id:
                self._persister.mark_failed(meeting_id, failure_message(exc))
            raise

        logger.info("[SUCCESS] Transcription processing completed")
        return PipelineResult(meeting_id=meeting_id, transcription=transcript, analysis=analysis)
