import pytest

from minutes_pipeline.blob_store import GcsBlobStore, SupabaseBlobStore
from minutes_pipeline.config import Settings
from minutes_pipeline.errors import (
    AnalysisProviderError,
    ConfigurationError,
    EmptyTranscriptionError,
    PersistenceError,
    StorageError,
)
from minutes_pipeline.models import AnalysisResult, Participant, TranscriptionRequest
from minutes_pipeline.orchestrator import TranscriptionPipeline
from minutes_pipeline.persister import ResultPersister

ANALYSIS = AnalysisResult("S", ["K1"], ["A1"], [Participant("Alice")])


class FakeBlobStore:
    def __init__(self, error=None):
        self.error = error
        self.paths = []

    def download(self, path):
        self.paths.append(path)
        if self.error:
            raise self.error
        return b"audio"


class FakeSpeech:
    def __init__(self, text="Hello world", error=None):
        self.text = text
        self.error = error
        self.calls = []

    def transcribe(self, data, file_name):
        self.calls.append((data, file_name))
        if self.error:
            raise self.error
        return self.text


class FakeAnalysis:
    def __init__(self, result=ANALYSIS, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def analyse(self, transcript):
        self.calls.append(transcript)
        if self.error:
            raise self.error
        return self.result


class TraceStore:
    """Records every update; optionally fails updates with a given status."""

    def __init__(self, fail_on=()):
        self.updates = []
        self.fail_on = fail_on

    def update(self, meeting_id, fields):
        self.updates.append((meeting_id, dict(fields)))
        if fields.get("status") in self.fail_on:
            raise PersistenceError("Database update failed: timeout")

    def statuses(self):
        return [fields["status"] for _, fields in self.updates]


def _request(meeting_id="m1"):
    return TranscriptionRequest("a/b.mp3", "audio", "meeting.mp3", "u1", meeting_id)


def _pipeline(store, blob=None, speech=None, analysis=None):
    return TranscriptionPipeline(
        blob or FakeBlobStore(),
        speech or FakeSpeech(),
        analysis or FakeAnalysis(),
        ResultPersister(store),
    )


def test_success_goes_processing_then_completed():
    store = TraceStore()
    speech = FakeSpeech()
    result = _pipeline(store, speech=speech).run(_request())

    assert store.statuses() == ["processing", "completed"]
    assert speech.calls == [(b"audio", "meeting.mp3")]
    _, fields = store.updates[-1]
    assert fields["transcript"] == "Hello world"
    assert fields["summary"] == "S"
    assert result.transcription == "Hello world"
    assert result.analysis == ANALYSIS


def test_without_meeting_id_store_is_untouched():
    store = TraceStore()
    result = _pipeline(store).run(_request(meeting_id=None))
    assert store.updates == []
    assert result.meeting_id is None
    assert result.analysis.summary == "S"


@pytest.mark.parametrize(
    "stage, error",
    [
        ("blob", StorageError("Failed to download file: 404 No such object")),
        ("speech", EmptyTranscriptionError("No transcription text received from Gemini API")),
        ("analysis", AnalysisProviderError("Gemini analysis error (400): bad", status_code=400)),
    ],
)
def test_stage_failure_marks_failed_and_discards_results(stage, error):
    store = TraceStore()
    stages = {
        "blob": FakeBlobStore(error=error if stage == "blob" else None),
        "speech": FakeSpeech(error=error if stage == "speech" else None),
        "analysis": FakeAnalysis(error=error if stage == "analysis" else None),
    }
    pipeline = _pipeline(store, stages["blob"], stages["speech"], stages["analysis"])

    with pytest.raises(type(error)):
        pipeline.run(_request())

    assert store.statuses() == ["processing", "failed"]
    assert store.updates[-1] == ("m1", {"status": "failed", "error_message": str(error)})


def test_later_stages_do_not_run_after_failure():
    store = TraceStore()
    speech = FakeSpeech()
    analysis = FakeAnalysis()
    with pytest.raises(StorageError):
        _pipeline(store, FakeBlobStore(error=StorageError("gone")), speech, analysis).run(_request())
    assert speech.calls == []
    assert analysis.calls == []


def test_degraded_analysis_still_completes():
    store = TraceStore()
    _pipeline(store, analysis=FakeAnalysis(result=AnalysisResult.fallback())).run(_request())
    assert store.statuses() == ["processing", "completed"]
    assert store.updates[-1][1]["key_points"] == AnalysisResult.fallback().key_points


def test_failure_path_store_error_is_swallowed():
    store = TraceStore(fail_on=("failed",))
    with pytest.raises(StorageError, match="gone"):
        _pipeline(store, blob=FakeBlobStore(error=StorageError("gone"))).run(_request())
    assert store.statuses() == ["processing", "failed"]


def test_success_path_store_error_propagates():
    store = TraceStore(fail_on=("completed",))
    with pytest.raises(PersistenceError):
        _pipeline(store).run(_request())
    assert store.statuses() == ["processing", "completed", "failed"]


def test_from_settings_requires_gemini_key():
    with pytest.raises(ConfigurationError, match="Gemini API key not configured"):
        TranscriptionPipeline.from_settings(Settings())


def test_from_settings_reads_recordings_from_supabase_by_default():
    pipeline = TranscriptionPipeline.from_settings(
        Settings(gemini_api_key="key", supabase_url="https://proj.supabase.co")
    )
    assert isinstance(pipeline._blob_store, SupabaseBlobStore)
    assert pipeline._blob_store.bucket_name == "ai_meetings"


def test_from_settings_gcs_backend():
    pipeline = TranscriptionPipeline.from_settings(
        Settings(gemini_api_key="key", storage_backend="gcs")
    )
    assert isinstance(pipeline._blob_store, GcsBlobStore)


def test_from_settings_unknown_backend():
    with pytest.raises(ConfigurationError, match="Unknown storage backend: s3"):
        TranscriptionPipeline.from_settings(Settings(gemini_api_key="key", storage_backend="s3"))


def test_empty_exception_message_uses_type_name():
    store = TraceStore()
    with pytest.raises(RuntimeError):
        _pipeline(store, blob=FakeBlobStore(error=RuntimeError())).run(_request())
    assert store.updates[-1][1]["error_message"] == "RuntimeError"


def test_storage_backend_from_env():
    assert Settings.from_env({}).storage_backend == "supabase"
    assert Settings.from_env({"STORAGE_BACKEND": "GCS"}).storage_backend == "gcs"
