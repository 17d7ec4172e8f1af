"""
Error taxonomy for the transcription pipeline.

Every stage raises a subclass of :class:`PipelineError` so the HTTP handler
can catch failures once at the top level and write the message into the
meeting record.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all errors raised by the pipeline."""


class ValidationError(PipelineError):
    """The inbound request is missing fields or carries invalid values."""


class ConfigurationError(PipelineError):
    """A required credential or setting is absent."""


class StorageError(PipelineError):
    """The content store could not return the requested object."""


class ProviderError(PipelineError):
    """An HTTP-level failure from an external AI provider."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TranscriptionProviderError(ProviderError):
    """The speech-to-text provider answered with a non-success status."""


class EmptyTranscriptionError(PipelineError):
    """The speech-to-text provider answered without any transcript text."""


class AnalysisProviderError(ProviderError):
    """The language model provider answered with a non-success status."""


class AnalysisParseError(PipelineError):
    """The language model reply did not contain a usable JSON object.

    Never raised out of the analysis client; it travels on
    :class:`minutes_pipeline.analysis_client.ParsedAnalysis` instead.
    """


class PersistenceError(PipelineError):
    """The record store rejected or failed an update."""


def failure_message(exc: BaseException) -> str:
    """The text stored in ``error_message`` and returned to the caller."""
    return str(exc) or type(exc).__name__
