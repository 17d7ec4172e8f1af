"""
Runtime configuration.

All settings are read from environment variables, mirroring how the service
is deployed as a container or serverless function.  The most relevant ones:

* ``GEMINI_API_KEY`` – API key for both the transcription and analysis calls.
  Processing is refused without it.
* ``SUPABASE_URL`` / ``SUPABASE_SERVICE_ROLE_KEY`` – record store credentials.
* ``STORAGE_BACKEND`` – ``supabase`` (default) or ``gcs``.
* ``STORAGE_BUCKET`` – bucket holding the uploaded recordings.
* ``HTTP_TIMEOUT_SECONDS`` – timeout applied to every outbound HTTP call.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"


@dataclass(frozen=True)
class Settings:
    gemini_api_key: Optional[str] = None
    gemini_api_base: str = DEFAULT_GEMINI_API_BASE
    transcription_model: str = DEFAULT_GEMINI_MODEL
    analysis_model: str = DEFAULT_GEMINI_MODEL
    supabase_url: str = ""
    supabase_service_key: str = ""
    meetings_table: str = "meetings"
    storage_backend: str = "supabase"
    storage_bucket: str = "ai_meetings"
    http_timeout: float = 300.0
    analysis_max_attempts: int = 3
    analysis_initial_delay: float = 1.0
    port: int = 8080

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            gemini_api_key=env.get("GEMINI_API_KEY") or None,
            gemini_api_base=env.get("GEMINI_API_BASE", DEFAULT_GEMINI_API_BASE).rstrip("/"),
            transcription_model=env.get("GEMINI_TRANSCRIPTION_MODEL", DEFAULT_GEMINI_MODEL),
            analysis_model=env.get("GEMINI_ANALYSIS_MODEL", DEFAULT_GEMINI_MODEL),
            supabase_url=env.get("SUPABASE_URL", "").rstrip("/"),
            supabase_service_key=env.get("SUPABASE_SERVICE_ROLE_KEY", ""),
            meetings_table=env.get("MEETINGS_TABLE", "meetings"),
            storage_backend=env.get("STORAGE_BACKEND", "supabase").lower(),
            storage_bucket=env.get("STORAGE_BUCKET", "ai_meetings"),
            http_timeout=float(env.get("HTTP_TIMEOUT_SECONDS", "300")),
            analysis_max_attempts=int(env.get("ANALYSIS_MAX_ATTEMPTS", "3")),
            analysis_initial_delay=float(env.get("ANALYSIS_INITIAL_DELAY", "1.0")),
            port=int(env.get("PORT", "8080")),
        )
