"""
Core package for the meeting transcription pipeline.

This package contains the modular components used by the HTTP entrypoint in
:mod:`minutes_api.main` to fetch an uploaded recording, transcribe it with a
speech provider, extract structured insights with a language model, and
record the outcome on the meeting row.
"""
