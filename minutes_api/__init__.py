"""HTTP entrypoint for the meeting transcription pipeline."""
