import json
import logging
import os

from flask import Flask, jsonify, request

from minutes_pipeline.config import Settings
from minutes_pipeline.errors import (
    ConfigurationError,
    PersistenceError,
    ValidationError,
    failure_message,
)
from minutes_pipeline.meeting_store import SupabaseMeetingStore
from minutes_pipeline.models import TranscriptionRequest
from minutes_pipeline.orchestrator import TranscriptionPipeline

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, x-client-info, apikey, x-api-key",
    "Access-Control-Max-Age": "86400",
}

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _error(message, status):
    return jsonify({"error": message}), status


def create_app(settings=None, pipeline=None, meeting_store=None):
    """Build the Flask application.

    ``pipeline`` and ``meeting_store`` are built from ``settings`` on first
    use unless supplied, which lets tests pass in stubs.
    """
    settings = settings or Settings.from_env()
    app = Flask(__name__)
    cache = {"pipeline": pipeline, "store": meeting_store}

    def get_pipeline():
        if cache["pipeline"] is None:
            cache["pipeline"] = TranscriptionPipeline.from_settings(settings)
        return cache["pipeline"]

    def get_store():
        if cache["store"] is None:
            cache["store"] = SupabaseMeetingStore(
                settings.supabase_url,
                settings.supabase_service_key,
                table=settings.meetings_table,
                timeout=settings.http_timeout,
            )
        return cache["store"]

    @app.after_request
    def add_cors_headers(response):
        response.headers.update(CORS_HEADERS)
        return response

    @app.route("/", methods=ALL_METHODS)
    @app.route("/transcribe", methods=ALL_METHODS)
    @app.route("/generate-transcription", methods=ALL_METHODS)
    def transcribe():
        logger.info(json.dumps({"event": "request", "method": request.method}))
        if request.method == "OPTIONS":
            return "", 204
        if request.method != "POST":
            logger.error(json.dumps({"event": "method_not_allowed", "method": request.method}))
            return _error("Method not allowed. Use POST.", 405)

        try:
            payload = json.loads(request.get_data(as_text=True))
        except ValueError:
            logger.error(json.dumps({"event": "invalid_json"}))
            return _error("Invalid JSON in request body", 400)

        try:
            transcription_request = TranscriptionRequest.from_payload(payload)
        except ValidationError as exc:
            logger.error(json.dumps({"event": "validation_error", "error": str(exc)}))
            return _error(str(exc), 400)

        logger.info(
            json.dumps(
                {
                    "event": "start_transcription",
                    "file_path": transcription_request.file_path,
                    "file_type": transcription_request.file_type,
                    "file_name": transcription_request.file_name,
                    "user_id": transcription_request.user_id,
                    "meeting_id": transcription_request.meeting_id,
                }
            )
        )

        try:
            pipeline = get_pipeline()
        except ConfigurationError as exc:
            logger.error(json.dumps({"event": "config_error", "error": str(exc)}))
            return _error(str(exc), 500)
        except Exception as exc:
            message = failure_message(exc)
            logger.error(json.dumps({"event": "pipeline_init_failed", "error": message}))
            return jsonify({"success": False, "error": message}), 500

        try:
            result = pipeline.run(transcription_request)
        except Exception as exc:
            message = failure_message(exc)
            logger.error(json.dumps({"event": "transcription_failed", "error": message}))
            return jsonify({"success": False, "error": message}), 500

        logger.info(json.dumps({"event": "transcription_complete", "meeting_id": result.meeting_id}))
        return jsonify(result.to_response()), 200

    @app.route("/meetings/<meeting_id>/status", methods=["GET"])
    def meeting_status(meeting_id):
        try:
            row = get_store().fetch(meeting_id)
        except PersistenceError as exc:
            logger.error(json.dumps({"event": "status_error", "meeting_id": meeting_id, "error": str(exc)}))
            return jsonify({"success": False, "error": str(exc)}), 500
        if row is None:
            return jsonify({"success": False, "error": "Meeting not found"}), 404
        return jsonify(
            {
                "success": True,
                "data": {
                    "id": row.get("id", meeting_id),
                    "status": row.get("status"),
                    "transcript": row.get("transcript"),
                    "summary": row.get("summary"),
                    "keyPoints": row.get("key_points") or [],
                    "actionItems": row.get("action_items") or [],
                    "participants": row.get("participants") or [],
                    "errorMessage": row.get("error_message"),
                    "startedAt": row.get("started_at"),
                },
            }
        ), 200

    return app


app = create_app()


def main():
    app.run(host="0.0.0.0", port=Settings.from_env().port)


if __name__ == "__main__":
    main()
