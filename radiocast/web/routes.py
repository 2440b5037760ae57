## routes.py
from __future__ import annotations

import hmac
from datetime import datetime, timezone

from flask import Blueprint, Response, abort, current_app, jsonify, redirect, render_template, request

from radiocast.config import AppSettings
from radiocast.domain.errors import (
    BusyError,
    ContextCancelledError,
    LLMError,
    RadiocastError,
    StorageError,
    StorageNotFoundError,
)
from radiocast.repositories.storage import StorageBackend, content_type, report_index_keys
from radiocast.services.report_service import ReportService
from radiocast.utils.context import RequestContext
from radiocast.utils.timeparse import format_rfc3339
from radiocast.version import get_version
from radiocast.web.disconnect import DisconnectWatcher

DEFAULT_REPORT_LIMIT = 10
MAX_REPORT_LIMIT = 100

# Nginx-style "client closed request".
STATUS_CLIENT_CLOSED = 499


def _now() -> str:
    return format_rfc3339(datetime.now(timezone.utc))


def _parse_limit(raw: str | None) -> int:
    raw = (raw or "").strip()
    if not raw.isdigit() or int(raw) <= 0:
        return DEFAULT_REPORT_LIMIT
    return min(int(raw), MAX_REPORT_LIMIT)


def _error(status: int, error: str, message: str, state: str = "error"):
    return jsonify({"error": error, "message": message, "status": state}), status


def create_blueprint(report_service: ReportService, storage: StorageBackend, settings: AppSettings) -> Blueprint:
    bp = Blueprint("web", __name__)

    def authorized() -> bool:
        expected = settings.generate_api_key
        if not expected:
            return True
        supplied = request.headers.get("X-API-Key") or request.args.get("api_key") or ""
        return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))

    @bp.get("/health")
    def health():
        try:
            storage.list("", recursive=False)
            storage_state = "ok"
        except (RadiocastError, OSError) as e:
            current_app.logger.warning("Health check: storage unavailable: %s", e)
            storage_state = "error"

        return jsonify({
            "status": "healthy",
            "timestamp": _now(),
            "checks": {"storage": storage_state, "config": "ok"},
            "version": get_version(),
        })

    @bp.post("/generate")
    def generate():
        if not authorized():
            current_app.logger.warning("Rejected /generate from %s: bad API key", request.remote_addr)
            return _error(401, "unauthorized", "Missing or invalid API key")

        ctx = RequestContext(timeout=settings.generate_timeout_seconds)
        watcher = DisconnectWatcher.start(request.environ, ctx)
        current_app.logger.info("Report generation requested")
        try:
            result = report_service.generate(ctx)
        except BusyError as e:
            return _error(409, "Report generation already in progress", str(e), state="conflict")
        except ContextCancelledError as e:
            current_app.logger.warning("Report generation cancelled: %s", e)
            return _error(STATUS_CLIENT_CLOSED, e.code, str(e))
        except LLMError as e:
            current_app.logger.error("Report generation failed [%s]: %s", e.code, e)
            return _error(500, e.code, str(e))
        except RadiocastError as e:
            current_app.logger.exception("Report generation failed [%s]", e.code)
            return _error(500, e.code, str(e))
        except Exception as e:
            current_app.logger.exception("Report generation failed unexpectedly")
            return _error(500, "INTERNAL_ERROR", str(e))
        finally:
            if watcher is not None:
                watcher.stop()

        current_app.logger.info("Report generated: %s", result.folder_path)
        return jsonify({
            "status": "success",
            "message": "Report generated successfully",
            "reportURL": f"/files/{result.report_key}",
            "timestamp": format_rfc3339(result.timestamp),
            "dataPoints": result.data_points,
            "folderPath": result.folder_path,
        })

    @bp.get("/reports")
    def reports():
        limit = _parse_limit(request.args.get("limit"))
        try:
            keys = report_index_keys(storage.list("", recursive=True))
        except (RadiocastError, OSError) as e:
            current_app.logger.error("Listing reports failed: %s", e)
            return _error(500, "STORAGE_ERROR", str(e))

        keys = keys[:limit]
        return jsonify({"reports": keys, "count": len(keys), "timestamp": _now()})

    @bp.get("/files/<path:key>")
    def files(key: str):
        if ".." in key:
            abort(400)
        try:
            data = storage.get(key)
        except StorageNotFoundError:
            abort(404)
        except StorageError as e:
            current_app.logger.error("Reading %s failed: %s", key, e)
            abort(500)
        return Response(data, mimetype=content_type(key))

    @bp.get("/")
    def index():
        try:
            keys = report_index_keys(storage.list("", recursive=True))
        except (RadiocastError, OSError) as e:
            current_app.logger.warning("Could not look up latest report: %s", e)
            keys = []

        if keys:
            return redirect(f"/files/{keys[0]}", code=302)
        return render_template("landing.html", version=get_version(), busy=report_service.busy())

    return bp
