from __future__ import annotations
import json, logging
from datetime import datetime

from flask import g, jsonify, request
from werkzeug.wrappers.response import Response

from . import bp

class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.utcnow().isoformat(timespec="milliseconds") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in ("event","path","method","status","duration_ms"):
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

def _setup_structured_logging(app):
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    root = logging.getLogger()
    has_json = any(
        isinstance(h, logging.StreamHandler)
        and isinstance(getattr(h, "formatter", None), JSONFormatter)
        for h in root.handlers
    )
    if not has_json:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
    # module loggers (blueprints.agenda.store, ...) propagate to root
    root.setLevel(level)
    app.logger.setLevel(level)

@bp.before_app_request
def _start_timer():
    g._req_start = datetime.utcnow()

@bp.after_app_request
def _log_request(response: Response):
    try:
        duration_ms = int((datetime.utcnow() - g._req_start).total_seconds() * 1000)
    except AttributeError:
        duration_ms = None
    extra = {
        "event":"http_request",
        "path":request.path,
        "method":request.method,
        "status":response.status_code,
        "duration_ms":duration_ms,
    }
    logging.getLogger("http").info("request handled", extra=extra)
    return response

@bp.record_once
def _on_register(state):
    _setup_structured_logging(state.app)

@bp.get("/health")
def health():
    return jsonify({
        "status":"ok",
        "ts": datetime.utcnow().isoformat(timespec="seconds")+"Z",
    })
