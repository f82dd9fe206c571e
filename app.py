from __future__ import annotations
import os
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import config_map
from extensions import db, migrate

def register_blueprints(app: Flask) -> None:
    from blueprints.core import bp as core_bp
    from blueprints.agenda.routes import api_bp as agenda_api_bp
    from blueprints.chat.routes import api_bp as chat_api_bp
    from blueprints.reports.routes import api_bp as reports_api_bp

    # core without prefix -> '/health' at the root
    app.register_blueprint(core_bp)
    app.register_blueprint(agenda_api_bp, url_prefix="/api/v1")
    app.register_blueprint(chat_api_bp, url_prefix="/api/v1")
    app.register_blueprint(reports_api_bp, url_prefix="/api/v1")

def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def _http_error(ex: HTTPException):
        return jsonify({"error": ex.name.lower().replace(" ", "_"), "message": ex.description}), ex.code

def create_app(config_name: str | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    cfg_name = config_name or os.getenv("FLASK_CONFIG", "default")
    app.config.from_object(config_map[cfg_name])
    # pytest sets PYTEST_CURRENT_TEST; never let a test run touch the file database
    if os.environ.get("PYTEST_CURRENT_TEST"):
        app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass
    db.init_app(app)
    migrate.init_app(app, db)

    from blueprints.agenda.services import init_store
    from seed import register_commands
    init_store(app)
    register_blueprints(app)
    register_error_handlers(app)
    register_commands(app)
    return app
