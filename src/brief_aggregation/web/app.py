"""
Flask application for the brief aggregation HTTP API.
"""

from pathlib import Path
from typing import Optional

from flask import Flask, current_app
from werkzeug.exceptions import HTTPException

from brief_aggregation.config import get_config
from brief_aggregation.core.factories import Components, create_components
from brief_aggregation.logger import get_logger
from brief_aggregation.storage.database import DatabaseManager
from brief_aggregation.web.blueprints import (
    DigestBlueprint,
    FeedBlueprint,
    FetchBlueprint,
    SchedulerBlueprint,
    SubscriptionBlueprint,
)
from brief_aggregation.web.serializers import api_response

logger = get_logger(__name__)

EXTENSION_KEY = "brief_aggregation"


def get_components(app: Optional[Flask] = None) -> Components:
    """Components bound to ``app`` (defaults to the current app)."""
    app = app or current_app
    return app.extensions[EXTENSION_KEY]


def create_app(
    db_path: Optional[str] = None,
    components: Optional[Components] = None,
    debug: bool = False,
    start_scheduler: Optional[bool] = None,
) -> Flask:
    """Create and configure Flask application.

    Args:
        db_path: SQLite database path; ignored when ``components`` is given
        components: Pre-wired components (tests inject their own)
        debug: Enable debug mode
        start_scheduler: Start background jobs; defaults to ``web.start_scheduler``

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    config = get_config()
    app.config["SECRET_KEY"] = config.web.secret_key
    app.config["DEBUG"] = debug or config.web.debug

    if components is None:
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        db_manager = DatabaseManager(db_path) if db_path else DatabaseManager(db_config=config.database)
        db_manager.init_db()
        components = create_components(db_manager, config=config)

    app.extensions[EXTENSION_KEY] = components

    for blueprint in (
        FetchBlueprint(components),
        DigestBlueprint(components),
        SubscriptionBlueprint(components),
        FeedBlueprint(components),
        SchedulerBlueprint(components),
    ):
        app.register_blueprint(blueprint.blueprint)

    @app.route("/health")
    def health():
        return api_response(
            success=True,
            data={"status": "ok", "scheduler_running": components.scheduler.is_running()},
        )

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        return api_response(success=False, error=e.description, status=e.code or 500)

    @app.errorhandler(Exception)
    def server_error(e: Exception):
        logger.exception(f"Unhandled error: {e}")
        return api_response(success=False, error="Internal server error", status=500)

    if start_scheduler is None:
        start_scheduler = config.web.start_scheduler and config.scheduler.enabled
    if start_scheduler:
        components.scheduler.start()

    logger.info(f"Web app created with database: {db_path or config.database.path}")
    return app
