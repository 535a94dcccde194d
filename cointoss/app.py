"""
Coin Toss Live Experiment System - Main Application

Flask application that wires the store, the change feed and the HTTP and
Socket.IO surfaces together.

Architecture:
- services/: Session lifecycle, result ingestion, live aggregation, trials
- repository/: Data access layer (SessionRepository) and change feed
- routes/: HTTP endpoints (main, host, join) and host Socket.IO handlers (live)
- utils/: Exact binomial statistics, export helpers
"""

import logging
from typing import Any, Dict, Optional

from flask import Flask

from .config import Config
from .extensions import emit_to_room, socketio
from .repository import SessionRepository, ResultFeed
from .routes.main import main_bp
from .routes.host import host_bp
from .routes.join import join_bp
from .routes import live  # noqa: F401  registers the /host Socket.IO handlers
from .services.live import LiveAggregates


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def create_app(overrides: Optional[Dict[str, Any]] = None, store=None):
    """Application factory pattern"""
    config = Config(overrides)
    _configure_logging(config.log_level)

    app = Flask(__name__)
    app.config.update(config.as_flask_config())

    # One store handle for the whole process, handed to the services by the routes
    if store is None:
        store = SessionRepository(config.db_path, feed=ResultFeed())
    app.extensions['cointoss_store'] = store
    app.extensions['cointoss_live'] = LiveAggregates(store, emit_to_room)

    app.register_blueprint(main_bp)
    app.register_blueprint(host_bp)
    app.register_blueprint(join_bp)
    socketio.init_app(app, **config.socketio_options())

    logging.getLogger(__name__).info("[App] Store ready at %s", config.db_path)
    return app
