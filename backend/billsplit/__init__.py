from __future__ import annotations

from typing import Optional

from flask import Flask
from flask_cors import CORS

from billsplit.api.routes import api_bp
from billsplit.config import Config
from billsplit.events import EventCallback, EventEmitter
from billsplit.logging_setup import configure_logging


def create_app(on_event: Optional[EventCallback] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    configure_logging(app.config["LOG_LEVEL"], env=app.config["ENV"])
    CORS(app)  # ok for MVP; tighten later

    app.extensions["billsplit.events"] = EventEmitter(on_event)
    app.register_blueprint(api_bp)
    return app
