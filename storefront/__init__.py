import logging
import time
from typing import Mapping, Optional

from flask import Flask, g, request
from flask_pymongo import PyMongo
from flask_session import Session

from . import config, context
from .errors import register_error_handlers
from .models import Catalog
from .routes import ROUTE_GROUPS


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("storefront.access")

mongo = PyMongo()


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")


def _register_access_log(app: Flask) -> None:
    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response):
        started = g.pop("request_started", None)
        elapsed = (time.perf_counter() - started) * 1000 if started is not None else 0.0
        access_logger.info("%s %s %s %.1f ms", request.method, request.path, response.status_code, elapsed)
        return response


def create_app(test_config: Optional[Mapping] = None, catalog: Optional[Catalog] = None) -> Flask:
    app = Flask(__name__, static_folder="static", template_folder="templates")

    # Configurações: ambiente primeiro, depois o que o teste sobrescrever
    app.config.update(config.from_env())
    if test_config:
        app.config.update(test_config)
    _configure_logging(app.config["LOG_LEVEL"])

    if catalog is None:
        mongo.init_app(app)
        catalog = Catalog.from_database(mongo.db)
        # Sessões no mesmo MongoDB do catálogo
        app.config.setdefault("SESSION_MONGODB", mongo.cx)
    app.extensions["storefront"] = catalog

    # Sessão no servidor (o cookie só leva o id)
    Session(app)

    # Timer antes do pipeline, para o tempo incluir o catálogo
    _register_access_log(app)
    context.init_app(app)

    for prefix, blueprint in ROUTE_GROUPS:
        app.register_blueprint(blueprint, url_prefix=prefix)

    register_error_handlers(app)

    logger.info("Storefront configured (%s)", app.config["ENVIRONMENT"])
    return app
