import logging
import traceback

from flask import Flask, current_app, render_template
from werkzeug.exceptions import HTTPException


logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Erro base da loja."""


class CatalogUnavailable(StorefrontError):
    """O banco de documentos não respondeu a uma consulta do catálogo."""


def _is_development() -> bool:
    return current_app.config.get("ENVIRONMENT") == "development"


def handle_error(exc: Exception):
    """Handler terminal: toda falha não tratada termina aqui."""
    if isinstance(exc, HTTPException):
        # Redirecionamentos de rota (RequestRedirect) e afins seguem direto
        if exc.code is None or exc.code < 400:
            return exc
        status = exc.code
        message = exc.name
        logger.info("%s %s", status, message)
    else:
        # Atributos `code` de outras libs (ex.: pymongo) não são status HTTP
        status = 500
        message = str(exc)
        logger.exception("Unhandled error: %s", message)

    error = ""
    if _is_development():
        error = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return render_template("error.html", message=message, error=error), status


def register_error_handlers(app: Flask) -> None:
    app.register_error_handler(Exception, handle_error)
