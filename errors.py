import logging
from functools import wraps

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from model import db

logger = logging.getLogger(__name__)


class TaskBoardError(Exception):
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(TaskBoardError):
    status_code = 400


class AuthError(TaskBoardError):
    status_code = 401


class NotFoundError(TaskBoardError):
    status_code = 404


class ConflictError(TaskBoardError):
    status_code = 409


def api_errors(message):
    """Turn service errors into JSON responses.

    Known errors keep their status and message. Anything else is logged with
    its traceback and reported to the caller as ``message`` with a 500.
    """
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except TaskBoardError as e:
                db.session.rollback()
                return jsonify({"error": e.message}), e.status_code
            except HTTPException:
                raise
            except Exception:
                db.session.rollback()
                logger.exception("%s (%s %s)", message, request.method, request.path)
                return jsonify({"error": message}), 500
        return decorated
    return decorator


def register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def http_error(e):
        if not request.path.startswith("/api") and e.code != 413:
            return e
        if e.code == 413:
            limit_mb = (app.config.get("MAX_CONTENT_LENGTH") or 0) // (1024 * 1024)
            return jsonify({"error": f"Request body exceeds the {limit_mb}MB limit"}), 413
        return jsonify({"error": e.description}), e.code
