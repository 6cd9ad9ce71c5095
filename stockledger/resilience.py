"""Global resilience and error-handler registration.

Synopsis:
Registers teardown and error handlers for database rollback safety, ledger
error rendering, and JSON fallbacks for database errors. Only an unreachable
database (OperationalError) is reported as retryable; rejected values and
constraint violations are not.

Glossary:
- Resilience handler: Global request teardown/error behavior for known failures.
- Ledger error: Any ``LedgerError`` raised by the inventory ledger service.
"""

from __future__ import annotations

import logging

from flask import jsonify
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError, OperationalError, SQLAlchemyError

from .extensions import db
from .services.inventory_ledger.exceptions import LedgerError

logger = logging.getLogger(__name__)


def _no_store(response):
    response.headers["Cache-Control"] = "no-store"
    return response


def _db_error_response(code: str, message: str, status: int, retryable: bool = False):
    payload = {
        "success": False,
        "error": code,
        "message": message,
        "retryable": retryable,
        "details": {},
    }
    return _no_store(jsonify(payload)), status


def register_resilience_handlers(app) -> None:
    """Install global DB rollback and JSON error handlers."""

    @app.teardown_request
    def _rollback_on_error(exc):
        try:
            if exc is not None:
                db.session.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback during request teardown failed")
        finally:
            db.session.remove()

    @app.errorhandler(LedgerError)
    def _ledger_error_handler(error: LedgerError):
        db.session.rollback()
        if error.status_code >= 500 and not error.retryable:
            logger.error("Ledger error %s: %s %s", error.code, error.message, error.details)
        else:
            logger.info("Ledger refused request (%s): %s", error.code, error.message)
        return _no_store(jsonify(error.to_dict())), error.status_code

    @app.errorhandler(OperationalError)
    def _db_unavailable_handler(error):
        db.session.rollback()
        logger.warning("Database unavailable: %s", error.__class__.__name__)
        return _db_error_response(
            "service_unavailable",
            "Service temporarily unavailable. Please try again shortly.",
            503,
            retryable=True,
        )

    @app.errorhandler(DataError)
    def _db_data_error_handler(error):
        db.session.rollback()
        logger.info("Database rejected a value: %s", error.orig)
        return _db_error_response("invalid_argument", "A value is out of range for its column.", 400)

    @app.errorhandler(IntegrityError)
    def _db_integrity_error_handler(error):
        db.session.rollback()
        logger.error("Integrity error: %s", error.orig)
        return _db_error_response("integrity_error", "The change conflicts with stored data.", 500)

    @app.errorhandler(DBAPIError)
    def _db_error_handler(error):
        db.session.rollback()
        logger.exception("Database error: %s", error.__class__.__name__)
        return _db_error_response("database_error", "Unexpected database error.", 500)
