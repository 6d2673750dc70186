# Overview: Domain error taxonomy and its mapping onto HTTP responses.

from __future__ import annotations

from flask import jsonify
from werkzeug.exceptions import HTTPException


class ClinicError(Exception):
    """Base class for errors that are reported to the caller as JSON."""

    status_code = 500

    def __init__(self, message: str, *, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class AuthenticationError(ClinicError):
    status_code = 401


class ValidationError(ClinicError, ValueError):
    """400-level input problem."""
    status_code = 400


class NotFoundError(ClinicError):
    status_code = 404


class PermissionDeniedError(ClinicError):
    """Operation not allowed for this record's type or state."""
    status_code = 400


class InsufficientStockError(ClinicError):
    status_code = 400


class StockConflictError(InsufficientStockError):
    """A reversal would drive stock negative; the stock log is inconsistent."""
    status_code = 409


class ConflictError(ClinicError, ValueError):
    """409-level business rule conflict (e.g., duplicate product)."""
    status_code = 409


class InternalFailure(ClinicError):
    status_code = 500


def error_response(exc: ClinicError):
    return jsonify(exc.to_dict()), exc.status_code


def register_error_handlers(app) -> None:
    @app.errorhandler(ClinicError)
    def handle_clinic_error(exc: ClinicError):
        return error_response(exc)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"error": exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        app.logger.exception("Unhandled error")
        return jsonify({"error": "Internal server error"}), 500
