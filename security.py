"""
Security Utilities & Middleware
Response headers, CORS, JSON error handling and request logging for the board API
"""
import os
import time
from typing import Dict, Any
from flask import Flask, request, jsonify, g, Response
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
import logging

from services.errors import InvalidOperationError, NotFoundError
from validators import ValidationError

logger = logging.getLogger(__name__)

# Health probes are polled constantly; keep them out of the request log
QUIET_PATHS = ('/api/health', '/api/ping', '/api/ready')

API_RESPONSE_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'Content-Security-Policy': "default-src 'none'; frame-ancestors 'none'",
    'Referrer-Policy': 'no-referrer',
    'Cache-Control': 'no-store',
}

# Headers the board client sends: JSON bodies plus the acting user from the gateway
BOARD_CLIENT_HEADERS = ['Content-Type', 'Authorization', 'X-User-Id', 'X-User-Name']


def setup_security_headers(app: Flask):
    """Stamp every API response with the hardening headers"""
    @app.after_request
    def add_security_headers(response: Response) -> Response:
        for name, value in API_RESPONSE_HEADERS.items():
            response.headers.setdefault(name, value)
        if not app.debug:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response


def setup_cors(app: Flask, config: Dict[str, Any]):
    """
    Allow the board front end to call /api/*

    Args:
        app: Flask application instance
        config: Application configuration dictionary
    """
    origins = config.get('CORS_ORIGINS') or ['*']

    if '*' in origins and not app.debug:
        logger.warning("CORS allows any origin; set CORS_ORIGINS for this deployment")

    CORS(
        app,
        resources={r'/api/*': {'origins': origins}},
        methods=config.get('CORS_METHODS', ['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS']),
        allow_headers=BOARD_CLIENT_HEADERS,
        max_age=3600
    )
    logger.info(f"CORS enabled for /api/* from {', '.join(origins)}")


def sanitize_error_response(error: Exception, include_details: bool = False) -> Dict[str, Any]:
    """
    Body for an unexpected failure; exception text only when include_details is set (debug)
    """
    body = {
        'success': False,
        'error': 'Internal Server Error',
        'message': 'An error occurred while processing your request'
    }
    if include_details:
        body['details'] = str(error)
        body['type'] = type(error).__name__
    return body


def setup_error_handlers(app: Flask):
    """
    Register JSON error handlers.

    ValidationError and InvalidOperationError become 400, NotFoundError
    becomes 404, other HTTP errors keep their status, anything else is a
    sanitized 500.
    """
    include_details = app.debug

    @app.errorhandler(ValidationError)
    def validation_error(error):
        body = {'success': False, 'error': error.message}
        if error.field:
            body['field'] = error.field
        return jsonify(body), 400

    @app.errorhandler(InvalidOperationError)
    def invalid_operation(error):
        logger.warning(f"Rejected {request.method} {request.path}: {error}")
        return jsonify({'success': False, 'error': str(error)}), 400

    @app.errorhandler(NotFoundError)
    def resource_not_found(error):
        return jsonify({'success': False, 'error': str(error)}), 404

    @app.errorhandler(HTTPException)
    def http_error(error):
        if error.code is not None and error.code >= 500:
            logger.error(f"{request.method} {request.path} failed: {error}")
        return jsonify({
            'success': False,
            'error': error.name,
            'message': error.description
        }), error.code

    @app.errorhandler(Exception)
    def unexpected_error(error):
        logger.error(f"Unhandled error on {request.method} {request.path}: {error}", exc_info=True)
        return jsonify(sanitize_error_response(error, include_details)), 500


def setup_request_logging(app: Flask):
    """One log line per request: method, path, acting user, status and duration"""
    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response: Response) -> Response:
        if request.path in QUIET_PATHS:
            return response

        started = g.get('request_started')
        elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        logger.info(
            f"{request.method} {request.path} "
            f"user={request.headers.get('X-User-Id', '-')} "
            f"status={response.status_code} {elapsed_ms:.1f}ms"
        )
        return response


def check_required_environment(names, app: Flask) -> bool:
    """Log any of the named environment variables that are unset; True when all are present"""
    missing = [name for name in names if not os.environ.get(name)]
    if missing:
        log = logger.warning if app.debug else logger.error
        log(f"Missing environment variables: {', '.join(missing)}")
    return not missing


def setup_security(app: Flask, config: Dict[str, Any]):
    """
    Install headers, CORS, error handlers and request logging

    Args:
        app: Flask application instance
        config: Application configuration dictionary
    """
    setup_cors(app, config)
    setup_security_headers(app)
    setup_error_handlers(app)
    setup_request_logging(app)

    if not app.debug:
        check_required_environment(['SECRET_KEY', 'DATABASE_URL'], app)

    logger.info("Security configuration complete")
