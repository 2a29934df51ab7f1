"""
Application Initialization Module
Initializes the Flask app with configuration, logging, database and routes
"""
import os
from flask import Flask
from config import get_config
from logging_config import setup_logging
from security import setup_security
from health_checks import register_health_checks
from database.connection import configure_database, init_db
import logging

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """
    Application factory that creates and configures the Flask app

    Args:
        config_name: 'development', 'production' or 'testing';
                     defaults to FLASK_ENV

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    config_class = get_config(config_name)
    app.config.from_object(config_class)
    # Flask 2.3+ reads key ordering from the JSON provider, not app.config
    app.json.sort_keys = app.config['JSON_SORT_KEYS']

    setup_logging(app)

    logger.info("=" * 60)
    logger.info("Initializing Project Board backend")
    logger.info("=" * 60)
    logger.info(f"Environment: {config_name or os.environ.get('FLASK_ENV', 'development')}")
    logger.info(f"Debug mode: {app.debug}")

    # Setup security (CORS, headers, error handlers)
    setup_security(app, app.config)

    initialize_database(app)

    from app import register_blueprints
    register_blueprints(app)

    register_health_checks(app)

    logger.info("Application initialization complete")
    logger.info("=" * 60)

    return app


def initialize_database(app):
    """
    Bind the session factory to DATABASE_URL and create missing tables

    Args:
        app: Flask application instance
    """
    try:
        configure_database(app.config['DATABASE_URL'], echo=app.config.get('DATABASE_ECHO', False))
        init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise
