"""
Project Board - Application Package

This package contains the HTTP layer:
- api/: HTTP route handlers (Flask Blueprints)
- utils/: Shared request helpers

The app factory lives in app_init.py at the project root; data access
lives in the services/ repositories.
"""

import logging

from app.api.projects import projects_bp
from app.api.columns import columns_bp
from app.api.tasks import tasks_bp
from app.api.comments import comments_bp
from app.api.attachments import attachments_bp

logger = logging.getLogger(__name__)


def register_blueprints(app):
    """
    Register all API blueprints with the Flask app.
    Called from create_app() after configuration and database setup.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(projects_bp)
    app.register_blueprint(columns_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(comments_bp)
    app.register_blueprint(attachments_bp)
    logger.info("API blueprints registered")


__all__ = ['register_blueprints', 'projects_bp', 'columns_bp', 'tasks_bp', 'comments_bp', 'attachments_bp']
