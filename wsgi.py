"""
WSGI Entry Point for Gunicorn

    gunicorn wsgi:app

Configuration comes from FLASK_ENV and the environment variables read in config.py.
"""

from app_init import create_app

app = create_app()
