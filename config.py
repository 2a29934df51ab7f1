"""
Centralized Configuration for the Project Board backend
Manages environment-specific settings for the database, logging and API limits.
"""
import os


class Config:
    """Base configuration with defaults"""

    # Flask Settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or os.urandom(32).hex()
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max request body
    JSON_SORT_KEYS = False  # applied to app.json by create_app

    # CORS Settings
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
    CORS_METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']

    # Database Settings
    DATABASE_URL = os.environ.get('DATABASE_URL', 'sqlite:///project_board.db')
    DATABASE_ECHO = os.environ.get('DATABASE_ECHO', 'false').lower() == 'true'

    # Pagination
    DEFAULT_PAGE_SIZE = int(os.environ.get('DEFAULT_PAGE_SIZE', '20'))
    MAX_PAGE_SIZE = int(os.environ.get('MAX_PAGE_SIZE', '100'))

    # Attachments
    MAX_ATTACHMENT_SIZE = 10 * 1024 * 1024  # 10MB

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')
    LOG_TO_FILE = os.environ.get('LOG_TO_FILE', 'true').lower() == 'true'


class DevelopmentConfig(Config):
    """Development-specific configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = 'DEBUG'
    CORS_ORIGINS = ['*']


class ProductionConfig(Config):
    """Production-specific configuration"""
    DEBUG = False
    TESTING = False
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'https://localhost').split(',')
    PREFERRED_URL_SCHEME = 'https'


class TestingConfig(Config):
    """Testing-specific configuration"""
    DEBUG = True
    TESTING = True
    DATABASE_URL = 'sqlite://'
    LOG_TO_FILE = False


# Configuration selector
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}


def get_config(name=None):
    """Get configuration by name, falling back to the FLASK_ENV environment variable"""
    env = name or os.environ.get('FLASK_ENV', 'development')
    return config_by_name.get(env, DevelopmentConfig)
