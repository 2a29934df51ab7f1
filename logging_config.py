"""
Centralized Logging Configuration
Console logging always, plus a size-rotated file under logs/ when LOG_TO_FILE is set
"""
import logging
import logging.handlers
from pathlib import Path

LOG_DIR = Path('logs')
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _reset_handlers(logger):
    # create_app can run several times in one process (tests); don't leak file handles
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logging(app):
    """
    Configure the root logger from LOG_LEVEL, LOG_FORMAT, LOG_TO_FILE and LOG_FILE

    Args:
        app: Flask application instance

    Returns:
        The configured root logger
    """
    level = getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO)
    formatter = logging.Formatter(app.config['LOG_FORMAT'])

    root_logger = logging.getLogger()
    _reset_handlers(root_logger)
    root_logger.setLevel(level)

    handlers = [logging.StreamHandler()]

    log_path = None
    if app.config.get('LOG_TO_FILE', True):
        LOG_DIR.mkdir(exist_ok=True)
        log_path = LOG_DIR / app.config['LOG_FILE']
        handlers.append(logging.handlers.RotatingFileHandler(
            log_path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS
        ))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    # Request lines come from security.setup_request_logging; SQL only when echo is on
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    sql_level = logging.INFO if app.config.get('DATABASE_ECHO') else logging.WARNING
    logging.getLogger('sqlalchemy.engine').setLevel(sql_level)

    app.logger.info(
        f"Logging at {logging.getLevelName(level)}"
        + (f", writing to {log_path}" if log_path else ", console only")
    )
    return root_logger
