"""
Health Check & Monitoring Endpoints
Liveness, readiness (database reachable and board tables present) and metrics
"""
import os
import sys
import time
import psutil
from datetime import datetime, timedelta
from typing import Dict, Any
from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError
import logging

from database.connection import check_db_connection, get_missing_tables, get_engine, get_db_session
from database.models import Project, ProjectTask, DailyTask, TaskComment, TaskAttachment
from services.base_repository import BaseRepository

logger = logging.getLogger(__name__)

SERVICE_NAME = 'project-board-backend'
SERVICE_VERSION = '1.0.0'

# Soft-deletable records reported by /metrics
COUNTED_MODELS = {
    'projects': Project,
    'project_tasks': ProjectTask,
    'daily_tasks': DailyTask,
    'comments': TaskComment,
    'attachments': TaskAttachment,
}

health_bp = Blueprint('health', __name__)

START_TIME = time.time()


def get_system_metrics() -> Dict[str, Any]:
    """
    Process CPU, memory and thread usage

    Returns:
        Dictionary of process metrics, empty if psutil cannot read them
    """
    try:
        process = psutil.Process()
        with process.oneshot():
            return {
                'cpu_percent': process.cpu_percent(interval=0.1),
                'memory_mb': round(process.memory_info().rss / (1024 * 1024), 1),
                'memory_percent': round(process.memory_percent(), 2),
                'threads': process.num_threads(),
            }
    except Exception as e:
        logger.warning(f"Failed to get system metrics: {e}")
        return {}


def get_uptime() -> Dict[str, Any]:
    seconds = time.time() - START_TIME
    return {
        'uptime_seconds': round(seconds, 2),
        'uptime': str(timedelta(seconds=int(seconds))),
        'started_at': datetime.fromtimestamp(START_TIME).isoformat()
    }


def check_database() -> Dict[str, Any]:
    """
    Ping the database and look for the board tables

    Returns:
        {'healthy': bool}, with 'missing_tables' or 'error' when unhealthy
    """
    try:
        check_db_connection()
        missing = get_missing_tables()
    except (RuntimeError, SQLAlchemyError) as e:
        return {'healthy': False, 'error': str(e)}

    if missing:
        return {'healthy': False, 'missing_tables': missing}
    return {'healthy': True}


def get_board_counts() -> Dict[str, int]:
    """Live (not soft-deleted) record counts; empty when the database cannot be read"""
    try:
        with get_db_session() as session:
            repo = BaseRepository(session)
            return {name: repo.count_live(model) for name, model in COUNTED_MODELS.items()}
    except SQLAlchemyError as e:
        logger.warning(f"Failed to count board records: {e}")
        return {}


@health_bp.route('/health', methods=['GET'])
def health_check():
    """Liveness: 200 whenever the process can answer"""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': SERVICE_NAME
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """
    Readiness probe endpoint
    Returns 200 when the database answers and has the board schema, 503 otherwise
    """
    database = check_database()
    ready = database['healthy']

    return jsonify({
        'status': 'ready' if ready else 'not_ready',
        'timestamp': datetime.utcnow().isoformat(),
        'checks': {'database': database}
    }), 200 if ready else 503


@health_bp.route('/metrics', methods=['GET'])
def metrics():
    """Service, process and board record metrics"""
    return jsonify({
        'timestamp': datetime.utcnow().isoformat(),
        'service': SERVICE_NAME,
        'version': SERVICE_VERSION,
        'environment': os.environ.get('FLASK_ENV', 'production'),
        'python_version': sys.version.split()[0],
        'database': get_engine().dialect.name,
        'uptime': get_uptime(),
        'system': get_system_metrics(),
        'board': get_board_counts()
    }), 200


@health_bp.route('/ping', methods=['GET'])
def ping():
    return 'pong', 200


def register_health_checks(app):
    """Mount the health endpoints under /api"""
    app.register_blueprint(health_bp, url_prefix='/api')
    logger.info("Health endpoints registered: /api/health, /api/ready, /api/metrics, /api/ping")
