"""
Health Check & Monitoring Endpoints
Liveness, readiness (database), metrics and ping for load balancers and monitoring
"""
import os
import sys
import time
import psutil
from datetime import datetime
from typing import Dict, Any
from flask import Blueprint, jsonify
import logging

logger = logging.getLogger(__name__)

SERVICE_NAME = 'roofing-sales-dashboard'
SERVICE_VERSION = '1.0.0'

# Create Blueprint for health check routes
health_bp = Blueprint('health', __name__)

# Track application start time
START_TIME = time.time()


def get_system_metrics() -> Dict[str, Any]:
    """
    Get basic process metrics

    Returns:
        Dictionary of system metrics, empty if psutil cannot read them
    """
    try:
        process = psutil.Process()

        return {
            'cpu_percent': process.cpu_percent(interval=0.1),
            'memory_mb': round(process.memory_info().rss / 1024 / 1024, 2),
            'memory_percent': round(process.memory_percent(), 2),
            'threads': process.num_threads(),
        }
    except psutil.Error as e:
        logger.warning(f"Failed to get system metrics: {e}")
        return {}


def get_uptime() -> Dict[str, Any]:
    uptime_seconds = time.time() - START_TIME

    return {
        'uptime_seconds': round(uptime_seconds, 2),
        'uptime_minutes': round(uptime_seconds / 60, 2),
        'uptime_hours': round(uptime_seconds / 3600, 2),
        'started_at': datetime.fromtimestamp(START_TIME).isoformat()
    }


def check_database() -> Dict[str, Any]:
    """
    Check database connectivity

    Returns:
        Dictionary with 'connected' and, on failure, 'error'
    """
    from database.connection import check_db_connection, is_db_configured

    if not is_db_configured():
        return {'configured': False, 'connected': False}

    try:
        check_db_connection()
        return {'configured': True, 'connected': True}
    except RuntimeError as e:
        return {'configured': True, 'connected': False, 'error': str(e)}


def check_scheduler() -> Dict[str, Any]:
    from services.scheduler import get_scheduler

    scheduler = get_scheduler()
    return {
        'running': scheduler.running,
        'jobs': scheduler.get_job_status()
    }


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Basic health check endpoint
    Returns 200 if application is running
    """
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': SERVICE_NAME
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """
    Readiness probe endpoint
    Returns 200 once the database answers, 503 otherwise
    """
    try:
        database = check_database()
        is_ready = database['connected']

        response = {
            'status': 'ready' if is_ready else 'not_ready',
            'timestamp': datetime.utcnow().isoformat(),
            'checks': {
                'database': database
            }
        }

        return jsonify(response), 200 if is_ready else 503

    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return jsonify({
            'status': 'error',
            'error': str(e),
            'timestamp': datetime.utcnow().isoformat()
        }), 503


@health_bp.route('/metrics', methods=['GET'])
def metrics():
    """
    Basic metrics endpoint
    Returns process metrics, uptime and sync scheduler state
    """
    try:
        response = {
            'timestamp': datetime.utcnow().isoformat(),
            'service': SERVICE_NAME,
            'version': SERVICE_VERSION,
            'environment': os.environ.get('FLASK_ENV', 'production'),
            'uptime': get_uptime(),
            'system': get_system_metrics(),
            'scheduler': check_scheduler(),
            'python_version': sys.version.split()[0]
        }

        return jsonify(response), 200

    except Exception as e:
        logger.error(f"Metrics collection failed: {e}")
        return jsonify({
            'status': 'error',
            'error': str(e),
            'timestamp': datetime.utcnow().isoformat()
        }), 500


@health_bp.route('/ping', methods=['GET'])
def ping():
    """
    Simple ping endpoint
    Returns immediate response for basic connectivity tests
    """
    return 'pong', 200


def register_health_checks(app):
    """
    Register health check blueprint with Flask app

    Args:
        app: Flask application instance
    """
    app.register_blueprint(health_bp, url_prefix='/api')
    logger.info("Health check endpoints registered")
    logger.info("Available endpoints: /api/health, /api/ready, /api/metrics, /api/ping")
