"""
Scheduler Routes Blueprint

Background sync scheduler:
- /api/scheduler/status: Scheduler state and per-job run history
- /api/scheduler/run/<job_id>: Run a job now (e.g. twenty_delta_sync)
"""

import logging
from flask import Blueprint, jsonify, current_app

from auth import admin_required

logger = logging.getLogger(__name__)

# Create blueprint
scheduler_bp = Blueprint('scheduler_bp', __name__)


@scheduler_bp.route('/api/scheduler/status', methods=['GET'])
@admin_required
def get_scheduler_status():
    try:
        from services.scheduler import get_scheduler

        scheduler = get_scheduler()
        return jsonify({
            'success': True,
            'enabled': current_app.config.get('SCHEDULER_ENABLED', False),
            'running': scheduler.running,
            'jobs': scheduler.get_job_status()
        })

    except Exception as e:
        logger.error(f"Error getting scheduler status: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@scheduler_bp.route('/api/scheduler/run/<job_id>', methods=['POST'])
@admin_required
def run_scheduler_job(job_id):
    """Run a job synchronously and report its outcome."""
    try:
        from services.scheduler import get_scheduler

        scheduler = get_scheduler()
        if not scheduler.has_job(job_id):
            return jsonify({'success': False, 'error': 'Job not found'}), 404

        succeeded = scheduler.run_job_now(job_id)
        status = scheduler.get_job_status().get(job_id, {})
        if not succeeded:
            return jsonify({'success': False, 'error': status.get('last_error'), 'job': status}), 500

        return jsonify({'success': True, 'message': f'Job {job_id} executed', 'job': status})

    except Exception as e:
        logger.error(f"Error running scheduler job: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
