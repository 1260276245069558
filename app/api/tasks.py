"""
Tasks Routes Blueprint

Lead tasks stored in Twenty CRM:
- /api/tasks: List tasks for a lead / create a task
- /api/tasks/<task_id>: Update/delete a task
- /api/tasks/all: Every task, optionally for one sales rep
- /api/tasks/pm: Install and PM tasks for a project manager
"""

import logging
from flask import Blueprint, request, jsonify

from auth import company_access_required
from app.utils.helpers import CRM_ERRORS, get_json_body, get_company_id, error_response, crm_error_response

logger = logging.getLogger(__name__)

# Create blueprint
tasks_bp = Blueprint('tasks_bp', __name__)


def is_pm_task(task, project_manager):
    """Lead belongs to the project manager and is flagged for install or PM follow-up"""
    lead_pm = (task.get('leadProjectManager') or '').lower()
    if not lead_pm or lead_pm != project_manager.lower():
        return False
    return task.get('install') == 'YES' or task.get('pmTask') == 'YES'


@tasks_bp.route('/api/tasks', methods=['GET'])
@company_access_required
def list_tasks():
    try:
        from services.crm_proxy import get_crm_client

        lead_id = request.args.get('leadId')
        company_id = get_company_id({})
        if not lead_id or not company_id:
            return error_response('companyId and leadId are required', 400)

        tasks = get_crm_client(company_id).get_tasks_for_lead(lead_id)
        return jsonify({'success': True, 'tasks': tasks})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'fetch tasks')
    except Exception as e:
        logger.error(f"Error fetching tasks: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@tasks_bp.route('/api/tasks', methods=['POST'])
@company_access_required
def create_task():
    try:
        from services.crm_proxy import get_crm_client

        data = get_json_body()
        company_id = get_company_id(data)
        lead_id = data.get('leadId')
        title = data.get('title')
        if not company_id or not lead_id or not title:
            return error_response('companyId, leadId and title are required', 400)

        task = get_crm_client(company_id).create_task(
            lead_id,
            title,
            body=data.get('body'),
            status=data.get('status'),
            due_at=data.get('dueAt')
        )
        return jsonify({'success': True, 'task': task}), 201

    except CRM_ERRORS as e:
        return crm_error_response(e, 'create task')
    except Exception as e:
        logger.error(f"Error creating task: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@tasks_bp.route('/api/tasks/all', methods=['GET'])
@company_access_required
def list_all_tasks():
    try:
        from services.crm_proxy import get_crm_client

        company_id = get_company_id({})
        if not company_id:
            return error_response('companyId is required', 400)

        tasks = get_crm_client(company_id).get_all_tasks()

        sales_rep = request.args.get('salesRep')
        if sales_rep:
            tasks = [task for task in tasks if task.get('leadSalesRep') == sales_rep]

        return jsonify({'success': True, 'tasks': tasks, 'total': len(tasks)})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'fetch tasks')
    except Exception as e:
        logger.error(f"Error fetching all tasks: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@tasks_bp.route('/api/tasks/pm', methods=['GET'])
@company_access_required
def list_pm_tasks():
    try:
        from services.crm_proxy import get_crm_client

        company_id = get_company_id({})
        project_manager = request.args.get('projectManager')
        if not company_id or not project_manager:
            return error_response('companyId and projectManager are required', 400)

        tasks = [
            task for task in get_crm_client(company_id).get_all_tasks()
            if is_pm_task(task, project_manager)
        ]
        return jsonify({'success': True, 'tasks': tasks, 'total': len(tasks)})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'fetch project manager tasks')
    except Exception as e:
        logger.error(f"Error fetching PM tasks: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@tasks_bp.route('/api/tasks/<task_id>', methods=['PATCH'])
@company_access_required
def update_task(task_id):
    try:
        from services.crm_proxy import get_crm_client

        data = get_json_body()
        company_id = get_company_id(data)
        if not company_id:
            return error_response('companyId is required', 400)

        updates = data.get('updates') or {}
        if not updates:
            return error_response('No updates provided', 400)

        task = get_crm_client(company_id).update_task(task_id, updates)
        if not task:
            return error_response('Task not found', 404)
        return jsonify({'success': True, 'task': task})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'update task')
    except Exception as e:
        logger.error(f"Error updating task {task_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@tasks_bp.route('/api/tasks/<task_id>', methods=['DELETE'])
@company_access_required
def delete_task(task_id):
    try:
        from services.crm_proxy import get_crm_client

        company_id = get_company_id({})
        if not company_id:
            return error_response('companyId is required', 400)

        deleted_id = get_crm_client(company_id).delete_task(task_id)
        return jsonify({'success': True, 'deletedId': deleted_id or task_id})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'delete task')
    except Exception as e:
        logger.error(f"Error deleting task {task_id}: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
