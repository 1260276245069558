"""
Office Manager Routes Blueprint

Team views for office managers. The team is every active mobile user whose
office_manager is the manager's username:
- /api/office-managers/team
- /api/office-managers/team-leads
- /api/office-managers/team-tasks
- /api/office-managers/team-activity
- /api/office-managers/team-member
- /api/office-managers/reassign-lead
"""

import logging
from flask import Blueprint, request, jsonify

from auth import company_access_required, get_current_user, is_admin, COMPANY_MANAGER_ROLES
from app.utils.helpers import CRM_ERRORS, get_json_body, get_company_id, error_response, crm_error_response

logger = logging.getLogger(__name__)

# Create blueprint
office_managers_bp = Blueprint('office_managers_bp', __name__)

TEAM_LEADS_LIMIT = 500


def _forbidden_manager(username):
    """Office managers may only look at their own team"""
    claims = get_current_user() or {}
    if is_admin(claims) or claims.get('role') in COMPANY_MANAGER_ROLES:
        return None
    if claims.get('username') != username:
        return error_response('You can only view your own team', 403)
    return None


def _fetch_team_leads(service, company_id):
    from services.crm_proxy import get_crm_client

    leads = get_crm_client(company_id).get_leads_full(limit=TEAM_LEADS_LIMIT)
    return service.team_leads(leads)


@office_managers_bp.route('/api/office-managers/team', methods=['GET'])
@company_access_required
def get_team():
    try:
        from database.connection import get_db_session
        from services.team_service import TeamService

        username = request.args.get('username')
        if not username:
            return error_response('Office manager username is required', 400)
        denied = _forbidden_manager(username)
        if denied:
            return denied

        with get_db_session() as session:
            team = TeamService(session, username, get_company_id({})).get_team()
        return jsonify({'success': True, 'team': team})

    except Exception as e:
        logger.error(f"Error fetching team: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@office_managers_bp.route('/api/office-managers/team-leads', methods=['GET'])
@company_access_required
def get_team_leads():
    try:
        from database.connection import get_db_session
        from services.team_service import TeamService

        username = request.args.get('username')
        company_id = get_company_id({})
        if not username or not company_id:
            return error_response('Office manager username and companyId are required', 400)
        denied = _forbidden_manager(username)
        if denied:
            return denied

        with get_db_session() as session:
            leads = _fetch_team_leads(TeamService(session, username, company_id), company_id)
        return jsonify({'success': True, 'leads': leads, 'total': len(leads)})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'fetch team leads')
    except Exception as e:
        logger.error(f"Error fetching team leads: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@office_managers_bp.route('/api/office-managers/team-tasks', methods=['GET'])
@company_access_required
def get_team_tasks():
    """Team leads with an appointment, soonest first."""
    try:
        from database.connection import get_db_session
        from services.team_service import TeamService

        username = request.args.get('username')
        company_id = get_company_id({})
        if not username or not company_id:
            return error_response('Office manager username and companyId are required', 400)
        denied = _forbidden_manager(username)
        if denied:
            return denied

        with get_db_session() as session:
            service = TeamService(session, username, company_id)
            appointments = service.appointments(_fetch_team_leads(service, company_id))
        return jsonify({'success': True, 'tasks': appointments, 'total': len(appointments)})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'fetch team tasks')
    except Exception as e:
        logger.error(f"Error fetching team tasks: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@office_managers_bp.route('/api/office-managers/team-activity', methods=['GET'])
@company_access_required
def get_team_activity():
    try:
        from database.connection import get_db_session
        from services.crm_proxy import get_crm_client
        from services.team_service import TeamService
        from validators import parse_limit

        username = request.args.get('username')
        company_id = get_company_id({})
        if not username or not company_id:
            return error_response('Office manager username and companyId are required', 400)
        denied = _forbidden_manager(username)
        if denied:
            return denied

        limit = parse_limit(request.args.get('limit'), default=50)

        with get_db_session() as session:
            service = TeamService(session, username, company_id)
            member_count = len(service.members())
            if not member_count:
                return jsonify({'success': True, 'activity': [], 'teamMemberCount': 0})

            leads = get_crm_client(company_id).get_leads_full(limit=TEAM_LEADS_LIMIT)
            activity = service.activity(leads, limit=limit)

        return jsonify({'success': True, 'activity': activity, 'teamMemberCount': member_count})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'fetch team activity')
    except Exception as e:
        logger.error(f"Error fetching team activity: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@office_managers_bp.route('/api/office-managers/team-member', methods=['GET'])
@company_access_required
def get_team_member():
    """One team member with their leads and performance figures."""
    try:
        from database.connection import get_db_session
        from services.crm_proxy import get_crm_client
        from services.team_service import TeamService, NotOnTeam

        username = request.args.get('username')
        member_id = request.args.get('memberId')
        company_id = get_company_id({})
        if not username or not member_id or not company_id:
            return error_response('Office manager username, memberId, and companyId are required', 400)
        denied = _forbidden_manager(username)
        if denied:
            return denied

        with get_db_session() as session:
            service = TeamService(session, username, company_id)
            try:
                member = service.get_member(member_id)
            except NotOnTeam as e:
                return error_response(str(e), 404)

            leads = get_crm_client(company_id).get_leads_full(limit=TEAM_LEADS_LIMIT)
            member_leads = service.member_leads(member, leads)
            performance = service.performance(member_leads)
            member_dict = member.to_dict()

        return jsonify({
            'success': True,
            'member': member_dict,
            'performance': performance,
            'recentActivity': performance['recentActivity'],
            'leads': member_leads
        })

    except CRM_ERRORS as e:
        return crm_error_response(e, 'fetch team member details')
    except Exception as e:
        logger.error(f"Error fetching team member: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@office_managers_bp.route('/api/office-managers/reassign-lead', methods=['POST'])
@company_access_required
def reassign_lead():
    try:
        from database.connection import get_db_session
        from services.crm_proxy import get_crm_client
        from services.team_service import TeamService, NotOnTeam, ASSIGNEE_TYPES

        data = get_json_body()
        required = ('username', 'companyId', 'leadId', 'newAssignee', 'assigneeType')
        if any(not data.get(field) for field in required):
            return error_response(
                'All fields are required: username, companyId, leadId, newAssignee, assigneeType', 400
            )
        if data['assigneeType'] not in ASSIGNEE_TYPES:
            return error_response('assigneeType must be either "sales_rep" or "canvasser"', 400)
        denied = _forbidden_manager(data['username'])
        if denied:
            return denied

        with get_db_session() as session:
            service = TeamService(session, data['username'], data['companyId'])
            try:
                service.reassign_lead(
                    get_crm_client(data['companyId']),
                    data['leadId'],
                    data['newAssignee'],
                    data['assigneeType']
                )
            except ValueError as e:
                return error_response(str(e), 400)
            except NotOnTeam as e:
                return error_response(str(e), 403)

        return jsonify({
            'success': True,
            'message': 'Lead reassigned successfully',
            'leadId': data['leadId'],
            'newAssignee': data['newAssignee'],
            'assigneeType': data['assigneeType']
        })

    except CRM_ERRORS as e:
        return crm_error_response(e, 'reassign lead')
    except Exception as e:
        logger.error(f"Error reassigning lead: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
