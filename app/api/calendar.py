"""
Calendar Routes Blueprint

Merges CRM task due dates and lead appointments into one event feed:
- /api/calendar?companyId=&start=&end=[&salesRep=]
"""

import logging
from datetime import timedelta
from flask import Blueprint, request, jsonify

from auth import company_access_required
from app.utils.helpers import CRM_ERRORS, get_company_id, error_response, crm_error_response

logger = logging.getLogger(__name__)

# Create blueprint
calendar_bp = Blueprint('calendar_bp', __name__)

CALENDAR_LEADS_LIMIT = 1000


def _in_range(when, start, end):
    return when is not None and start <= when <= end


def build_events(tasks, leads, start, end, sales_rep=None):
    """
    Calendar events from CRM tasks and leads

    Args:
        tasks: Output of TwentyClient.get_all_tasks()
        leads: Output of TwentyClient.get_leads_full()
        start, end: Naive UTC datetimes bounding the range (inclusive)
        sales_rep: Only include events for this sales rep

    Returns:
        Events sorted by start
    """
    from services.lead_transform import parse_timestamp

    events = []

    for task in tasks:
        due = parse_timestamp(task.get('dueAt'))
        if not _in_range(due, start, end):
            continue
        if sales_rep and task.get('leadSalesRep') != sales_rep:
            continue
        events.append({
            'id': task['id'],
            'kind': 'task',
            'title': task.get('title') or 'Task',
            'start': due,
            'leadId': task.get('leadId'),
            'leadName': task.get('leadName'),
            'salesRep': task.get('leadSalesRep'),
        })

    for lead in leads:
        appointment = parse_timestamp(lead.get('appointmentTime'))
        if not _in_range(appointment, start, end):
            continue
        if sales_rep and lead.get('salesRep') != sales_rep:
            continue
        events.append({
            'id': lead['id'],
            'kind': 'appointment',
            'title': f"Appointment: {lead.get('name') or 'Unknown'}",
            'start': appointment,
            'leadId': lead['id'],
            'leadName': lead.get('name'),
            'salesRep': lead.get('salesRep'),
        })

    events.sort(key=lambda event: event['start'])
    for event in events:
        event['start'] = event['start'].isoformat() + 'Z'
    return events


@calendar_bp.route('/api/calendar', methods=['GET'])
@company_access_required
def get_calendar():
    try:
        from services.crm_proxy import get_crm_client
        from validators import parse_iso_date

        company_id = get_company_id({})
        if not company_id:
            return error_response('companyId is required', 400)

        start = parse_iso_date(request.args.get('start'))
        end = parse_iso_date(request.args.get('end'))
        if not start or not end:
            return error_response('start and end are required', 400)
        # A bare date as end covers that whole day
        if len(request.args['end']) == 10:
            end = end + timedelta(days=1) - timedelta(microseconds=1)
        if end < start:
            return error_response('end must not be before start', 400)

        client = get_crm_client(company_id)
        events = build_events(
            client.get_all_tasks(),
            client.get_leads_full(limit=CALENDAR_LEADS_LIMIT),
            start,
            end,
            sales_rep=request.args.get('salesRep')
        )
        return jsonify({'success': True, 'events': events, 'total': len(events)})

    except CRM_ERRORS as e:
        return crm_error_response(e, 'load calendar')
    except Exception as e:
        logger.error(f"Error loading calendar: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
