"""
Team Service - Office manager views over their team's CRM leads.

A team is the set of active mobile users whose office_manager is the
manager's username. Leads belong to the team when their salesRep or
canvasser enum value matches a team member's sales_rep or canvasser.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from database.models import MobileUser
from services.lead_transform import parse_timestamp

logger = logging.getLogger(__name__)

ASSIGNEE_TYPES = {
    'sales_rep': 'salesRep',
    'canvasser': 'canvasser',
}

ACTIVITY_WINDOW_DAYS = 30
MEMBER_ACTIVITY_DAYS = 7
MEMBER_ACTIVITY_LIMIT = 10


class NotOnTeam(Exception):
    """Raised when a member or assignee does not report to the office manager"""


def _updated_at(lead):
    return parse_timestamp(lead.get('updatedAt')) or datetime.min


class TeamService:
    """Team membership lookups and lead filtering for one office manager."""

    def __init__(self, session: Session, office_manager: str, company_id: str = None):
        self.session = session
        self.office_manager = office_manager
        self.company_id = company_id

    def members(self) -> List[MobileUser]:
        query = self.session.query(MobileUser).filter(
            MobileUser.office_manager == self.office_manager,
            MobileUser.is_active == True
        )
        if self.company_id:
            query = query.filter(MobileUser.company_id == self.company_id)
        return query.order_by(MobileUser.created_at.desc()).all()

    def get_team(self) -> Dict:
        members = self.members()
        return {
            'salesReps': [m.to_dict() for m in members if m.role == 'sales_rep'],
            'canvassers': [m.to_dict() for m in members if m.role == 'canvasser'],
            'totalMembers': len(members),
        }

    def get_member(self, member_id: str) -> MobileUser:
        for member in self.members():
            if member.id == member_id:
                return member
        raise NotOnTeam('Team member not found or not assigned to you')

    # ------------------------------------------------------------------
    # Lead filtering
    # ------------------------------------------------------------------

    @staticmethod
    def _names(members: List[MobileUser]):
        """CRM enum values of the team's sales reps and canvassers, by role"""
        sales_reps = {m.sales_rep for m in members if m.role == 'sales_rep' and m.sales_rep}
        canvassers = {m.canvasser for m in members if m.role == 'canvasser' and m.canvasser}
        return sales_reps, canvassers

    @staticmethod
    def _is_assignee(member: MobileUser, name: str) -> bool:
        if not name:
            return False
        return (member.role == 'sales_rep' and member.sales_rep == name) or \
            (member.role == 'canvasser' and member.canvasser == name)

    def team_leads(self, leads: List[Dict], members: List[MobileUser] = None) -> List[Dict]:
        """Leads assigned to any team member as sales rep or canvasser."""
        members = self.members() if members is None else members
        sales_reps, canvassers = self._names(members)
        return [
            lead for lead in leads
            if lead.get('salesRep') in sales_reps or lead.get('canvasser') in canvassers
        ]

    @staticmethod
    def appointments(leads: List[Dict]) -> List[Dict]:
        """Leads with an appointment, soonest first."""
        scheduled = [lead for lead in leads if parse_timestamp(lead.get('appointmentTime'))]
        return sorted(scheduled, key=lambda lead: parse_timestamp(lead['appointmentTime']))

    def activity(self, leads: List[Dict], limit: int = 50, now: datetime = None) -> List[Dict]:
        """Team leads updated in the last 30 days, newest first."""
        members = self.members()
        cutoff = (now or datetime.utcnow()) - timedelta(days=ACTIVITY_WINDOW_DAYS)

        recent = [
            lead for lead in self.team_leads(leads, members)
            if parse_timestamp(lead.get('updatedAt')) and parse_timestamp(lead['updatedAt']) >= cutoff
        ]
        recent.sort(key=_updated_at, reverse=True)

        activity = []
        for lead in recent[:limit]:
            assigned_to = lead.get('salesRep') or lead.get('canvasser')
            member = next(
                (m for m in members if self._is_assignee(m, assigned_to)),
                None
            )
            activity.append({
                'leadId': lead.get('id'),
                'leadName': lead.get('name') or '',
                'leadStatus': lead.get('status'),
                'assignedTo': assigned_to,
                'assigneeRole': member.role if member else None,
                'assigneeEmail': member.email if member else None,
                'updatedAt': lead.get('updatedAt'),
                'createdAt': lead.get('createdAt'),
                'appointmentDate': lead.get('appointmentTime'),
                'address': lead.get('adress'),
            })
        return activity

    # ------------------------------------------------------------------
    # Member detail
    # ------------------------------------------------------------------

    @staticmethod
    def member_leads(member: MobileUser, leads: List[Dict]) -> List[Dict]:
        return [
            lead for lead in leads
            if (member.sales_rep and lead.get('salesRep') == member.sales_rep)
            or (member.canvasser and lead.get('canvasser') == member.canvasser)
        ]

    @staticmethod
    def performance(member_leads: List[Dict], now: datetime = None) -> Dict:
        total = len(member_leads)
        with_appointments = len([lead for lead in member_leads if lead.get('appointmentTime')])

        status_breakdown = {}
        for lead in member_leads:
            status = lead.get('status') or 'unknown'
            status_breakdown[status] = status_breakdown.get(status, 0) + 1

        cutoff = (now or datetime.utcnow()) - timedelta(days=MEMBER_ACTIVITY_DAYS)
        recent = [
            lead for lead in member_leads
            if parse_timestamp(lead.get('updatedAt')) and parse_timestamp(lead['updatedAt']) >= cutoff
        ]
        recent.sort(key=_updated_at, reverse=True)

        return {
            'totalLeads': total,
            'leadsWithAppointments': with_appointments,
            'appointmentRate': round(with_appointments / total * 100, 1) if total else 0,
            'statusBreakdown': status_breakdown,
            'recentActivity': recent[:MEMBER_ACTIVITY_LIMIT],
        }

    # ------------------------------------------------------------------
    # Reassignment
    # ------------------------------------------------------------------

    def reassign_lead(self, client, lead_id: str, new_assignee: str, assignee_type: str) -> Optional[Dict]:
        """
        Point a CRM lead at another team member

        Raises:
            ValueError: Unknown assignee_type
            NotOnTeam: new_assignee is not a team member of that type
            TwentyAPIError: CRM update failed
        """
        if assignee_type not in ASSIGNEE_TYPES:
            raise ValueError('assigneeType must be either "sales_rep" or "canvasser"')

        on_team = any(
            member.role == assignee_type and getattr(member, assignee_type) == new_assignee
            for member in self.members()
        )
        if not on_team:
            raise NotOnTeam('New assignee is not part of your team')

        updated = client.update_lead(lead_id, {ASSIGNEE_TYPES[assignee_type]: new_assignee})
        logger.info(f"Lead {lead_id} reassigned to {new_assignee} ({assignee_type}) by {self.office_manager}")
        return updated
