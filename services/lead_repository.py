"""
Lead Repository - Database access layer for the local lead mirror.
"""

import logging
from datetime import datetime
from typing import List, Optional, Dict, Tuple
from sqlalchemy.orm import Session

from database.models import Lead

logger = logging.getLogger(__name__)

# Request field -> column. Both camelCase and snake_case are accepted.
LEAD_FIELDS = {
    'name': 'name',
    'email': 'email',
    'phone': 'phone',
    'address': 'address',
    'city': 'city',
    'state': 'state',
    'zipCode': 'zip_code',
    'zip_code': 'zip_code',
    'status': 'status',
    'source': 'source',
    'notes': 'notes',
    'assignedTo': 'assigned_to',
    'assigned_to': 'assigned_to',
}

# Columns a CRM record may overwrite during sync or webhooks
REMOTE_COLUMNS = ('name', 'email', 'phone', 'address', 'city', 'state', 'zip_code', 'notes')


def map_lead_fields(data: Dict) -> Dict:
    """Translate request keys to column names, keeping only known fields."""
    return {column: data[key] for key, column in LEAD_FIELDS.items() if key in data}


class LeadRepository:
    """Repository for local lead database operations."""

    def __init__(self, session: Session, company_id: str = None):
        self.session = session
        self.company_id = company_id

    def list_leads(self) -> List[Dict]:
        """List a company's leads, newest first."""
        query = self.session.query(Lead)
        if self.company_id:
            query = query.filter(Lead.company_id == self.company_id)
        return [lead.to_dict() for lead in query.order_by(Lead.created_at.desc()).all()]

    def get_model(self, lead_id: str) -> Optional[Lead]:
        return self.session.query(Lead).filter(Lead.id == lead_id).first()

    def get_lead(self, lead_id: str) -> Optional[Dict]:
        lead = self.get_model(lead_id)
        return lead.to_dict() if lead else None

    def get_by_twenty_id(self, company_id: str, twenty_id: str) -> Optional[Lead]:
        return self.session.query(Lead).filter(
            Lead.company_id == company_id,
            Lead.twenty_id == twenty_id
        ).first()

    def create_lead(self, company_id: str, data: Dict) -> Dict:
        columns = map_lead_fields(data)
        lead = Lead(
            company_id=company_id,
            status=columns.pop('status', None) or 'new',
            source=columns.pop('source', None) or 'website',
            **columns
        )
        if not lead.name:
            lead.name = 'Unknown'
        self.session.add(lead)
        self.session.flush()
        logger.info(f"Created lead: {lead.id} for company {company_id}")
        return lead.to_dict()

    def update_lead(self, lead_id: str, data: Dict) -> Tuple[Optional[Lead], Dict]:
        """
        Partial update.

        Returns:
            Tuple of (lead model or None, dict of columns that were changed)
        """
        lead = self.get_model(lead_id)
        if not lead:
            return None, {}

        columns = map_lead_fields(data)
        for column, value in columns.items():
            setattr(lead, column, value)
        lead.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated lead: {lead_id}")
        return lead, columns

    def delete_lead(self, lead_id: str) -> bool:
        lead = self.get_model(lead_id)
        if not lead:
            return False
        self.session.delete(lead)
        self.session.flush()
        logger.info(f"Deleted lead: {lead_id}")
        return True

    def upsert_from_remote(self, company_id: str, twenty_id: str, fields: Dict,
                           defaults: Dict = None) -> Tuple[Lead, bool]:
        """
        Insert or update the lead keyed by (company_id, twenty_id).

        Args:
            fields: Columns taken from the CRM record (last write wins)
            defaults: Columns set only when the row is new

        Returns:
            Tuple of (lead, created)
        """
        lead = self.get_by_twenty_id(company_id, twenty_id)
        created = lead is None
        if created:
            lead = Lead(company_id=company_id, twenty_id=twenty_id)
            for column, value in (defaults or {}).items():
                setattr(lead, column, value)
            self.session.add(lead)

        for column in REMOTE_COLUMNS:
            if column in fields:
                setattr(lead, column, fields[column])
        for column in ('sync_status', 'last_synced_at', 'source', 'status'):
            if column in fields:
                setattr(lead, column, fields[column])

        if not lead.name:
            lead.name = 'Unknown'
        lead.updated_at = datetime.utcnow()
        self.session.flush()
        return lead, created

    def delete_by_twenty_id(self, company_id: str, twenty_id: str) -> int:
        deleted = self.session.query(Lead).filter(
            Lead.company_id == company_id,
            Lead.twenty_id == twenty_id
        ).delete(synchronize_session=False)
        self.session.flush()
        return deleted
