"""
Company Repository - Database access layer for tenants and their CRM credentials.
"""

import logging
from datetime import datetime
from typing import List, Optional, Dict
from sqlalchemy.orm import Session

from app.utils.encryption import encrypt_value, decrypt_value
from database.models import Company
from services.exceptions import DuplicateError

logger = logging.getLogger(__name__)

# Request field -> column for plain (unencrypted) attributes
COMPANY_FIELDS = {
    'name': 'name',
    'logo': 'logo',
    'contactEmail': 'contact_email',
    'contactPhone': 'contact_phone',
    'address': 'address',
    'city': 'city',
    'state': 'state',
    'zipCode': 'zip_code',
    'twentyApiUrl': 'twenty_api_url',
    'supabaseUrl': 'supabase_url',
    'isActive': 'is_active',
}

# Request field -> column for encrypted secrets
SECRET_FIELDS = {
    'twentyApiKey': 'twenty_api_key',
    'supabaseKey': 'supabase_key',
}

REQUIRED_COMPANY_FIELDS = [
    'name', 'contactEmail', 'contactPhone', 'address', 'city', 'state',
    'zipCode', 'twentyApiUrl', 'twentyApiKey',
]


def company_to_admin_dict(company: Company) -> Dict:
    """Company with its credentials decrypted, for admin screens only"""
    data = company.to_dict()
    data['twentyApiKey'] = decrypt_value(company.twenty_api_key) if company.twenty_api_key else None
    data['supabaseKey'] = decrypt_value(company.supabase_key) if company.supabase_key else None
    return data


class CompanyRepository:
    """Repository for company database operations."""

    def __init__(self, session: Session):
        self.session = session

    def get_model(self, company_id: str) -> Optional[Company]:
        return self.session.query(Company).filter(Company.id == company_id).first()

    def get_by_name(self, name: str) -> Optional[Company]:
        return self.session.query(Company).filter(Company.name == name).first()

    def list_companies(self, active_only: bool = False) -> List[Dict]:
        query = self.session.query(Company)
        if active_only:
            query = query.filter(Company.is_active == True)
        return [company_to_admin_dict(c) for c in query.order_by(Company.name).all()]

    def list_syncable(self) -> List[Company]:
        """Active companies with Twenty CRM credentials."""
        companies = self.session.query(Company).filter(Company.is_active == True).all()
        return [c for c in companies if c.has_twenty_config]

    def get_company(self, company_id: str) -> Optional[Dict]:
        company = self.get_model(company_id)
        return company_to_admin_dict(company) if company else None

    def create_company(self, data: Dict) -> Dict:
        if self.get_by_name(data['name']):
            raise DuplicateError('A company with this name already exists', field='name')

        company = Company()
        self._apply(company, data)
        self.session.add(company)
        self.session.flush()
        logger.info(f"Created company: {company.id} ({company.name})")
        return company_to_admin_dict(company)

    def update_company(self, company_id: str, data: Dict) -> Optional[Dict]:
        company = self.get_model(company_id)
        if not company:
            return None

        if data.get('name') and data['name'] != company.name and self.get_by_name(data['name']):
            raise DuplicateError('A company with this name already exists', field='name')

        self._apply(company, data)
        company.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated company: {company_id}")
        return company_to_admin_dict(company)

    def delete_company(self, company_id: str) -> bool:
        company = self.get_model(company_id)
        if not company:
            return False
        self.session.delete(company)
        self.session.flush()
        logger.info(f"Deleted company: {company_id}")
        return True

    def _apply(self, company: Company, data: Dict) -> None:
        for key, column in COMPANY_FIELDS.items():
            if key in data:
                setattr(company, column, data[key])

        for key, column in SECRET_FIELDS.items():
            # Blank means "unchanged" on edit forms
            if data.get(key):
                setattr(company, column, encrypt_value(data[key]))
