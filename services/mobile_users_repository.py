"""
Mobile Users Repository - Database access layer for field user accounts
(sales reps, canvassers, office managers, project managers).
"""

import logging
from datetime import datetime
from typing import List, Optional, Dict
from sqlalchemy.orm import Session

from app.utils.encryption import encrypt_value, decrypt_value
from auth import hash_password, verify_password
from database.models import MobileUser, MOBILE_ROLES
from services.exceptions import DuplicateError

logger = logging.getLogger(__name__)

# Request field -> column for plain attributes
MOBILE_USER_FIELDS = {
    'username': 'username',
    'email': 'email',
    'role': 'role',
    'workspaceId': 'workspace_id',
    'isActive': 'is_active',
    'salesRep': 'sales_rep',
    'canvasser': 'canvasser',
    'officeManager': 'office_manager',
    'projectManager': 'project_manager',
    'companyId': 'company_id',
}


class MobileUsersRepository:
    """Repository for mobile user database operations."""

    def __init__(self, session: Session, company_id: str = None):
        self.session = session
        self.company_id = company_id

    def _query(self):
        query = self.session.query(MobileUser)
        if self.company_id:
            query = query.filter(MobileUser.company_id == self.company_id)
        return query

    def list_users(self) -> List[Dict]:
        users = self._query().order_by(MobileUser.created_at.desc()).all()
        return [u.to_dict() for u in users]

    def get_model(self, user_id: str) -> Optional[MobileUser]:
        return self.session.query(MobileUser).filter(MobileUser.id == user_id).first()

    def get_user(self, user_id: str) -> Optional[Dict]:
        user = self.get_model(user_id)
        return user.to_dict() if user else None

    def get_by_username(self, username: str) -> Optional[MobileUser]:
        return self.session.query(MobileUser).filter(MobileUser.username == username).first()

    def get_by_email(self, email: str) -> Optional[MobileUser]:
        return self.session.query(MobileUser).filter(MobileUser.email == email).first()

    def get_by_sales_rep(self, company_id: str, sales_rep: str) -> Optional[MobileUser]:
        return self.session.query(MobileUser).filter(
            MobileUser.company_id == company_id,
            MobileUser.sales_rep == sales_rep
        ).first()

    def _check_unique(self, data: Dict, user_id: str = None) -> None:
        """Raise DuplicateError for username, email, or (company, sales rep) conflicts."""
        checks = []
        if data.get('username'):
            checks.append(('username', self.get_by_username(data['username']), 'Username already exists'))
        if data.get('email'):
            checks.append(('email', self.get_by_email(data['email']), 'Email already exists'))
        if data.get('salesRep') and data.get('companyId'):
            checks.append((
                'salesRep',
                self.get_by_sales_rep(data['companyId'], data['salesRep']),
                'Sales rep already has an account'
            ))

        for field, existing, message in checks:
            if existing and existing.id != user_id:
                raise DuplicateError(message, field=field)

    def create_user(self, data: Dict) -> Dict:
        role = data.get('role', 'sales_rep')
        if role not in MOBILE_ROLES:
            raise ValueError(f"Invalid role. Must be one of: {', '.join(MOBILE_ROLES)}")

        self._check_unique(data)

        user = MobileUser(password_hash=hash_password(data['password']))
        for key, column in MOBILE_USER_FIELDS.items():
            if key in data:
                setattr(user, column, data[key])
        user.role = role
        user.workspace_id = data.get('workspaceId') or 'default'
        if data.get('twentyApiKey'):
            user.twenty_api_key = encrypt_value(data['twentyApiKey'])

        self.session.add(user)
        self.session.flush()
        logger.info(f"Created mobile user: {user.id} ({user.username}, {user.role})")
        return user.to_dict()

    def update_user(self, user_id: str, data: Dict) -> Optional[Dict]:
        user = self.get_model(user_id)
        if not user:
            return None

        if 'role' in data and data['role'] not in MOBILE_ROLES:
            raise ValueError(f"Invalid role. Must be one of: {', '.join(MOBILE_ROLES)}")

        # Uniqueness of (company, sales rep) depends on the merged values
        merged = {
            'username': data.get('username'),
            'email': data.get('email'),
            'salesRep': data.get('salesRep', user.sales_rep),
            'companyId': data.get('companyId', user.company_id),
        }
        self._check_unique(merged, user_id=user.id)

        for key, column in MOBILE_USER_FIELDS.items():
            if key in data:
                setattr(user, column, data[key])

        if data.get('password'):
            user.password_hash = hash_password(data['password'])
        if 'twentyApiKey' in data:
            user.twenty_api_key = encrypt_value(data['twentyApiKey']) if data['twentyApiKey'] else None

        user.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated mobile user: {user_id}")
        return user.to_dict()

    def delete_user(self, user_id: str) -> bool:
        user = self.get_model(user_id)
        if not user:
            return False
        self.session.delete(user)
        self.session.flush()
        logger.info(f"Deleted mobile user: {user_id}")
        return True

    def check_credentials(self, username: str, password: str) -> Optional[MobileUser]:
        """Return the user if the password matches, regardless of active state."""
        user = self.get_by_username(username)
        if not user or not verify_password(user.password_hash, password):
            return None
        return user

    def touch_login(self, user: MobileUser) -> None:
        now = datetime.utcnow()
        user.last_login = now
        user.updated_at = now
        self.session.flush()

    def get_twenty_api_key(self, user: MobileUser) -> Optional[str]:
        """Per-user CRM key, falling back to the company key."""
        if user.twenty_api_key:
            return decrypt_value(user.twenty_api_key)
        if user.company and user.company.twenty_api_key:
            return decrypt_value(user.company.twenty_api_key)
        return None
