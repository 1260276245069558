"""
Users Repository - Database access layer for office staff accounts.
"""

import logging
from datetime import datetime
from typing import List, Optional, Dict
from sqlalchemy.orm import Session

from auth import hash_password, verify_password
from database.models import User, OFFICE_ROLES
from services.exceptions import DuplicateError

logger = logging.getLogger(__name__)


class UsersRepository:
    """Repository for office user database operations."""

    def __init__(self, session: Session, company_id: str = None):
        self.session = session
        self.company_id = company_id

    def list_users(self, active_only: bool = False) -> List[Dict]:
        """List users, newest first."""
        query = self.session.query(User)
        if self.company_id:
            query = query.filter(User.company_id == self.company_id)
        if active_only:
            query = query.filter(User.is_active == True)
        users = query.order_by(User.created_at.desc()).all()
        return [u.to_dict() for u in users]

    def get_user(self, user_id: str) -> Optional[Dict]:
        """Get a user by ID."""
        user = self.session.query(User).filter(User.id == user_id).first()
        return user.to_dict() if user else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email (returns model for auth)."""
        return self.session.query(User).filter(User.email == email.strip().lower()).first()

    def create_user(self, data: Dict) -> Dict:
        """Create a new user."""
        email = data['email'].strip().lower()
        if self.get_user_by_email(email):
            raise DuplicateError('A user with this email already exists', field='email')

        role = data.get('role', 'salesperson')
        if role not in OFFICE_ROLES:
            raise ValueError(f"Invalid role. Must be one of: {', '.join(OFFICE_ROLES)}")

        user = User(
            email=email,
            password_hash=hash_password(data['password']),
            name=data['name'],
            role=role,
            company_id=data.get('companyId') or self.company_id,
            is_active=data.get('isActive', True)
        )
        self.session.add(user)
        self.session.flush()
        logger.info(f"Created user: {user.id}")
        return user.to_dict()

    def update_user(self, user_id: str, data: Dict) -> Optional[Dict]:
        """Update a user."""
        user = self.session.query(User).filter(User.id == user_id).first()
        if not user:
            return None

        if 'email' in data and data['email']:
            email = data['email'].strip().lower()
            existing = self.get_user_by_email(email)
            if existing and existing.id != user.id:
                raise DuplicateError('A user with this email already exists', field='email')
            user.email = email

        if 'role' in data:
            if data['role'] not in OFFICE_ROLES:
                raise ValueError(f"Invalid role. Must be one of: {', '.join(OFFICE_ROLES)}")
            user.role = data['role']

        field_map = {'name': 'name', 'companyId': 'company_id', 'isActive': 'is_active'}
        for key, column in field_map.items():
            if key in data:
                setattr(user, column, data[key])

        if data.get('password'):
            user.password_hash = hash_password(data['password'])

        user.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated user: {user_id}")
        return user.to_dict()

    def delete_user(self, user_id: str) -> bool:
        """Delete a user."""
        user = self.session.query(User).filter(User.id == user_id).first()
        if not user:
            return False
        self.session.delete(user)
        self.session.flush()
        logger.info(f"Deleted user: {user_id}")
        return True

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the active user matching email and password, or None."""
        user = self.get_user_by_email(email)
        if not user or not user.is_active:
            return None
        if not verify_password(user.password_hash, password):
            return None
        return user

    def update_last_login(self, user_id: str) -> None:
        """Update user's last login timestamp."""
        user = self.session.query(User).filter(User.id == user_id).first()
        if user:
            user.last_login = datetime.utcnow()
            self.session.flush()
