"""
SQLAlchemy models for the Roofing Sales Dashboard.
Defines tenants, office and field users, the local lead mirror, and sync bookkeeping.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, Boolean, DateTime, ForeignKey, JSON, Index, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship
from database.connection import Base


# Native UUID/JSONB on PostgreSQL, portable fallbacks elsewhere (SQLite in tests)
GUID = String(36).with_variant(UUID(as_uuid=False), 'postgresql')
JSONType = JSON().with_variant(JSONB(), 'postgresql')


def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


OFFICE_ROLES = ('owner', 'manager', 'salesperson')
MOBILE_ROLES = ('admin', 'manager', 'sales_rep', 'canvasser', 'office_manager', 'project_manager')
LEAD_STATUSES = ('new', 'contacted', 'qualified', 'quoted', 'proposal_sent', 'won', 'lost')
LEAD_SOURCES = ('google_ads', 'google_lsa', 'facebook_ads', 'canvass', 'referral', 'website', 'twenty_crm')
LEAD_MEDIUMS = ('cpc', 'lsas', 'social_ads', 'canvass', 'referral', 'organic')


# =============================================================================
# COMPANIES (Tenants)
# =============================================================================

class Company(Base):
    """
    A tenant. Owns its Twenty CRM credentials and its slice of the lead mirror.
    API keys are stored encrypted; see app/utils/encryption.py.
    """
    __tablename__ = 'companies'

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), unique=True, nullable=False)
    logo = Column(Text)
    contact_email = Column(String(255))
    contact_phone = Column(String(50))
    address = Column(String(255))
    city = Column(String(100))
    state = Column(String(50))
    zip_code = Column(String(20))
    twenty_api_url = Column(String(500))
    twenty_api_key = Column(Text)
    supabase_url = Column(String(500))
    supabase_key = Column(Text)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    users = relationship("User", back_populates="company")
    mobile_users = relationship("MobileUser", back_populates="company")
    leads = relationship("Lead", back_populates="company", cascade="all, delete-orphan")

    @property
    def has_twenty_config(self):
        return bool(self.twenty_api_url and self.twenty_api_key)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'logo': self.logo,
            'contactEmail': self.contact_email,
            'contactPhone': self.contact_phone,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'zipCode': self.zip_code,
            'twentyApiUrl': self.twenty_api_url,
            'supabaseUrl': self.supabase_url,
            'isActive': self.is_active,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at)
        }


# =============================================================================
# USERS & AUTHENTICATION
# =============================================================================

class User(Base):
    """Office staff who log in to the dashboard by email."""
    __tablename__ = 'users'

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default='salesperson')  # owner, manager, salesperson
    company_id = Column(GUID, ForeignKey('companies.id', ondelete='SET NULL'))
    is_active = Column(Boolean, default=True)
    last_login = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    company = relationship("Company", back_populates="users")

    __table_args__ = (
        Index('ix_users_email', 'email'),
        Index('ix_users_company', 'company_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'role': self.role,
            'companyId': self.company_id,
            'companyName': self.company.name if self.company else None,
            'isActive': self.is_active,
            'lastLogin': _iso(self.last_login),
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at)
        }


class MobileUser(Base):
    """
    Field users (sales reps, canvassers, office and project managers).

    sales_rep / canvasser / office_manager / project_manager hold the CRM enum
    value that identifies this person on Lead records.
    """
    __tablename__ = 'mobile_users'

    id = Column(GUID, primary_key=True, default=generate_uuid)
    username = Column(String(50), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(255), unique=True)
    role = Column(String(50), nullable=False, default='sales_rep')
    workspace_id = Column(String(100), default='default')
    twenty_api_key = Column(Text)
    is_active = Column(Boolean, default=True)
    sales_rep = Column(String(100))
    canvasser = Column(String(100))
    office_manager = Column(String(100))
    project_manager = Column(String(100))
    company_id = Column(GUID, ForeignKey('companies.id', ondelete='CASCADE'))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime)

    company = relationship("Company", back_populates="mobile_users")

    __table_args__ = (
        UniqueConstraint('company_id', 'sales_rep', name='uq_mobile_users_company_sales_rep'),
        Index('ix_mobile_users_username', 'username'),
        Index('ix_mobile_users_company', 'company_id'),
        Index('ix_mobile_users_office_manager', 'office_manager'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role,
            'workspaceId': self.workspace_id,
            'isActive': self.is_active,
            'salesRep': self.sales_rep,
            'canvasser': self.canvasser,
            'officeManager': self.office_manager,
            'projectManager': self.project_manager,
            'companyId': self.company_id,
            'hasTwentyApiKey': bool(self.twenty_api_key),
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
            'lastLogin': _iso(self.last_login)
        }


# =============================================================================
# LEADS (local mirror of Twenty CRM)
# =============================================================================

class Lead(Base):
    """Local copy of a CRM lead, keyed by (company_id, twenty_id) when mirrored."""
    __tablename__ = 'leads'

    id = Column(GUID, primary_key=True, default=generate_uuid)
    company_id = Column(GUID, ForeignKey('companies.id', ondelete='CASCADE'), nullable=False)
    twenty_id = Column(String(100))
    name = Column(String(255), nullable=False, default='Unknown')
    email = Column(String(255))
    phone = Column(String(50))
    address = Column(String(255))
    city = Column(String(100))
    state = Column(String(50))
    zip_code = Column(String(20))
    status = Column(String(50), default='new')
    source = Column(String(50), default='website')
    assigned_to = Column(String(255))
    notes = Column(Text)
    sync_status = Column(String(20))
    last_synced_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    company = relationship("Company", back_populates="leads")

    __table_args__ = (
        UniqueConstraint('company_id', 'twenty_id', name='uq_leads_company_twenty'),
        Index('ix_leads_company', 'company_id'),
        Index('ix_leads_status', 'status'),
        Index('ix_leads_created_at', 'created_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'companyId': self.company_id,
            'twentyId': self.twenty_id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'zipCode': self.zip_code,
            'status': self.status,
            'source': self.source or 'twenty_crm',
            'medium': 'organic',
            'assignedTo': self.assigned_to,
            'notes': self.notes,
            'syncStatus': self.sync_status,
            'lastSyncedAt': _iso(self.last_synced_at),
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at)
        }


class SyncState(Base):
    """Per-company delta sync bookkeeping."""
    __tablename__ = 'sync_state'

    company_id = Column(GUID, ForeignKey('companies.id', ondelete='CASCADE'), primary_key=True)
    last_synced_at = Column(DateTime)
    last_result = Column(JSONType, default=dict)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'companyId': self.company_id,
            'lastSyncTime': _iso(self.last_synced_at),
            'lastResult': self.last_result or {},
            'updatedAt': _iso(self.updated_at)
        }
