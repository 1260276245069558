"""
Services package for the roofing sales dashboard.
Contains repository classes for database access and the Twenty CRM integration.
"""

from services.company_repository import CompanyRepository
from services.lead_repository import LeadRepository
from services.mobile_users_repository import MobileUsersRepository
from services.users_repository import UsersRepository

__all__ = [
    'CompanyRepository',
    'LeadRepository',
    'MobileUsersRepository',
    'UsersRepository'
]
