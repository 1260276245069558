"""
API Blueprints Package

All HTTP route handlers for the application, organized by domain.
Each module defines a Flask Blueprint registered in app/__init__.py.

BLUEPRINT REFERENCE:
====================

Accounts & Tenants:
- auth_routes.py    : Logins, token verification, sales rep self-registration
- companies.py      : Company CRUD and Twenty CRM credentials (admin)
- users.py          : Office staff accounts (admin)
- mobile_users.py   : Field user accounts (admin)

Twenty CRM Proxy:
- leads.py          : Local lead mirror plus live CRM leads and enums
- notes.py          : Lead notes
- tasks.py          : Lead tasks, all tasks, project manager tasks
- files.py          : Lead attachments
- people.py         : Sales reps, canvassers, office managers
- office_managers.py: Team views and lead reassignment
- calendar.py       : Task and appointment calendar feed

Sync:
- sync.py           : Manual full/delta sync and sync status
- webhooks.py       : Inbound Twenty CRM webhooks
- scheduler.py      : Scheduler status and manual job runs

Health endpoints live in health_checks.py at the project root.
"""

# All blueprints are imported and registered in app/__init__.py
# This file serves as documentation only

__all__ = []
