"""Add project_manager to mobile_users

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade():
    op.add_column('mobile_users', sa.Column('project_manager', sa.String(100), nullable=True))
    op.create_check_constraint(
        'ck_mobile_users_role',
        'mobile_users',
        "role IN ('admin', 'manager', 'sales_rep', 'canvasser', 'office_manager', 'project_manager')"
    )


def downgrade():
    op.drop_constraint('ck_mobile_users_role', 'mobile_users', type_='check')
    op.drop_column('mobile_users', 'project_manager')
