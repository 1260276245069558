"""Initial database schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19

Creates companies, office users, mobile users, the lead mirror and sync state.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Companies (tenants)
    op.create_table('companies',
        sa.Column('id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('logo', sa.Text()),
        sa.Column('contact_email', sa.String(255)),
        sa.Column('contact_phone', sa.String(50)),
        sa.Column('address', sa.String(255)),
        sa.Column('city', sa.String(100)),
        sa.Column('state', sa.String(50)),
        sa.Column('zip_code', sa.String(20)),
        sa.Column('twenty_api_url', sa.String(500)),
        sa.Column('twenty_api_key', sa.Text()),
        sa.Column('supabase_url', sa.String(500)),
        sa.Column('supabase_key', sa.Text()),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )

    # Office users
    op.create_table('users',
        sa.Column('id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(50), nullable=False, server_default='salesperson'),
        sa.Column('company_id', postgresql.UUID(as_uuid=False)),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('last_login', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.CheckConstraint("role IN ('owner', 'manager', 'salesperson')", name='ck_users_role')
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_company', 'users', ['company_id'])

    # Mobile / field users
    op.create_table('mobile_users',
        sa.Column('id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255)),
        sa.Column('role', sa.String(50), nullable=False, server_default='sales_rep'),
        sa.Column('workspace_id', sa.String(100), server_default='default'),
        sa.Column('twenty_api_key', sa.Text()),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('sales_rep', sa.String(100)),
        sa.Column('canvasser', sa.String(100)),
        sa.Column('office_manager', sa.String(100)),
        sa.Column('company_id', postgresql.UUID(as_uuid=False)),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('last_login', sa.DateTime()),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('company_id', 'sales_rep', name='uq_mobile_users_company_sales_rep')
    )
    op.create_index('ix_mobile_users_username', 'mobile_users', ['username'])
    op.create_index('ix_mobile_users_company', 'mobile_users', ['company_id'])
    op.create_index('ix_mobile_users_office_manager', 'mobile_users', ['office_manager'])

    # Local lead mirror
    op.create_table('leads',
        sa.Column('id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('company_id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('twenty_id', sa.String(100)),
        sa.Column('name', sa.String(255), nullable=False, server_default='Unknown'),
        sa.Column('email', sa.String(255)),
        sa.Column('phone', sa.String(50)),
        sa.Column('address', sa.String(255)),
        sa.Column('city', sa.String(100)),
        sa.Column('state', sa.String(50)),
        sa.Column('zip_code', sa.String(20)),
        sa.Column('status', sa.String(50), server_default='new'),
        sa.Column('source', sa.String(50), server_default='website'),
        sa.Column('assigned_to', sa.String(255)),
        sa.Column('notes', sa.Text()),
        sa.Column('sync_status', sa.String(20)),
        sa.Column('last_synced_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'twenty_id', name='uq_leads_company_twenty')
    )
    op.create_index('ix_leads_company', 'leads', ['company_id'])
    op.create_index('ix_leads_status', 'leads', ['status'])
    op.create_index('ix_leads_created_at', 'leads', ['created_at'])

    # Delta sync bookkeeping
    op.create_table('sync_state',
        sa.Column('company_id', postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column('last_synced_at', sa.DateTime()),
        sa.Column('last_result', postgresql.JSONB(astext_type=sa.Text()), server_default='{}'),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('company_id')
    )


def downgrade() -> None:
    # Drop tables in reverse order of creation (respecting foreign keys)
    op.drop_table('sync_state')
    op.drop_table('leads')
    op.drop_table('mobile_users')
    op.drop_table('users')
    op.drop_table('companies')
