"""Add migration request tracking and audit log

Revision ID: 8c4e2a6f1d93
Revises: 3a1f0c9d2b7e
Create Date: 2026-10-19 11:30:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '8c4e2a6f1d93'
down_revision: Union[str, None] = '3a1f0c9d2b7e'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema - add migration requests and their audit log."""
    op.create_table('migration_requests',
        sa.Column('id', sa.Integer(), server_default=sa.text("nextval('id_seq')"), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone_number', sa.String(length=50), nullable=True),
        sa.Column('migration_status', sa.String(length=16), server_default='pending', nullable=False),
        sa.Column('migration_source', sa.String(length=100), nullable=False),
        sa.Column('upstream_user_id', sa.String(length=64), nullable=True),
        sa.Column('upstream_response', sa.Text(), nullable=True),
        sa.Column('request_ip', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )

    op.create_table('migration_audit_log',
        sa.Column('id', sa.Integer(), server_default=sa.text("nextval('id_seq')"), nullable=False),
        sa.Column('migration_request_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['migration_request_id'], ['migration_requests.id'], ),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade() -> None:
    """Downgrade schema - remove migration tracking."""
    op.drop_table('migration_audit_log')
    op.drop_table('migration_requests')
