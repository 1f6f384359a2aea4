"""Create access core tables

Revision ID: 0001
Revises:
Create Date: 2026-02-02 09:00:00.000000

Permissions, roles and their grants with optional quotas, user role
assignments, and the page access list with its grants.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str | None = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Apply schema changes."""
    # Create permissions table
    op.create_table(
        'permissions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('requires_value', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_permissions')),
    )
    op.create_index(
        'uq_permissions_name_lower', 'permissions', [sa.text('lower(name)')], unique=True
    )

    # Create roles table
    op.create_table(
        'roles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_superuser', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_roles')),
    )
    op.create_index('uq_roles_name_lower', 'roles', [sa.text('lower(name)')], unique=True)

    # Create role_permissions table (grants)
    op.create_table(
        'role_permissions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('role_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('permission_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('value', sa.Float(), nullable=True),
        sa.Column('limit_type', sa.String(length=16), server_default='none', nullable=False),
        sa.Column('limit_period', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], name=op.f('fk_role_permissions_role_id_roles'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['permission_id'], ['permissions.id'], name=op.f('fk_role_permissions_permission_id_permissions'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_role_permissions')),
        sa.UniqueConstraint('role_id', 'permission_id', name='uq_role_permissions_role_id_permission_id'),
        sa.CheckConstraint(
            "limit_type IN ('none', 'daily', 'weekly', 'monthly')",
            name='ck_role_permissions_limit_type',
        ),
        sa.CheckConstraint(
            "(limit_type = 'none') = (limit_period IS NULL)",
            name='ck_role_permissions_limit_period',
        ),
        sa.CheckConstraint(
            'limit_period IS NULL OR limit_period > 0',
            name='ck_role_permissions_limit_period_positive',
        ),
        sa.CheckConstraint(
            "limit_type = 'none' OR value IS NOT NULL",
            name='ck_role_permissions_window_needs_value',
        ),
    )
    op.create_index('ix_role_permissions_role_id', 'role_permissions', ['role_id'], unique=False)
    op.create_index('ix_role_permissions_permission_id', 'role_permissions', ['permission_id'], unique=False)

    # Create user_roles table; user ids reference an external user store
    op.create_table(
        'user_roles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('role_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('granted_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], name=op.f('fk_user_roles_role_id_roles'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_user_roles')),
        sa.UniqueConstraint('user_id', 'role_id', name='uq_user_roles_user_id_role_id'),
    )
    op.create_index('ix_user_roles_user_id', 'user_roles', ['user_id'], unique=False)
    op.create_index('ix_user_roles_role_id', 'user_roles', ['role_id'], unique=False)

    # Create pages table
    op.create_table(
        'pages',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('path', sa.String(length=255), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('parent_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['parent_id'], ['pages.id'], name=op.f('fk_pages_parent_id_pages'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_pages')),
    )
    op.create_index('ix_pages_path', 'pages', ['path'], unique=True)
    op.create_index('ix_pages_parent_id', 'pages', ['parent_id'], unique=False)

    # Create page_grants table
    op.create_table(
        'page_grants',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('subject_type', sa.String(length=16), nullable=False),
        sa.Column('subject_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('page_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['page_id'], ['pages.id'], name=op.f('fk_page_grants_page_id_pages'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_page_grants')),
        sa.UniqueConstraint('subject_type', 'subject_id', 'page_id', name='uq_page_grants_subject_page'),
        sa.CheckConstraint("subject_type IN ('user', 'role')", name='ck_page_grants_subject_type'),
    )
    op.create_index('ix_page_grants_subject', 'page_grants', ['subject_type', 'subject_id'], unique=False)
    op.create_index('ix_page_grants_page_id', 'page_grants', ['page_id'], unique=False)


def downgrade() -> None:
    """Revert schema changes."""
    op.drop_index('ix_page_grants_page_id', table_name='page_grants')
    op.drop_index('ix_page_grants_subject', table_name='page_grants')
    op.drop_table('page_grants')

    op.drop_index('ix_pages_parent_id', table_name='pages')
    op.drop_index('ix_pages_path', table_name='pages')
    op.drop_table('pages')

    op.drop_index('ix_user_roles_role_id', table_name='user_roles')
    op.drop_index('ix_user_roles_user_id', table_name='user_roles')
    op.drop_table('user_roles')

    op.drop_index('ix_role_permissions_permission_id', table_name='role_permissions')
    op.drop_index('ix_role_permissions_role_id', table_name='role_permissions')
    op.drop_table('role_permissions')

    op.drop_index('uq_roles_name_lower', table_name='roles')
    op.drop_table('roles')

    op.drop_index('uq_permissions_name_lower', table_name='permissions')
    op.drop_table('permissions')
