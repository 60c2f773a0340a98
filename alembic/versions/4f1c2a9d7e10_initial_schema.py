"""Initial schema: users, organizations, memberships, invites and admin grants

Revision ID: 4f1c2a9d7e10
Revises:
Create Date: 2025-06-02 10:12:44.381920

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4f1c2a9d7e10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('user',
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('auth0_id', sa.String(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('plan', sa.String(), nullable=False),
        sa.Column('subscription_status', sa.String(), nullable=False),
        sa.Column('subscription_id', sa.String(), nullable=True),
        sa.Column('subscription_expires_at', sa.DateTime(), nullable=True),
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('modified_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('auth0_id')
    )
    op.create_index(op.f('ix_user_email'), 'user', ['email'], unique=True)
    op.create_index(op.f('ix_user_subscription_id'), 'user', ['subscription_id'], unique=False)

    op.create_table('admin_user',
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('granted_by_email', sa.String(), nullable=True),
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('modified_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )

    op.create_table('organization',
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('slug', sa.String(length=50), nullable=False),
        sa.Column('tier', sa.String(), nullable=False),
        sa.Column('owner_id', sa.UUID(), nullable=False),
        sa.Column('subscription_id', sa.String(), nullable=True),
        sa.Column('subscription_status', sa.String(), nullable=False),
        sa.Column('subscription_expires_at', sa.DateTime(), nullable=True),
        sa.Column('archived_at', sa.DateTime(), nullable=True),
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('modified_at', sa.DateTime(), nullable=False),
        sa.Column('created_by_email', sa.String(), nullable=True),
        sa.Column('modified_by_email', sa.String(), nullable=True),
        sa.ForeignKeyConstraint(['owner_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('subscription_id')
    )
    op.create_index(op.f('ix_organization_slug'), 'organization', ['slug'], unique=False)

    op.create_table('organization_member',
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('modified_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'user_id', name='uq_organization_member_user')
    )
    # At most one owner per organization
    op.create_index('uq_organization_member_single_owner', 'organization_member',
                    ['organization_id'], unique=True,
                    postgresql_where=sa.text("role = 'owner'"),
                    sqlite_where=sa.text("role = 'owner'"))

    op.create_table('organization_invite',
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('invited_by', sa.UUID(), nullable=False),
        sa.Column('accepted_by', sa.UUID(), nullable=True),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('modified_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['accepted_by'], ['user.id']),
        sa.ForeignKeyConstraint(['invited_by'], ['user.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organization.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_organization_invite_token'), 'organization_invite', ['token'],
                    unique=True)
    op.create_index(op.f('ix_organization_invite_email'), 'organization_invite', ['email'],
                    unique=False)
    # At most one pending invite per organization and email
    op.create_index('uq_organization_invite_pending_email', 'organization_invite',
                    ['organization_id', 'email'], unique=True,
                    postgresql_where=sa.text("status = 'pending'"),
                    sqlite_where=sa.text("status = 'pending'"))


def downgrade() -> None:
    op.drop_index('uq_organization_invite_pending_email', table_name='organization_invite')
    op.drop_index(op.f('ix_organization_invite_email'), table_name='organization_invite')
    op.drop_index(op.f('ix_organization_invite_token'), table_name='organization_invite')
    op.drop_table('organization_invite')
    op.drop_index('uq_organization_member_single_owner', table_name='organization_member')
    op.drop_table('organization_member')
    op.drop_index(op.f('ix_organization_slug'), table_name='organization')
    op.drop_table('organization')
    op.drop_table('admin_user')
    op.drop_index(op.f('ix_user_subscription_id'), table_name='user')
    op.drop_index(op.f('ix_user_email'), table_name='user')
    op.drop_table('user')
