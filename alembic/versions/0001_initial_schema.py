"""initial schema: users and categories

Revision ID: 0001_initial_schema
Revises:
Create Date: 2025-01-12 10:04:31.118204

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='user'),
        sa.Column('two_factor_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('two_factor_code', sa.String(length=6), nullable=True),
        sa.Column('two_factor_code_expiry', sa.DateTime(), nullable=True),
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('email_verification_code', sa.String(length=6), nullable=True),
        sa.Column('email_verification_expiry', sa.DateTime(), nullable=True),
        sa.Column('password_reset_code', sa.String(length=6), nullable=True),
        sa.Column('password_reset_expiry', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'categories',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=120), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=True),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('expected_percent', sa.Float(), nullable=False, server_default='15'),
        sa.Column('current_value', sa.Float(), nullable=False, server_default='0'),
        sa.Column('entries', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_categories_user_id'), 'categories', ['user_id'], unique=False)
    # First version made slugs unique across all users
    op.create_index('ix_categories_slug', 'categories', ['slug'], unique=True)


def downgrade() -> None:
    op.drop_index('ix_categories_slug', table_name='categories')
    op.drop_index(op.f('ix_categories_user_id'), table_name='categories')
    op.drop_table('categories')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
