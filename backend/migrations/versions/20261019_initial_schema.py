"""initial inventario schema

Revision ID: inv001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete Inventario Pro schema:
- users / session_tokens: accounts, roles, 2FA state and bearer sessions
- equipment / equipment_history: assets with approval state and per-field history
- licenses / license_totals: entitlements and contracted seats per product
- audit_log: append-only global trail
- app_settings: key-value configuration (branding, SSO, integration)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'inv001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('real_name', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('sso_provider', sa.String(length=50), nullable=True),
        sa.Column('two_factor_secret', sa.String(length=255), nullable=True),
        sa.Column('is_2fa_enabled', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    # ============================================================================
    # session_tokens: only the SHA-256 of each bearer token is stored
    # ============================================================================
    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_user_revoked', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # equipment: blank asset tags are stored as NULL so uniqueness only binds tagged rows
    # ============================================================================
    op.create_table(
        'equipment',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('warranty', sa.String(length=255), nullable=True),
        sa.Column('asset_tag', sa.String(length=255), nullable=True),
        sa.Column('serial', sa.String(length=255), nullable=True),
        sa.Column('current_holder', sa.String(length=255), nullable=True),
        sa.Column('previous_holder', sa.String(length=255), nullable=True),
        sa.Column('site', sa.String(length=255), nullable=True),
        sa.Column('department', sa.String(length=255), nullable=True),
        sa.Column('delivery_date', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=255), nullable=True),
        sa.Column('return_date', sa.String(length=255), nullable=True),
        sa.Column('ownership_type', sa.String(length=255), nullable=True),
        sa.Column('purchase_note', sa.String(length=255), nullable=True),
        sa.Column('responsibility_term', sa.Text(), nullable=True),
        sa.Column('photo_url', sa.Text(), nullable=True),
        sa.Column('qr_code', sa.Text(), nullable=True),
        sa.Column('approval_status', sa.String(length=32), nullable=False, server_default='approved'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('asset_tag'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_equipment_approval_status', 'equipment', ['approval_status'])

    op.create_table(
        'equipment_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('equipment_id', sa.Integer(), nullable=False),
        sa.Column('change_type', sa.String(length=50), nullable=False),
        sa.Column('field', sa.String(length=64), nullable=True),
        sa.Column('from_value', sa.Text(), nullable=True),
        sa.Column('to_value', sa.Text(), nullable=True),
        sa.Column('changed_by', sa.String(length=255), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['equipment_id'], ['equipment.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_equipment_history_equipment_id', 'equipment_history', ['equipment_id'])
    op.create_index('ix_equipment_history_equipment_ts', 'equipment_history', ['equipment_id', 'timestamp'])

    # ============================================================================
    # licenses / license_totals
    # ============================================================================
    op.create_table(
        'licenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product', sa.String(length=255), nullable=False),
        sa.Column('license_type', sa.String(length=255), nullable=True),
        sa.Column('serial_key', sa.String(length=255), nullable=False),
        sa.Column('expiration_date', sa.String(length=255), nullable=True),
        sa.Column('assigned_user', sa.String(length=255), nullable=False),
        sa.Column('job_title', sa.String(length=255), nullable=True),
        sa.Column('department', sa.String(length=255), nullable=True),
        sa.Column('manager', sa.String(length=255), nullable=True),
        sa.Column('cost_center', sa.String(length=255), nullable=True),
        sa.Column('ledger_account', sa.String(length=255), nullable=True),
        sa.Column('computer_name', sa.String(length=255), nullable=True),
        sa.Column('ticket_number', sa.String(length=255), nullable=True),
        sa.Column('approval_status', sa.String(length=32), nullable=False, server_default='approved'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_licenses_product', 'licenses', ['product'])
    op.create_index('ix_licenses_approval_status', 'licenses', ['approval_status'])

    op.create_table(
        'license_totals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product', sa.String(length=255), nullable=False),
        sa.Column('total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_by', sa.String(length=255), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_license_totals_product', 'license_totals', ['product'], unique=True)

    # ============================================================================
    # audit_log: append-only
    # ============================================================================
    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('action_type', sa.String(length=50), nullable=False),
        sa.Column('target_type', sa.String(length=50), nullable=True),
        sa.Column('target_id', sa.Integer(), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_audit_log_timestamp', 'audit_log', ['timestamp'])
    op.create_index('ix_audit_log_target', 'audit_log', ['target_type', 'target_id'])

    # ============================================================================
    # app_settings
    # ============================================================================
    op.create_table(
        'app_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=128), nullable=False),
        sa.Column('value', sa.JSON(), nullable=True),
        sa.Column('updated_by', sa.String(length=255), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_app_settings_key', 'app_settings', ['key'], unique=True)


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('app_settings')
    op.drop_table('audit_log')
    op.drop_table('license_totals')
    op.drop_table('licenses')
    op.drop_table('equipment_history')
    op.drop_table('equipment')
    op.drop_table('session_tokens')
    op.drop_table('users')
