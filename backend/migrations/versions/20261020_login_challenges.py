"""login challenges for the second factor

Revision ID: inv002_login_challenges
Revises: inv001_initial
Create Date: 2026-10-20 00:00:00.000000

A password login for a 2FA account now yields a short-lived challenge
that /auth/2fa/verify must present together with the TOTP code.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'inv002_login_challenges'
down_revision = 'inv001_initial'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'login_challenges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('failed_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_login_challenges_user_id', 'login_challenges', ['user_id'])
    op.create_index('ix_login_challenges_token_hash', 'login_challenges', ['token_hash'], unique=True)


def downgrade():
    op.drop_index('ix_login_challenges_token_hash', table_name='login_challenges')
    op.drop_index('ix_login_challenges_user_id', table_name='login_challenges')
    op.drop_table('login_challenges')
