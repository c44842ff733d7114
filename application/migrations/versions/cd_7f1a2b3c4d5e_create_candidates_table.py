"""create candidates table

Revision ID: 7f1a2b3c4d5e
Revises:
Create Date: 2025-10-20 10:12:41.204117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7f1a2b3c4d5e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'candidates',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('registration_id', sa.String(length=20), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=False),
        sa.Column('user_type', sa.String(length=20), nullable=False, server_default='student'),
        sa.Column('course', sa.String(length=255), nullable=True),
        sa.Column('college', sa.String(length=255), nullable=True),
        sa.Column('university', sa.String(length=255), nullable=True),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('is_payment_done', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('profile_photo', sa.String(length=512), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('registration_id'),
    )
    op.create_index('ix_candidates_id', 'candidates', ['id'])
    op.create_index('ix_candidates_status', 'candidates', ['status'])
    op.create_index('uq_candidates_email', 'candidates', ['email'], unique=True)
    op.create_index('uq_candidates_phone', 'candidates', ['phone'], unique=True)
    op.create_index('idx_candidates_user_type', 'candidates', ['user_type'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_candidates_user_type', table_name='candidates')
    op.drop_index('uq_candidates_phone', table_name='candidates')
    op.drop_index('uq_candidates_email', table_name='candidates')
    op.drop_index('ix_candidates_status', table_name='candidates')
    op.drop_index('ix_candidates_id', table_name='candidates')
    op.drop_table('candidates')
