"""Create matches table

Revision ID: 0001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table('matches',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('sport', sa.String(length=32), nullable=False),
        sa.Column('team_a', sa.String(length=64), nullable=False),
        sa.Column('team_b', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='SCHEDULED'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('winner', sa.String(length=64), nullable=True),
        sa.Column('result_type', sa.String(length=32), nullable=True),
        sa.Column('scheduled_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('venue', sa.String(length=255), nullable=True),
        sa.Column('match_category', sa.String(length=32), nullable=False, server_default='REGULAR'),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('state', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id')
    )

    # Live list and per-sport listing
    op.create_index('ix_matches_status', 'matches', ['status'])
    op.create_index('ix_matches_sport_status', 'matches', ['sport', 'status'])


def downgrade() -> None:
    op.drop_index('ix_matches_sport_status', table_name='matches')
    op.drop_index('ix_matches_status', table_name='matches')
    op.drop_table('matches')
