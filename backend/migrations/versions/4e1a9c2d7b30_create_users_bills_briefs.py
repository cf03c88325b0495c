"""create users, bills and briefs tables

Revision ID: 4e1a9c2d7b30
Revises:
Create Date: 2025-11-03

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4e1a9c2d7b30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('state', sa.String(length=2), nullable=True),
        sa.Column('district', sa.String(), nullable=True),
        sa.Column('interests', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=False)

    op.create_table(
        'bills',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('bill_number', sa.String(), nullable=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('plain_english_summary', sa.Text(), nullable=True),
        sa.Column('issue_categories', sa.Text(), nullable=True),
        sa.Column('impact_score', sa.Float(), nullable=True),
        sa.Column('latest_action_date', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_bills_impact_score'), 'bills', ['impact_score'], unique=False)
    op.create_index(op.f('ix_bills_latest_action_date'), 'bills', ['latest_action_date'], unique=False)

    op.create_table(
        'briefs',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('audio_url', sa.String(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('transcript', sa.Text(), nullable=True),
        sa.Column('written_digest', sa.Text(), nullable=True),
        sa.Column('bills_covered', sa.JSON(), nullable=True),
        sa.Column('policy_areas', sa.JSON(), nullable=True),
        sa.Column('generated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_briefs_user_id'), 'briefs', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_briefs_user_id'), table_name='briefs')
    op.drop_table('briefs')
    op.drop_index(op.f('ix_bills_latest_action_date'), table_name='bills')
    op.drop_index(op.f('ix_bills_impact_score'), table_name='bills')
    op.drop_table('bills')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
