"""initial schema: players, stats, catalog, attempts, level progress

Revision ID: 1a7c3e9d2b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a7c3e9d2b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'player',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
    )
    op.create_index('ix_player_username', 'player', ['username'], unique=True)

    op.create_table(
        'player_stats',
        sa.Column('player_id', sa.Integer(), sa.ForeignKey('player.id'), primary_key=True),
        sa.Column('knowledge_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('dose', sa.Float(), nullable=False, server_default='0'),
    )

    op.create_table(
        'level',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('intro_text', sa.Text(), nullable=True),
        sa.Column('topic_tag', sa.String(length=64), nullable=False, server_default='radioactivity'),
        sa.Column('ordering', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        'task',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('level_id', sa.Integer(), sa.ForeignKey('level.id'), nullable=False),
        sa.Column('kind', sa.String(length=8), nullable=False, server_default='mc'),
        sa.Column('prompt_text', sa.Text(), nullable=False),
        sa.Column('evaluation_criteria', sa.Text(), nullable=False, server_default=''),
        sa.Column('example_answer', sa.Text(), nullable=False, server_default=''),
        sa.Column('max_points', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('ordering', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index('ix_task_level_id', 'task', ['level_id'])

    op.create_table(
        'option',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('task_id', sa.Integer(), sa.ForeignKey('task.id'), nullable=False),
        sa.Column('option_text', sa.Text(), nullable=False),
        sa.Column('points_awarded', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('dose_delta', sa.Float(), nullable=False, server_default='0'),
        sa.Column('correctness', sa.Float(), nullable=False, server_default='0'),
        sa.Column('ordering', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_option_task_id', 'option', ['task_id'])

    op.create_table(
        'attempt',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('player_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=False),
        sa.Column('level_id', sa.Integer(), sa.ForeignKey('level.id'), nullable=False),
        sa.Column('task_id', sa.Integer(), sa.ForeignKey('task.id'), nullable=False),
        sa.Column('option_id', sa.Integer(), sa.ForeignKey('option.id'), nullable=True),
        sa.Column('answer', sa.Text(), nullable=False, server_default=''),
        sa.Column('reasoning', sa.Text(), nullable=True),
        sa.Column('correctness', sa.Float(), nullable=False),
        sa.Column('points_got', sa.Integer(), nullable=False),
        sa.Column('dose_got', sa.Float(), nullable=False),
        sa.Column('ai_score', sa.Float(), nullable=True),
        sa.Column('ai_summary', sa.Text(), nullable=True),
        sa.Column('ai_strengths', sa.Text(), nullable=True),
        sa.Column('ai_weaknesses', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_attempt_player_id', 'attempt', ['player_id'])

    op.create_table(
        'level_progress',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('player_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=False),
        sa.Column('level_id', sa.Integer(), sa.ForeignKey('level.id'), nullable=False),
        sa.Column('state', sa.String(length=16), nullable=False, server_default='in_progress'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('player_id', 'level_id', name='uq_level_progress_player_level'),
    )
    op.create_index('ix_level_progress_player_id', 'level_progress', ['player_id'])


def downgrade():
    op.drop_index('ix_level_progress_player_id', table_name='level_progress')
    op.drop_table('level_progress')
    op.drop_index('ix_attempt_player_id', table_name='attempt')
    op.drop_table('attempt')
    op.drop_index('ix_option_task_id', table_name='option')
    op.drop_table('option')
    op.drop_index('ix_task_level_id', table_name='task')
    op.drop_table('task')
    op.drop_table('level')
    op.drop_table('player_stats')
    op.drop_index('ix_player_username', table_name='player')
    op.drop_table('player')
