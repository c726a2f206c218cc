"""create player, game_session and round tables

Revision ID: 4c7d2a9e1f03
Revises:
Create Date: 2026-09-14 10:20:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7d2a9e1f03'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=True),
            sa.Column('is_system', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_player_email', 'player', ['email'], unique=True)

    if 'game_session' not in existing_tables:
        op.create_table(
            'game_session',
            sa.Column('id', sa.String(length=32), primary_key=True),
            sa.Column('player1_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=True),
            sa.Column('player2_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=True),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='waiting'),
            sa.Column('game_mode', sa.String(length=16), nullable=False, server_default='rps'),
            sa.Column('end_rule', sa.String(length=16), nullable=False, server_default='majority'),
            sa.Column('current_round', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('max_rounds', sa.Integer(), nullable=False, server_default='3'),
            sa.Column('player1_score', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('player2_score', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('winner_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('version', sa.Integer(), nullable=False),
        )
        op.create_index('ix_game_session_player1_id', 'game_session', ['player1_id'])
        op.create_index('ix_game_session_player2_id', 'game_session', ['player2_id'])
        op.create_index('ix_game_session_status', 'game_session', ['status'])

    if 'round' not in existing_tables:
        op.create_table(
            'round',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('session_id', sa.String(length=32), sa.ForeignKey('game_session.id'), nullable=False),
            sa.Column('round_number', sa.Integer(), nullable=False),
            sa.Column('challenge', sa.String(length=255), nullable=True),
            sa.Column('player1_move', sa.String(length=255), nullable=True),
            sa.Column('player2_move', sa.String(length=255), nullable=True),
            sa.Column('player1_submitted_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('player2_submitted_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('winner_id', sa.Integer(), sa.ForeignKey('player.id'), nullable=True),
            sa.Column('result', sa.String(length=16), nullable=True),
            sa.Column('explanation', sa.Text(), nullable=True),
            sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint('session_id', 'round_number', name='uq_round_session_number'),
        )
        op.create_index('ix_round_session_id', 'round', ['session_id'])


def downgrade():
    op.drop_index('ix_round_session_id', table_name='round')
    op.drop_table('round')
    op.drop_index('ix_game_session_status', table_name='game_session')
    op.drop_index('ix_game_session_player2_id', table_name='game_session')
    op.drop_index('ix_game_session_player1_id', table_name='game_session')
    op.drop_table('game_session')
    op.drop_index('ix_player_email', table_name='player')
    op.drop_table('player')
