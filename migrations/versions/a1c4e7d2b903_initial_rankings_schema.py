"""initial rankings schema

Revision ID: a1c4e7d2b903
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c4e7d2b903'
down_revision = None
branch_labels = None
depends_on = None

EVENTS = ('knockdowns', 'distance', 'speed', 'woods')


def upgrade():
    op.create_table(
        'competitors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('email', sa.String(length=200), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'tournaments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        *[sa.Column(f'has_{e}', sa.Boolean(), nullable=False, server_default=sa.true()) for e in EVENTS],
        *[sa.Column(f'total_points_{e}', sa.Float(), nullable=False, server_default='120') for e in EVENTS],
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'uq_tournaments_date_name',
        'tournaments',
        ['date', sa.text("coalesce(name, '')")],
        unique=True,
    )

    op.create_table(
        'tournament_results',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('competitor_id', sa.Integer(), nullable=False),
        sa.Column('tournament_id', sa.Integer(), nullable=False),
        *[sa.Column(f'{e}_earned', sa.Float(), nullable=True) for e in EVENTS],
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['competitor_id'], ['competitors.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['tournament_id'], ['tournaments.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('competitor_id', 'tournament_id', name='uq_tournament_result_competitor'),
    )
    with op.batch_alter_table('tournament_results', schema=None) as batch_op:
        batch_op.create_index('ix_tournament_results_tournament', ['tournament_id'], unique=False)
        batch_op.alter_column('version_id', server_default=None)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=80), nullable=False),
        sa.Column('entity_type', sa.String(length=80), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('details_json', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('audit_logs', schema=None) as batch_op:
        batch_op.create_index('ix_audit_logs_created_at', ['created_at'], unique=False)
        batch_op.create_index('ix_audit_logs_action', ['action'], unique=False)


def downgrade():
    with op.batch_alter_table('audit_logs', schema=None) as batch_op:
        batch_op.drop_index('ix_audit_logs_action')
        batch_op.drop_index('ix_audit_logs_created_at')
    op.drop_table('audit_logs')

    with op.batch_alter_table('tournament_results', schema=None) as batch_op:
        batch_op.drop_index('ix_tournament_results_tournament')
    op.drop_table('tournament_results')

    op.drop_index('uq_tournaments_date_name', table_name='tournaments')
    op.drop_table('tournaments')
    op.drop_table('competitors')
