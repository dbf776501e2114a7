"""add competitor name key

Revision ID: c5d81f3e07a2
Revises: a1c4e7d2b903
Create Date: 2026-10-17 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c5d81f3e07a2'
down_revision = 'a1c4e7d2b903'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table('competitors', schema=None) as batch_op:
        batch_op.add_column(sa.Column('name_key', sa.String(length=200), nullable=True))

    # SQL lower() only folds ASCII, so the keys are computed here
    competitors = sa.table('competitors', sa.column('id', sa.Integer), sa.column('name', sa.String),
                           sa.column('name_key', sa.String))
    connection = op.get_bind()
    for row in connection.execute(sa.select(competitors.c.id, competitors.c.name)).fetchall():
        connection.execute(
            competitors.update()
            .where(competitors.c.id == row.id)
            .values(name_key=row.name.strip().casefold())
        )

    with op.batch_alter_table('competitors', schema=None) as batch_op:
        batch_op.alter_column('name_key', existing_type=sa.String(length=200), nullable=False)
        batch_op.create_index('ix_competitors_name_key', ['name_key'], unique=False)


def downgrade():
    with op.batch_alter_table('competitors', schema=None) as batch_op:
        batch_op.drop_index('ix_competitors_name_key')
        batch_op.drop_column('name_key')
