"""create people table

Revision ID: 0001_create_people_table
Revises: 
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_create_people_table'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if inspector.has_table('people'):
        return

    op.create_table(
        'people',
        sa.Column('id', sa.Integer, primary_key=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('country', sa.String(length=255), nullable=True),
        sa.Column('birthday', sa.Date, nullable=False),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
    )
    # month/year filters scan birthday
    op.create_index('ix_people_birthday', 'people', ['birthday'])


def downgrade() -> None:
    op.drop_index('ix_people_birthday', table_name='people')
    op.drop_table('people')
