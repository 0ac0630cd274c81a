"""create user and state_record tables

Revision ID: 3c7d9e1f2a4b
Revises:
Create Date: 2026-10-17 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c7d9e1f2a4b'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=True),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'state_record' not in existing_tables:
        op.create_table(
            'state_record',
            sa.Column('key', sa.String(length=64), primary_key=True),
            sa.Column('value', sa.Text(), nullable=True),
            sa.Column('updated_at', sa.Float(), nullable=True),
        )


def downgrade():
    op.drop_table('state_record')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
