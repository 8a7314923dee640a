"""create servers table

Revision ID: 0001
Revises:
Create Date: 2025-09-01 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_OFFICIAL = "io.modelcontextprotocol.registry/official"


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'servers',
        sa.Column('version_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('value', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.PrimaryKeyConstraint('version_id')
    )
    op.create_index(
        'ix_servers_server_id',
        'servers',
        [sa.text(f"(value #>> '{{_meta,{_OFFICIAL},serverId}}')")],
        unique=False,
    )
    op.create_index('ix_servers_name', 'servers', [sa.text("(value ->> 'name')")], unique=False)
    op.create_index(
        'ix_servers_latest',
        'servers',
        [sa.text(f"(value #>> '{{_meta,{_OFFICIAL},serverId}}')")],
        unique=False,
        postgresql_where=sa.text(f"(value #>> '{{_meta,{_OFFICIAL},isLatest}}') = 'true'"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_servers_latest', table_name='servers')
    op.drop_index('ix_servers_name', table_name='servers')
    op.drop_index('ix_servers_server_id', table_name='servers')
    op.drop_table('servers')
