"""Create places table

Revision ID: 001
Revises: None
Create Date: 2025-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS places (
            id VARCHAR(64) PRIMARY KEY,
            name TEXT NOT NULL,
            category VARCHAR(100) NOT NULL,
            address TEXT NOT NULL DEFAULT '',
            road_address TEXT,
            phone VARCHAR(50),
            lat DOUBLE PRECISION NOT NULL,
            lng DOUBLE PRECISION NOT NULL,
            created_at TIMESTAMP NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMP NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_places_name_category_address UNIQUE (name, category, address)
        )
    """)

    # Backs the category + bounding-box range query
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_places_category_lat_lng
        ON places (category, lat, lng)
    """)


def downgrade() -> None:
    op.execute('DROP INDEX IF EXISTS ix_places_category_lat_lng')
    op.execute('DROP TABLE IF EXISTS places')
