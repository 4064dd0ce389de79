"""per-entity lock rows for image writers

Revision ID: 0002_image_entity_locks
Revises: 0001_media_store
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0002_image_entity_locks"
down_revision = "0001_media_store"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "image_entity_locks",
        sa.Column(
            "entity_type",
            postgresql.ENUM("spot", "landmark", name="image_entity_type", create_type=False),
            nullable=False,
        ),
        sa.Column("entity_id", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("entity_type", "entity_id"),
    )
    # Entities that already have images get their lock row up front.
    op.execute(
        "INSERT INTO image_entity_locks (entity_type, entity_id) "
        "SELECT DISTINCT entity_type, entity_id FROM images"
    )


def downgrade() -> None:
    op.drop_table("image_entity_locks")
