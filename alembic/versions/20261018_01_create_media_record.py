"""Create media_record table."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261018_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "media_record",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("target", sa.String(length=32), nullable=False),
        sa.Column("entity_id", sa.String(length=64)),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("url", sa.String(length=1024), nullable=False),
        sa.Column("public_id", sa.String(length=512), nullable=False),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("content_type", sa.String(length=128), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=False),
        sa.Column("width", sa.Integer()),
        sa.Column("height", sa.Integer()),
        sa.Column("duration", sa.Float()),
        sa.Column("format", sa.String(length=16)),
        sa.Column("thumbnail_url", sa.String(length=1024)),
        sa.Column("thumbnail_public_id", sa.String(length=512)),
        sa.Column("sizes", sa.JSON(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("alt_text", sa.String(length=125), nullable=False, server_default=""),
        sa.Column("caption", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "featured", sa.Boolean(), nullable=False, server_default=sa.text("FALSE")
        ),
        sa.Column(
            "published", sa.Boolean(), nullable=False, server_default=sa.text("FALSE")
        ),
        sa.Column("uploaded_by", sa.String(length=64)),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("public_id", name="uq_media_record_public_id"),
    )
    op.create_index("ix_media_record_kind", "media_record", ["kind"])
    op.create_index("ix_media_record_entity_id", "media_record", ["entity_id"])


def downgrade() -> None:
    op.drop_index("ix_media_record_entity_id", table_name="media_record")
    op.drop_index("ix_media_record_kind", table_name="media_record")
    op.drop_table("media_record")
