"""
Create the `videos` table.

- One row per shared video; `object_key` unique.
- `ck_videos_downloaded_disables`: a downloaded row is never enabled.
- `expires_at` indexed for the reaper scan.
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers, used by Alembic.
revision = "20261019_01_videos"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "videos",
        sa.Column("video_id", sa.String(length=36), nullable=False),
        sa.Column("object_key", sa.String(length=1024), nullable=False),
        sa.Column("file_name", sa.String(length=512), nullable=False),
        sa.Column("content_type", sa.String(length=255), nullable=False),
        sa.Column("declared_file_size", sa.BigInteger(), nullable=False),
        sa.Column("actual_file_size", sa.BigInteger(), nullable=True),
        sa.Column("is_enabled", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("is_downloaded", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("is_confirmed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("downloaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("NOT (is_downloaded AND is_enabled)", name=op.f("ck_videos_downloaded_disables")),
        sa.CheckConstraint("declared_file_size > 0", name=op.f("ck_videos_declared_size_positive")),
        sa.PrimaryKeyConstraint("video_id", name=op.f("pk_videos")),
        sa.UniqueConstraint("object_key", name=op.f("uq_videos_object_key")),
    )
    op.create_index("ix_videos_expires_at", "videos", ["expires_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_videos_expires_at", table_name="videos")
    op.drop_table("videos")
