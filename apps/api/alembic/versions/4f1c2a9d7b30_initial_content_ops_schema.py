"""initial content ops schema

Revision ID: 4f1c2a9d7b30
Revises:
Create Date: 2026-10-19 10:12:31.402117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4f1c2a9d7b30"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "articles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("organization_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_articles_organization_id", "articles", ["organization_id"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("article_id", sa.Integer(), sa.ForeignKey("articles.id"), nullable=False),
        sa.Column("language", sa.String(length=16), nullable=False),
        sa.Column("generate_audio", sa.Boolean(), nullable=False),
        sa.Column("generate_podcast", sa.Boolean(), nullable=False),
        sa.Column("generate_video", sa.Boolean(), nullable=False),
        sa.Column("generate_quiz", sa.Boolean(), nullable=False),
        sa.Column("generate_interactive_podcast", sa.Boolean(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_submissions_article_id", "submissions", ["article_id"])

    op.create_table(
        "outputs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("submission_id", sa.Integer(), sa.ForeignKey("submissions.id"), nullable=True),
        sa.Column("organization_id", sa.String(length=64), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("is_approved", sa.Boolean(), nullable=False),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("title", sa.String(length=512), nullable=True),
        sa.Column("script", sa.Text(), nullable=True),
        sa.Column("payload_json", sa.Text(), nullable=False),
        sa.Column("customization_json", sa.Text(), nullable=False),
        sa.Column("provider_id", sa.String(length=128), nullable=True),
        sa.Column("followup_id", sa.String(length=128), nullable=True),
        sa.Column("asset_url", sa.Text(), nullable=True),
        sa.Column("duration", sa.Float(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("submission_id", "kind", name="uq_outputs_submission_kind"),
    )
    op.create_index("ix_outputs_submission_id", "outputs", ["submission_id"])
    op.create_index("ix_outputs_organization_id", "outputs", ["organization_id"])
    op.create_index("idx_outputs_provider_status", "outputs", ["provider_id", "status"])
    op.create_index("idx_outputs_followup", "outputs", ["followup_id"])
    op.create_index("idx_outputs_status_updated", "outputs", ["status", "updated_at"])

    op.create_table(
        "tags",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("organization_id", "name", name="uq_tags_org_name"),
    )
    op.create_index("ix_tags_id", "tags", ["id"])
    op.create_index("ix_tags_organization_id", "tags", ["organization_id"])

    op.create_table(
        "output_tags",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("output_id", sa.Integer(), sa.ForeignKey("outputs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("tag_id", sa.Integer(), sa.ForeignKey("tags.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_inherited", sa.Boolean(), nullable=False),
        sa.Column("source_output_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("output_id", "tag_id", name="uq_output_tags_output_tag"),
    )
    op.create_index("ix_output_tags_id", "output_tags", ["id"])
    op.create_index("ix_output_tags_output_id", "output_tags", ["output_id"])
    op.create_index("ix_output_tags_tag_id", "output_tags", ["tag_id"])

    # organization-scoped customization entities
    op.create_table(
        "characters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("character_type", sa.String(length=32), nullable=False),
        sa.Column("provider_image_key", sa.String(length=128), nullable=True),
        sa.Column("voice_id", sa.String(length=128), nullable=True),
    )
    op.create_table(
        "caption_styles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("template_id", sa.String(length=128), nullable=True),
    )
    op.create_table(
        "background_music",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
    )
    op.create_table(
        "video_bumpers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("duration", sa.Float(), nullable=True),
    )
    op.create_table(
        "voices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("provider_voice_id", sa.String(length=128), nullable=False),
    )
    for table in ("characters", "caption_styles", "background_music", "video_bumpers", "voices"):
        op.create_index(f"ix_{table}_id", table, ["id"])
        op.create_index(f"ix_{table}_organization_id", table, ["organization_id"])


def downgrade() -> None:
    for table in ("voices", "video_bumpers", "background_music", "caption_styles", "characters"):
        op.drop_index(f"ix_{table}_organization_id", table_name=table)
        op.drop_index(f"ix_{table}_id", table_name=table)
        op.drop_table(table)

    op.drop_index("ix_output_tags_tag_id", table_name="output_tags")
    op.drop_index("ix_output_tags_output_id", table_name="output_tags")
    op.drop_index("ix_output_tags_id", table_name="output_tags")
    op.drop_table("output_tags")

    op.drop_index("ix_tags_organization_id", table_name="tags")
    op.drop_index("ix_tags_id", table_name="tags")
    op.drop_table("tags")

    op.drop_index("idx_outputs_status_updated", table_name="outputs")
    op.drop_index("idx_outputs_followup", table_name="outputs")
    op.drop_index("idx_outputs_provider_status", table_name="outputs")
    op.drop_index("ix_outputs_organization_id", table_name="outputs")
    op.drop_index("ix_outputs_submission_id", table_name="outputs")
    op.drop_table("outputs")

    op.drop_index("ix_submissions_article_id", table_name="submissions")
    op.drop_table("submissions")

    op.drop_index("ix_articles_organization_id", table_name="articles")
    op.drop_table("articles")
