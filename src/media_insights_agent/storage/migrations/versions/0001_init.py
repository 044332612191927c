"""
Инициальная миграция.

Создаёт таблицы:
- videos, pdfs, scorms
- settings, dictionary_terms, catalog_products
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "videos",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("file_name", sa.String(length=512), nullable=False),
        sa.Column("source_type", sa.String(length=16), nullable=False),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.Column("file_path", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("transcript", sa.Text(), nullable=True),
        sa.Column("structured_transcript", sa.Text(), nullable=True),
        sa.Column("questions_answers", sa.Text(), nullable=True),
        sa.Column("degraded_stages", sa.JSON(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "pdfs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("file_name", sa.String(length=512), nullable=False),
        sa.Column("file_path", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("extracted_text", sa.Text(), nullable=True),
        sa.Column("structured_summary", sa.Text(), nullable=True),
        sa.Column("questions_answers", sa.Text(), nullable=True),
        sa.Column("ely_metadata", sa.Text(), nullable=True),
        sa.Column("degraded_stages", sa.JSON(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "scorms",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("scorm_id", sa.String(length=128), nullable=False),
        sa.Column("scorm_name", sa.String(length=512), nullable=True),
        sa.Column("course_path", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("extracted_text", sa.Text(), nullable=True),
        sa.Column("structured_summary", sa.Text(), nullable=True),
        sa.Column("questions_answers", sa.Text(), nullable=True),
        sa.Column("degraded_stages", sa.JSON(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transcript_prompt", sa.Text(), nullable=True),
        sa.Column("qa_prompt", sa.Text(), nullable=True),
        sa.Column("additional_prompt", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "dictionary_terms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("term", sa.String(length=255), nullable=False, unique=True),
        sa.Column("replacement", sa.String(length=255), nullable=False),
    )

    op.create_table(
        "catalog_products",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("registered_crops", sa.Text(), nullable=True),
        sa.Column("controlled_targets", sa.Text(), nullable=True),
        sa.Column("recommended_dose", sa.Text(), nullable=True),
        sa.Column("spray_volume", sa.Text(), nullable=True),
        sa.Column("product_class", sa.Text(), nullable=True),
        sa.Column("company", sa.Text(), nullable=True),
        sa.Column("country", sa.Text(), nullable=True),
    )


def downgrade() -> None:
    for table in ("catalog_products", "dictionary_terms", "settings", "scorms", "pdfs", "videos"):
        op.drop_table(table)
