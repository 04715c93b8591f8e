"""add subjects and messages

Revision ID: 002
Revises: 001
Create Date: 2026-10-08 14:00:00

HEM subjects with their skill links, and the messages table that replaces
the in-process message list.
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "subjects",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("code", sa.String(20), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("level", sa.String(100), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
    )

    op.create_table(
        "subject_skills",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("subject_id", sa.Integer, sa.ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("skill_id", sa.Integer, sa.ForeignKey("skills.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("document_skill_name", sa.String(255), nullable=True),
        sa.UniqueConstraint("subject_id", "skill_id", name="uq_subject_skill"),
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("from_id", sa.String(255), nullable=False, index=True),
        sa.Column("from_name", sa.String(255), nullable=True),
        sa.Column("from_role", sa.String(50), nullable=True),
        sa.Column("to_id", sa.String(255), nullable=False, index=True),
        sa.Column("to_name", sa.String(255), nullable=True),
        sa.Column("to_role", sa.String(50), nullable=True),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("messages")
    op.drop_table("subject_skills")
    op.drop_table("subjects")
