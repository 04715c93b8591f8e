"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-01

Skill content tables as defined in skillsmatrix/models/database_models.py:
categories, skills, skill_steps, quiz_questions.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── Enum types ────────────────────────────────────────────────────────
    difficulty_level = sa.Enum("BEGINNER", "INTERMEDIATE", "ADVANCED", name="difficultylevel")
    difficulty_level.create(op.get_bind(), checkfirst=True)

    # ── categories ────────────────────────────────────────────────────────
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("color_code", sa.String(20), nullable=True),
    )

    # ── skills ────────────────────────────────────────────────────────────
    op.create_table(
        "skills",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("name", sa.String(255), nullable=False, index=True),
        sa.Column("category_id", sa.Integer, sa.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("difficulty_level", sa.Enum("BEGINNER", "INTERMEDIATE", "ADVANCED", name="difficultylevel", create_type=False), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("is_critical", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("estimated_time_minutes", sa.Integer, nullable=True),
        sa.Column("objectives", sa.JSON, nullable=False),
        sa.Column("indications", sa.JSON, nullable=False),
        sa.Column("contraindications", sa.JSON, nullable=False),
        sa.Column("common_errors", sa.JSON, nullable=False),
        sa.Column("equipment", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── skill_steps ───────────────────────────────────────────────────────
    op.create_table(
        "skill_steps",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("skill_id", sa.Integer, sa.ForeignKey("skills.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("step_number", sa.Integer, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("key_points", sa.JSON, nullable=False),
        sa.Column("is_critical", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("time_estimate", sa.Integer, nullable=False, server_default="30"),
    )

    # ── quiz_questions ────────────────────────────────────────────────────
    op.create_table(
        "quiz_questions",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("skill_id", sa.Integer, sa.ForeignKey("skills.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("question", sa.Text, nullable=False),
        sa.Column("options", sa.JSON, nullable=False),
        sa.Column("correct_answer", sa.Integer, nullable=False),
        sa.Column("explanation", sa.Text, nullable=True),
        sa.Column("difficulty", sa.Enum("BEGINNER", "INTERMEDIATE", "ADVANCED", name="difficultylevel", create_type=False), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("quiz_questions")
    op.drop_table("skill_steps")
    op.drop_table("skills")
    op.drop_table("categories")

    op.execute("DROP TYPE IF EXISTS difficultylevel")
