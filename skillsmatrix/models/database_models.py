"""
SQLAlchemy ORM models for the Skills Matrix database.
List-valued attributes are stored as JSON so the schema works on any dialect.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Boolean,
    Enum as SQLEnum,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime, timezone
import enum

from skillsmatrix.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Enums
class DifficultyLevel(str, enum.Enum):
    """Difficulty of a skill or a quiz question."""

    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"


# Models
class Category(Base):
    """Grouping of skills, e.g. "Basic Life Support (BLS)"."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    color_code = Column(String(20), nullable=True)

    skills = relationship("Skill", back_populates="category")


class Skill(Base):
    """A trainable paramedic procedure."""

    __tablename__ = "skills"

    id = Column(Integer, primary_key=True, index=True)
    # Not unique: duplicate names are tolerated and handled by the matcher
    name = Column(String(255), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    difficulty_level = Column(SQLEnum(DifficultyLevel), nullable=False, default=DifficultyLevel.BEGINNER)
    description = Column(Text, nullable=True)
    is_critical = Column(Boolean, default=False, nullable=False)
    estimated_time_minutes = Column(Integer, nullable=True)

    objectives = Column(JSON, nullable=False, default=list)
    indications = Column(JSON, nullable=False, default=list)
    contraindications = Column(JSON, nullable=False, default=list)
    common_errors = Column(JSON, nullable=False, default=list)
    equipment = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    category = relationship("Category", back_populates="skills")
    steps = relationship(
        "SkillStep",
        back_populates="skill",
        cascade="all, delete-orphan",
        order_by="SkillStep.id",
    )
    quiz_questions = relationship(
        "QuizQuestion",
        back_populates="skill",
        cascade="all, delete-orphan",
        order_by="QuizQuestion.id",
    )
    subject_links = relationship("SubjectSkill", back_populates="skill", cascade="all, delete-orphan")


class SkillStep(Base):
    """One ordered action within a skill's procedure."""

    __tablename__ = "skill_steps"

    id = Column(Integer, primary_key=True, index=True)
    skill_id = Column(Integer, ForeignKey("skills.id", ondelete="CASCADE"), nullable=False, index=True)
    step_number = Column(Integer, nullable=False)  # 1-based, contiguous per skill
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    key_points = Column(JSON, nullable=False, default=list)
    is_critical = Column(Boolean, default=False, nullable=False)
    time_estimate = Column(Integer, nullable=False, default=30)  # seconds

    skill = relationship("Skill", back_populates="steps")


class QuizQuestion(Base):
    """Multiple-choice question attached to a skill."""

    __tablename__ = "quiz_questions"

    id = Column(Integer, primary_key=True, index=True)
    skill_id = Column(Integer, ForeignKey("skills.id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    options = Column(JSON, nullable=False, default=list)
    correct_answer = Column(Integer, nullable=False)  # index into options
    explanation = Column(Text, nullable=True)
    difficulty = Column(SQLEnum(DifficultyLevel), nullable=False, default=DifficultyLevel.INTERMEDIATE)

    skill = relationship("Skill", back_populates="quiz_questions")


class Subject(Base):
    """Curriculum subject identified by its HEM code."""

    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(20), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    level = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)

    skill_links = relationship("SubjectSkill", back_populates="subject", cascade="all, delete-orphan")


class SubjectSkill(Base):
    """Association between a subject and one of its skills."""

    __tablename__ = "subject_skills"
    __table_args__ = (UniqueConstraint("subject_id", "skill_id", name="uq_subject_skill"),)

    id = Column(Integer, primary_key=True, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    skill_id = Column(Integer, ForeignKey("skills.id", ondelete="CASCADE"), nullable=False, index=True)
    # Name the skill has in the subject's source document
    document_skill_name = Column(String(255), nullable=True)

    subject = relationship("Subject", back_populates="skill_links")
    skill = relationship("Skill", back_populates="subject_links")


class Message(Base):
    """Direct message between two users (student ↔ lecturer)."""

    __tablename__ = "messages"

    id = Column(String(64), primary_key=True)  # "msg-<hex>", assigned by the store
    from_id = Column(String(255), nullable=False, index=True)
    from_name = Column(String(255), nullable=True)
    from_role = Column(String(50), nullable=True)
    to_id = Column(String(255), nullable=False, index=True)
    to_name = Column(String(255), nullable=True)
    to_role = Column(String(50), nullable=True)
    subject = Column(String(255), nullable=False, default="Message")
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
