"""Database and schema models for the Skills Matrix."""
from skillsmatrix.models.database_models import (
    Category,
    Skill,
    SkillStep,
    QuizQuestion,
    Subject,
    SubjectSkill,
    Message,
    DifficultyLevel,
)
from skillsmatrix.models.schemas import (
    ExtractedStep,
    StepExtraction,
    ExtractedQuestion,
    QuestionExtraction,
    MessageCreate,
    MessageResponse,
    ConversationResponse,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "Category",
    "Skill",
    "SkillStep",
    "QuizQuestion",
    "Subject",
    "SubjectSkill",
    "Message",
    "DifficultyLevel",
    # Pydantic schemas
    "ExtractedStep",
    "StepExtraction",
    "ExtractedQuestion",
    "QuestionExtraction",
    "MessageCreate",
    "MessageResponse",
    "ConversationResponse",
    "HealthCheckResponse",
]
