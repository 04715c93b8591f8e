"""
Pydantic schemas for LLM output validation and request/response bodies.
"""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Any
from datetime import datetime
from enum import Enum
import re


# Enums (matching database enums)
class DifficultyLevelSchema(str, Enum):
    """Difficulty levels for API responses and extracted questions."""

    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"


# ---------------------------------------------------------------------------
# Extraction Schemas (shape of the completion endpoint's JSON)
# ---------------------------------------------------------------------------

class ExtractedStep(BaseModel):
    """One procedure step as returned by the model."""

    step_number: Optional[int] = Field(None, alias="stepNumber")
    title: str
    description: str = ""
    key_points: List[str] = Field(default_factory=list, alias="keyPoints")
    is_critical: bool = Field(False, alias="isCritical")
    time_estimate: int = Field(30, alias="timeEstimate")  # seconds

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("key_points", mode="before")
    @classmethod
    def _coerce_key_points(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return value

    @field_validator("is_critical", mode="before")
    @classmethod
    def _none_to_false(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("time_estimate", mode="before")
    @classmethod
    def _coerce_time_estimate(cls, value: Any) -> Any:
        # Models sometimes answer "45 seconds"
        if value is None or value == "":
            return 30
        if isinstance(value, str):
            match = re.search(r"\d+", value)
            return int(match.group()) if match else 30
        return value


class StepExtraction(BaseModel):
    """Steps extracted from one skill document."""

    skill_name: str = Field("", alias="skillName")
    steps: List[ExtractedStep] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("skill_name", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class ExtractedQuestion(BaseModel):
    """One multiple-choice question as returned by the model."""

    question: str
    options: List[str]
    correct_answer: int = Field(..., alias="correctAnswer")
    explanation: Optional[str] = None
    difficulty: DifficultyLevelSchema = DifficultyLevelSchema.INTERMEDIATE

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("difficulty", mode="before")
    @classmethod
    def _coerce_difficulty(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().upper() in DifficultyLevelSchema.__members__:
            return value.strip().upper()
        return DifficultyLevelSchema.INTERMEDIATE

    @property
    def has_valid_answer(self) -> bool:
        return 0 <= self.correct_answer < len(self.options)


class QuestionExtraction(BaseModel):
    """Quiz questions generated for one skill."""

    questions: List[ExtractedQuestion] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Skill Schemas
# ---------------------------------------------------------------------------

class SkillStepResponse(BaseModel):
    """Schema for a stored skill step."""

    id: int
    skill_id: int
    step_number: int
    title: str
    description: str
    key_points: List[str]
    is_critical: bool
    time_estimate: int

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Message Schemas
# ---------------------------------------------------------------------------

class MessageCreate(BaseModel):
    """Body of POST /api/messages. Missing fields are reported as 400."""

    to_id: Optional[str] = None
    to_name: Optional[str] = None
    to_role: Optional[str] = None
    subject: Optional[str] = None
    content: Optional[str] = None


class MessageMarkRead(BaseModel):
    """Body of PATCH /api/messages."""

    message_id: str
    is_read: bool = True


class MessageResponse(BaseModel):
    """Schema for a single message."""

    id: str
    from_id: str
    from_name: Optional[str] = None
    from_role: Optional[str] = None
    to_id: str
    to_name: Optional[str] = None
    to_role: Optional[str] = None
    subject: str
    content: str
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConversationResponse(BaseModel):
    """A conversation as seen by one participant."""

    id: str
    other_user_id: str
    other_user_name: Optional[str] = None
    other_user_role: Optional[str] = None
    last_message: str
    last_message_at: datetime
    unread_count: int
    messages: List[MessageResponse]

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Pipeline Schemas
# ---------------------------------------------------------------------------

class ExtractStepsRequest(BaseModel):
    """Options for a background step-extraction run."""

    start: Optional[int] = Field(None, ge=0)
    stop: Optional[int] = Field(None, ge=0)
    only_unfilled: bool = True
    dry_run: bool = False


class GenerateQuestionsRequest(BaseModel):
    """Options for a background question-generation run."""

    only_with_steps: bool = True
    dry_run: bool = False


class PipelineStatusResponse(BaseModel):
    """Progress of a background pipeline run."""

    kind: str
    phase: str
    total_items: int
    items_processed: int
    items_skipped: int
    items_failed: int
    current_item: Optional[str] = None
    errors: List[str]
    elapsed_seconds: float

    model_config = ConfigDict(from_attributes=True)


# Health Check Schema
class HealthCheckResponse(BaseModel):
    """Schema for health check endpoint."""

    status: str
    database: str
    llm: str
    timestamp: datetime
    version: str = "0.1.0"
