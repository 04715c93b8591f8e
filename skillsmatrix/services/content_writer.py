"""
Full-replace persistence of extracted steps and quiz questions.

Every call deletes the skill's existing child rows and inserts the new ones
in one transaction.  Step numbers always come from list position.
"""
from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from skillsmatrix.models.database_models import DifficultyLevel, QuizQuestion, SkillStep
from skillsmatrix.models.schemas import ExtractedQuestion, ExtractedStep

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 255


async def replace_steps(skill_id: int, steps: Sequence[ExtractedStep], db: AsyncSession) -> int:
    """
    Replace all steps of a skill.

    Args:
        skill_id: Owning skill.
        steps:    Extracted steps in procedure order.
        db:       Session; committed on success, rolled back on failure.

    Returns:
        Number of steps written.
    """
    try:
        await db.execute(delete(SkillStep).where(SkillStep.skill_id == skill_id))

        for position, step in enumerate(steps, start=1):
            if step.step_number is not None and step.step_number != position:
                logger.debug(
                    "replace_steps: skill %d step %r numbered %d, stored as %d",
                    skill_id,
                    step.title[:40],
                    step.step_number,
                    position,
                )
            db.add(
                SkillStep(
                    skill_id=skill_id,
                    step_number=position,
                    title=step.title[:TITLE_MAX_LENGTH],
                    description=step.description,
                    key_points=list(step.key_points),
                    is_critical=step.is_critical,
                    time_estimate=step.time_estimate,
                )
            )

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("replace_steps: skill %d now has %d step(s)", skill_id, len(steps))
    return len(steps)


async def replace_questions(
    skill_id: int, questions: Sequence[ExtractedQuestion], db: AsyncSession
) -> int:
    """Replace all quiz questions of a skill. Returns the number written."""
    try:
        await db.execute(delete(QuizQuestion).where(QuizQuestion.skill_id == skill_id))

        for q in questions:
            db.add(
                QuizQuestion(
                    skill_id=skill_id,
                    question=q.question,
                    options=list(q.options),
                    correct_answer=q.correct_answer,
                    explanation=q.explanation,
                    difficulty=DifficultyLevel(q.difficulty.value),
                )
            )

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("replace_questions: skill %d now has %d question(s)", skill_id, len(questions))
    return len(questions)
