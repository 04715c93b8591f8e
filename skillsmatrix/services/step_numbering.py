"""
Repair of step numbers written before numbering was derived from position.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, List, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from skillsmatrix.models.database_models import Skill

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class RepairSummary:
    skills_checked: int = 0
    skills_fixed: int = 0
    steps_renumbered: int = 0
    fixed_skill_names: List[str] = dataclasses.field(default_factory=list)


def renumber(steps: Sequence[Any]) -> List[Tuple[Any, int]]:
    """
    Compute the renumbering for steps given in insertion order.

    Returns the ``(step, new_number)`` pairs whose ``step_number`` differs
    from position + 1; relative order is never changed.
    """
    return [
        (step, position)
        for position, step in enumerate(steps, start=1)
        if step.step_number != position
    ]


class StepNumberingRepair:
    """Rewrites step numbers to 1..n in insertion (id) order for every skill."""

    async def run(self, db: AsyncSession, dry_run: bool = False) -> RepairSummary:
        result = await db.execute(
            select(Skill).options(selectinload(Skill.steps)).order_by(Skill.id)
        )
        skills = result.scalars().all()
        summary = RepairSummary()

        for skill in skills:
            if not skill.steps:
                continue
            summary.skills_checked += 1

            ordered = sorted(skill.steps, key=lambda s: s.id)
            changes = renumber(ordered)
            if not changes:
                continue

            summary.skills_fixed += 1
            summary.steps_renumbered += len(changes)
            summary.fixed_skill_names.append(skill.name)
            logger.info(
                "renumber: %s: %s -> %s",
                skill.name,
                [s.step_number for s in ordered],
                list(range(1, len(ordered) + 1)),
            )
            if not dry_run:
                for step, new_number in changes:
                    step.step_number = new_number

        if dry_run:
            await db.rollback()
        else:
            await db.commit()

        logger.info(
            "renumber: %d skill(s) checked, %d fixed, %d step(s) renumbered",
            summary.skills_checked,
            summary.skills_fixed,
            summary.steps_renumbered,
        )
        return summary
