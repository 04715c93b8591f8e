"""
Batch orchestration: documents → LLM extraction → skill matching → storage.

Public API
----------
ExtractionPipeline.run_steps(start, stop, only_unfilled, dry_run)  → RunSummary
    For each document in DOCUMENTS_DIR: read → extract steps → match a skill
    → replace that skill's steps.

ExtractionPipeline.run_questions(only_with_steps, dry_run)         → RunSummary
    For each skill: locate its document → generate quiz questions → replace
    that skill's questions.

Documents are processed strictly one after another, each in its own DB
session, with a fixed pause between LLM calls.  A failing document is
rolled back, recorded in the summary, and the run carries on.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import os
import time
from typing import List, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from skillsmatrix.config import settings
from skillsmatrix.database import AsyncSessionLocal
from skillsmatrix.models.database_models import Skill
from skillsmatrix.services.content_extractor import ContentExtractor, QuestionContext
from skillsmatrix.services.content_writer import replace_questions, replace_steps
from skillsmatrix.services.document_reader import (
    DocumentReader,
    find_document_for_skill,
    skill_name_from_filename,
)
from skillsmatrix.services.pipeline_manager import PipelineStatus
from skillsmatrix.services.skill_matcher import MatcherConfig, MatchResult, SkillMatcher

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class RunSummary:
    """Outcome of one batch run."""

    kind: str
    documents: int = 0   # items considered (documents or skills)
    processed: int = 0
    no_match: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = dataclasses.field(default_factory=list)
    matched: List[str] = dataclasses.field(default_factory=list)
    dry_run: bool = False
    processing_time_seconds: float = 0.0

    @property
    def message(self) -> str:
        prefix = "[dry run] " if self.dry_run else ""
        return (
            f"{prefix}{self.kind}: {self.processed}/{self.documents} processed, "
            f"{self.no_match} unmatched, {self.skipped} skipped, {self.failed} failed "
            f"in {self.processing_time_seconds}s"
        )


# ---------------------------------------------------------------------------
# ExtractionPipeline
# ---------------------------------------------------------------------------

class ExtractionPipeline:
    """
    Sequential extraction runs over the skill document directory.

    Collaborators are injectable so tests can swap the LLM client, the
    session factory and the delay.
    """

    def __init__(
        self,
        extractor: Optional[ContentExtractor] = None,
        reader: Optional[DocumentReader] = None,
        matcher: Optional[SkillMatcher] = None,
        session_factory: Optional[async_sessionmaker] = None,
        documents_dir: Optional[str] = None,
        delay_ms: Optional[int] = None,
    ) -> None:
        self._extractor = extractor or ContentExtractor()
        self._reader = reader or DocumentReader()
        self._matcher = matcher or SkillMatcher(MatcherConfig.from_settings())
        self._session_factory = session_factory or AsyncSessionLocal
        self.documents_dir = documents_dir or settings.DOCUMENTS_DIR
        self.delay_seconds = (
            settings.INTER_DOCUMENT_DELAY_MS if delay_ms is None else delay_ms
        ) / 1000.0

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def run_steps(
        self,
        start: Optional[int] = None,
        stop: Optional[int] = None,
        only_unfilled: bool = True,
        dry_run: bool = False,
        status: Optional[PipelineStatus] = None,
    ) -> RunSummary:
        """
        Extract steps for every document in ``documents_dir[start:stop]``.

        Args:
            start, stop:   Slice of the sorted document list.
            only_unfilled: Only match skills that have no steps yet.
            dry_run:       Extract and match, but write nothing.
            status:        Optional live status updated as the run progresses.
        """
        t0 = time.monotonic()
        summary = RunSummary(kind="steps", dry_run=dry_run)
        filenames = self._reader.list_documents(self.documents_dir, start, stop)
        summary.documents = len(filenames)
        if status is not None:
            status.total_items = len(filenames)

        handled: Set[int] = set()
        logger.info("run_steps: %d document(s) in %s", len(filenames), self.documents_dir)

        for index, filename in enumerate(filenames, start=1):
            if status is not None:
                status.current_item = filename
            logger.info("run_steps: [%d/%d] %s", index, len(filenames), filename)

            called_llm = await self._steps_for_document(
                filename, summary, handled, only_unfilled, dry_run
            )
            self._sync_status(status, summary)
            if called_llm and index < len(filenames):
                await self._pause()

        summary.processing_time_seconds = round(time.monotonic() - t0, 2)
        logger.info("run_steps: %s", summary.message)
        return summary

    async def _steps_for_document(
        self,
        filename: str,
        summary: RunSummary,
        handled: Set[int],
        only_unfilled: bool,
        dry_run: bool,
    ) -> bool:
        """Process one document into ``summary``; returns whether the LLM was called."""
        called_llm = False
        async with self._session_factory() as db:
            try:
                text = await self._reader.read_text(os.path.join(self.documents_dir, filename))
                if len(text.strip()) < settings.MIN_DOCUMENT_CHARS:
                    logger.warning(
                        "run_steps: %s has %d chars of text, skipping",
                        filename,
                        len(text.strip()),
                    )
                    summary.skipped += 1
                    return called_llm

                called_llm = True
                extraction = await self._extractor.extract_steps(text, filename)
                if extraction is None or not extraction.steps:
                    logger.warning("run_steps: no steps extracted from %s", filename)
                    summary.skipped += 1
                    return called_llm

                skills = await self._load_skills(db, only_unfilled)
                result = self._match_document(filename, extraction.skill_name, skills)
                if result is None:
                    logger.warning(
                        "run_steps: no skill matches %s (extracted name %r)",
                        filename,
                        extraction.skill_name,
                    )
                    summary.no_match += 1
                    return called_llm

                skill = result.skill
                if skill.id in handled:
                    logger.info(
                        "run_steps: %s already filled in this run, skipping %s",
                        skill.name,
                        filename,
                    )
                    summary.skipped += 1
                    return called_llm
                handled.add(skill.id)

                logger.info(
                    "run_steps: %s -> %s via %s (%d steps)",
                    filename,
                    skill.name,
                    result.tier.value,
                    len(extraction.steps),
                )
                if not dry_run:
                    await replace_steps(skill.id, extraction.steps, db)
                summary.processed += 1
                summary.matched.append(skill.name)

            except Exception as exc:
                summary.failed += 1
                err_msg = f"{filename}: {str(exc)[:120]}"
                summary.errors.append(err_msg)
                logger.error("run_steps: ✗ %s", err_msg)
                await db.rollback()

        return called_llm

    def _match_document(
        self, filename: str, extracted_name: str, skills: List[Skill]
    ) -> Optional[MatchResult]:
        """Match on the file name first, then on the name the model read from the text."""
        candidates = [skill_name_from_filename(filename)]
        if extracted_name and extracted_name.strip().lower() != candidates[0].lower():
            candidates.append(extracted_name.strip())
        for candidate in candidates:
            result = self._matcher.match_with_tier(candidate, skills)
            if result is not None:
                return result
        return None

    @staticmethod
    async def _load_skills(db: AsyncSession, only_unfilled: bool) -> List[Skill]:
        stmt = select(Skill).order_by(Skill.id)
        if only_unfilled:
            stmt = stmt.where(~Skill.steps.any())
        result = await db.execute(stmt)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------

    async def run_questions(
        self,
        only_with_steps: bool = True,
        dry_run: bool = False,
        status: Optional[PipelineStatus] = None,
    ) -> RunSummary:
        """Generate quiz questions for every skill that has a source document."""
        t0 = time.monotonic()
        summary = RunSummary(kind="questions", dry_run=dry_run)
        filenames = self._reader.list_documents(self.documents_dir)

        async with self._session_factory() as db:
            result = await db.execute(
                select(Skill)
                .options(selectinload(Skill.category), selectinload(Skill.steps))
                .order_by(Skill.id)
            )
            skills = list(result.scalars().all())

        if only_with_steps:
            skills = [s for s in skills if s.steps]
        summary.documents = len(skills)
        if status is not None:
            status.total_items = len(skills)
        logger.info("run_questions: %d skill(s), %d document(s)", len(skills), len(filenames))

        for index, skill in enumerate(skills, start=1):
            if status is not None:
                status.current_item = skill.name

            filename = find_document_for_skill(skill.name, filenames)
            if filename is None:
                logger.warning("run_questions: no document found for %s", skill.name)
                summary.no_match += 1
                self._sync_status(status, summary)
                continue

            called_llm = await self._questions_for_skill(skill, filename, summary, dry_run)
            self._sync_status(status, summary)
            if called_llm and index < len(skills):
                await self._pause()

        summary.processing_time_seconds = round(time.monotonic() - t0, 2)
        logger.info("run_questions: %s", summary.message)
        return summary

    async def _questions_for_skill(
        self, skill: Skill, filename: str, summary: RunSummary, dry_run: bool
    ) -> bool:
        """Generate questions for one skill into ``summary``; returns whether the LLM was called."""
        called_llm = False
        async with self._session_factory() as db:
            try:
                text = await self._reader.read_text(os.path.join(self.documents_dir, filename))
                if not text.strip():
                    summary.skipped += 1
                    return called_llm

                called_llm = True
                extraction = await self._extractor.generate_questions(
                    self._question_context(skill, text)
                )
                if extraction is None or not extraction.questions:
                    logger.warning("run_questions: no usable questions for %s", skill.name)
                    summary.skipped += 1
                    return called_llm

                if not dry_run:
                    await replace_questions(skill.id, extraction.questions, db)
                summary.processed += 1
                summary.matched.append(skill.name)

            except Exception as exc:
                summary.failed += 1
                err_msg = f"{skill.name}: {str(exc)[:120]}"
                summary.errors.append(err_msg)
                logger.error("run_questions: ✗ %s", err_msg)
                await db.rollback()

        return called_llm

    @staticmethod
    def _question_context(skill: Skill, text: str) -> QuestionContext:
        steps = sorted(skill.steps, key=lambda s: s.step_number)
        return QuestionContext(
            skill_name=skill.name,
            category=skill.category.name if skill.category is not None else "",
            difficulty=skill.difficulty_level.value if skill.difficulty_level else "",
            objectives=list(skill.objectives or []),
            indications=list(skill.indications or []),
            contraindications=list(skill.contraindications or []),
            common_errors=list(skill.common_errors or []),
            steps=[(s.step_number, s.title, s.description) for s in steps],
            document_text=text,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _pause(self) -> None:
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

    @staticmethod
    def _sync_status(status: Optional[PipelineStatus], summary: RunSummary) -> None:
        if status is None:
            return
        status.items_processed = summary.processed
        status.items_skipped = summary.skipped + summary.no_match
        status.items_failed = summary.failed
        status.errors = list(summary.errors)
