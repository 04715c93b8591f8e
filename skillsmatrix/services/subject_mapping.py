"""
Map HEM subject document skill names onto stored skills and persist the links.

Only the ALIAS and EXACT tiers are used here: a wrong subject link is worse
than a missing one, so fuzzy tiers stay off.
"""
from __future__ import annotations

import dataclasses
import json
import logging
from typing import Any, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from skillsmatrix.models.database_models import Skill, Subject, SubjectSkill
from skillsmatrix.services.skill_catalog import KNOWN_ALIASES, SUBJECTS, SubjectDefinition
from skillsmatrix.services.skill_matcher import MatcherConfig, MatchTier, SkillMatcher

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class MappedSkill:
    document_skill: str
    skill_id: int
    skill_name: str
    tier: str


@dataclasses.dataclass
class SubjectMapping:
    code: str
    name: str
    level: str
    matched: List[MappedSkill] = dataclasses.field(default_factory=list)
    unmatched: List[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass
class SubjectMappingReport:
    subjects: List[SubjectMapping]

    @property
    def total_matched(self) -> int:
        return sum(len(s.matched) for s in self.subjects)

    @property
    def total_unmatched(self) -> int:
        return sum(len(s.unmatched) for s in self.subjects)

    def to_dict(self) -> dict:
        return {
            "total_matched": self.total_matched,
            "total_unmatched": self.total_unmatched,
            "subjects": [dataclasses.asdict(s) for s in self.subjects],
        }

    def write_json(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(self.to_dict(), fh, indent=2, ensure_ascii=False)
        logger.info("Subject mapping written to %s", path)


@dataclasses.dataclass
class SyncSummary:
    subjects_created: int = 0
    subjects_updated: int = 0
    links_created: int = 0
    links_existing: int = 0


def build_subject_mapping(
    skills: Sequence[Any],
    subjects: Sequence[SubjectDefinition] = SUBJECTS,
) -> SubjectMappingReport:
    matcher = SkillMatcher(
        MatcherConfig(
            explicit_mappings=KNOWN_ALIASES,
            tiers=(MatchTier.ALIAS, MatchTier.EXACT),
        )
    )
    mappings: List[SubjectMapping] = []

    for subject in subjects:
        mapping = SubjectMapping(code=subject.code, name=subject.name, level=subject.level)
        for doc_skill in subject.document_skills:
            result = matcher.match_with_tier(doc_skill, skills)
            if result is None:
                mapping.unmatched.append(doc_skill)
                continue
            mapping.matched.append(
                MappedSkill(
                    document_skill=doc_skill,
                    skill_id=result.skill.id,
                    skill_name=result.skill.name,
                    tier=result.tier.value,
                )
            )
        logger.info(
            "%s: %d matched, %d unmatched",
            subject.code,
            len(mapping.matched),
            len(mapping.unmatched),
        )
        mappings.append(mapping)

    return SubjectMappingReport(subjects=mappings)


def render_subject_mapping(report: SubjectMappingReport) -> List[str]:
    lines = ["=" * 80, "SUBJECT SKILL MAPPING", "=" * 80]
    for subject in report.subjects:
        lines.append("")
        lines.append(f"{subject.code} {subject.name} ({subject.level})")
        lines += [
            f"  + {m.document_skill} -> {m.skill_name} (id {m.skill_id}, {m.tier})"
            for m in subject.matched
        ]
        lines += [f"  x {name} -> no match" for name in subject.unmatched]
    lines += ["", f"Matched: {report.total_matched}, unmatched: {report.total_unmatched}"]
    return lines


async def sync_subjects(
    db: AsyncSession,
    report: Optional[SubjectMappingReport] = None,
    subjects: Sequence[SubjectDefinition] = SUBJECTS,
) -> SyncSummary:
    """
    Upsert the subject catalogue and link each subject to its matched skills.

    When *report* is omitted the mapping is computed from the current skills.
    """
    if report is None:
        result = await db.execute(select(Skill).order_by(Skill.id))
        report = build_subject_mapping(result.scalars().all(), subjects)

    summary = SyncSummary()
    definitions = {s.code: s for s in subjects}

    try:
        for mapping in report.subjects:
            definition = definitions.get(mapping.code)
            if definition is None:
                logger.warning("sync_subjects: %s not in catalogue, skipping", mapping.code)
                continue

            existing = await db.execute(select(Subject).where(Subject.code == definition.code))
            subject = existing.scalar_one_or_none()
            if subject is None:
                subject = Subject(code=definition.code)
                db.add(subject)
                summary.subjects_created += 1
            else:
                summary.subjects_updated += 1
            subject.name = definition.name
            subject.level = definition.level
            subject.description = definition.description
            await db.flush()

            for mapped in mapping.matched:
                link = await db.execute(
                    select(SubjectSkill).where(
                        SubjectSkill.subject_id == subject.id,
                        SubjectSkill.skill_id == mapped.skill_id,
                    )
                )
                if link.scalar_one_or_none() is not None:
                    summary.links_existing += 1
                    continue
                db.add(
                    SubjectSkill(
                        subject_id=subject.id,
                        skill_id=mapped.skill_id,
                        document_skill_name=mapped.document_skill,
                    )
                )
                # Several document names can map to one stored skill
                await db.flush()
                summary.links_created += 1

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "sync_subjects: %d created, %d updated, %d link(s) added",
        summary.subjects_created,
        summary.subjects_updated,
        summary.links_created,
    )
    return summary
