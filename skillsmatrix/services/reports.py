"""
Read-only coverage and quality reports over skills, steps and quiz questions.

Each report is a dataclass built by a pure ``build_*`` function from loaded
skills (anything exposing ``name``, ``is_critical``, ``category``, ``steps``
and ``quiz_questions``) and turned into console lines by a ``render_*``
function.  Nothing here writes to the database.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import math
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from skillsmatrix.config import settings
from skillsmatrix.models.database_models import Skill
from skillsmatrix.services.skill_catalog import PRIORITY_CATEGORIES
from skillsmatrix.utils.helpers import percentage, progress_bar, safe_divide

logger = logging.getLogger(__name__)

RULE = "=" * 80
THIN_RULE = "-" * 40


async def load_skills(db: AsyncSession) -> List[Skill]:
    """Load every skill with its category, steps and questions, ordered by name."""
    result = await db.execute(
        select(Skill)
        .options(
            selectinload(Skill.category),
            selectinload(Skill.steps),
            selectinload(Skill.quiz_questions),
        )
        .order_by(Skill.name, Skill.id)
    )
    return list(result.scalars().all())


def _category_name(skill: Any) -> str:
    category = getattr(skill, "category", None)
    return category.name if category is not None else "Uncategorized"


def _ordered_steps(skill: Any) -> List[Any]:
    return sorted(skill.steps, key=lambda s: s.id if s.id is not None else 0)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class CategoryProgress:
    name: str
    total: int = 0
    with_steps: int = 0
    with_quizzes: int = 0

    @property
    def steps_pct(self) -> float:
        return percentage(self.with_steps, self.total)

    @property
    def quiz_pct(self) -> float:
        return percentage(self.with_quizzes, self.total)


@dataclasses.dataclass
class ProgressReport:
    total_skills: int
    complete: int
    incomplete: int
    with_quizzes: int
    critical_total: int
    critical_complete: int
    total_steps: int
    total_questions: int
    categories: List[CategoryProgress]
    steps_without_quiz: List[str]

    @property
    def completion_pct(self) -> float:
        return percentage(self.complete, self.total_skills)

    @property
    def critical_pct(self) -> float:
        return percentage(self.critical_complete, self.critical_total)


def build_progress_report(skills: Sequence[Any]) -> ProgressReport:
    categories: Dict[str, CategoryProgress] = {}
    complete = with_quizzes = critical_total = critical_complete = 0
    total_steps = total_questions = 0
    steps_without_quiz: List[str] = []

    for skill in skills:
        has_steps = len(skill.steps) > 0
        has_quiz = len(skill.quiz_questions) > 0
        total_steps += len(skill.steps)
        total_questions += len(skill.quiz_questions)

        cat = categories.setdefault(_category_name(skill), CategoryProgress(_category_name(skill)))
        cat.total += 1
        if has_steps:
            complete += 1
            cat.with_steps += 1
            if not has_quiz:
                steps_without_quiz.append(skill.name)
        if has_quiz:
            with_quizzes += 1
            cat.with_quizzes += 1
        if skill.is_critical:
            critical_total += 1
            if has_steps:
                critical_complete += 1

    return ProgressReport(
        total_skills=len(skills),
        complete=complete,
        incomplete=len(skills) - complete,
        with_quizzes=with_quizzes,
        critical_total=critical_total,
        critical_complete=critical_complete,
        total_steps=total_steps,
        total_questions=total_questions,
        categories=sorted(categories.values(), key=lambda c: c.name),
        steps_without_quiz=steps_without_quiz,
    )


def render_progress(report: ProgressReport) -> List[str]:
    lines = [
        RULE,
        "SKILLS PROGRESS REPORT",
        RULE,
        f"Total skills:          {report.total_skills}",
        f"With steps:            {report.complete} ({report.completion_pct}%)",
        f"Without steps:         {report.incomplete}",
        f"With quiz questions:   {report.with_quizzes}",
        f"Critical with steps:   {report.critical_complete}/{report.critical_total} ({report.critical_pct}%)",
        f"Total steps:           {report.total_steps}",
        f"Total quiz questions:  {report.total_questions}",
        "",
        f"Overall {progress_bar(report.complete, report.total_skills)} {report.completion_pct}%",
        "",
        "BY CATEGORY",
        THIN_RULE,
    ]
    for cat in report.categories:
        lines.append(
            f"{cat.name}: steps {cat.with_steps}/{cat.total} ({cat.steps_pct}%), "
            f"quizzes {cat.with_quizzes}/{cat.total} ({cat.quiz_pct}%)"
        )
    if report.steps_without_quiz:
        lines += ["", f"SKILLS WITH STEPS BUT NO QUIZ ({len(report.steps_without_quiz)})", THIN_RULE]
        lines += [f"  - {name}" for name in report.steps_without_quiz]
    return lines


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class IncompleteStep:
    skill_name: str
    step_number: int
    missing: List[str]


@dataclasses.dataclass
class AuditReport:
    total_skills: int
    skills_without_steps: List[str]
    incomplete_steps: List[IncompleteStep]


def build_audit_report(skills: Sequence[Any]) -> AuditReport:
    without_steps: List[str] = []
    incomplete: List[IncompleteStep] = []

    for skill in skills:
        if not skill.steps:
            without_steps.append(skill.name)
            continue
        for step in _ordered_steps(skill):
            missing = [
                field
                for field in ("title", "description")
                if not (getattr(step, field) or "").strip()
            ]
            if missing:
                incomplete.append(IncompleteStep(skill.name, step.step_number, missing))

    return AuditReport(
        total_skills=len(skills),
        skills_without_steps=without_steps,
        incomplete_steps=incomplete,
    )


def render_audit(report: AuditReport) -> List[str]:
    lines = [
        RULE,
        "SKILL STEPS AUDIT",
        RULE,
        f"Total skills: {report.total_skills}",
        f"Skills without steps: {len(report.skills_without_steps)}",
        f"Steps missing title or description: {len(report.incomplete_steps)}",
    ]
    if report.skills_without_steps:
        lines += ["", "SKILLS WITHOUT STEPS", THIN_RULE]
        lines += [f"  - {name}" for name in report.skills_without_steps]
    if report.incomplete_steps:
        lines += ["", "INCOMPLETE STEPS", THIN_RULE]
        lines += [
            f"  - {item.skill_name} step {item.step_number}: missing {', '.join(item.missing)}"
            for item in report.incomplete_steps
        ]
    return lines


# ---------------------------------------------------------------------------
# Critical skills monitor
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class CriticalSkillStatus:
    name: str
    category: str
    step_count: int
    quiz_count: int
    priority: str  # high | medium | low

    @property
    def has_steps(self) -> bool:
        return self.step_count > 0


@dataclasses.dataclass
class CriticalReport:
    total_critical: int
    complete: int
    target: int
    items: List[CriticalSkillStatus]

    @property
    def remaining_to_target(self) -> int:
        return max(0, self.target - self.complete)

    @property
    def target_met(self) -> bool:
        return self.complete >= self.target


def critical_priority(category: str, step_count: int, quiz_count: int) -> str:
    if step_count == 0:
        return "high" if category in PRIORITY_CATEGORIES else "medium"
    return "low" if quiz_count > 0 else "medium"


def build_critical_report(
    skills: Sequence[Any], deployment_target: Optional[float] = None
) -> CriticalReport:
    target_share = settings.DEPLOYMENT_TARGET if deployment_target is None else deployment_target
    items: List[CriticalSkillStatus] = []

    for skill in skills:
        if not skill.is_critical:
            continue
        category = _category_name(skill)
        items.append(
            CriticalSkillStatus(
                name=skill.name,
                category=category,
                step_count=len(skill.steps),
                quiz_count=len(skill.quiz_questions),
                priority=critical_priority(category, len(skill.steps), len(skill.quiz_questions)),
            )
        )

    order = {"high": 0, "medium": 1, "low": 2}
    items.sort(key=lambda i: (order[i.priority], i.category, i.name))
    return CriticalReport(
        total_critical=len(items),
        complete=sum(1 for i in items if i.has_steps),
        target=math.ceil(len(items) * target_share),
        items=items,
    )


def render_critical(report: CriticalReport) -> List[str]:
    lines = [
        RULE,
        "CRITICAL SKILLS MONITOR",
        RULE,
        f"Critical skills with steps: {report.complete}/{report.total_critical} "
        f"{progress_bar(report.complete, report.total_critical)}",
        f"Deployment target: {report.target} "
        + ("(met)" if report.target_met else f"({report.remaining_to_target} to go)"),
    ]
    for priority in ("high", "medium", "low"):
        group = [i for i in report.items if i.priority == priority]
        if not group:
            continue
        lines += ["", f"{priority.upper()} PRIORITY ({len(group)})", THIN_RULE]
        lines += [
            f"  - {i.name} [{i.category}] steps={i.step_count} quiz={i.quiz_count}"
            for i in group
        ]
    return lines


# ---------------------------------------------------------------------------
# Quality validator
# ---------------------------------------------------------------------------

ERROR_PENALTY = 15
WARNING_PENALTY = 5


@dataclasses.dataclass
class QualityIssue:
    severity: str  # error | warning
    message: str
    suggestion: Optional[str] = None


@dataclasses.dataclass
class SkillQualityReport:
    skill_name: str
    step_count: int
    quiz_count: int
    issues: List[QualityIssue]
    score: int
    status: str

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == "error")


@dataclasses.dataclass
class QualitySummary:
    reports: List[SkillQualityReport]
    average_score: float
    excellent: int
    good: int
    needs_improvement: int
    critical_issues: int
    total_issues: int
    total_errors: int


def _step_issues(steps: Sequence[Any]) -> List[QualityIssue]:
    issues: List[QualityIssue] = []
    for position, step in enumerate(steps, start=1):
        if step.step_number != position:
            issues.append(QualityIssue(
                "error",
                f"Step numbering issue: expected {position}, got {step.step_number}",
                "Steps should be numbered sequentially starting from 1",
            ))
    for position, step in enumerate(steps, start=1):
        description = step.description or ""
        if len(description) < 50:
            issues.append(QualityIssue(
                "warning",
                f"Step {position} has very short description ({len(description)} chars)",
                "Consider adding more detailed instructions",
            ))
        if not step.key_points:
            issues.append(QualityIssue(
                "warning",
                f"Step {position} has no key points",
                "Add 2-5 key points highlighting critical aspects",
            ))
        if step.time_estimate is None or not 5 <= step.time_estimate <= 600:
            issues.append(QualityIssue(
                "warning",
                f"Step {position} has unrealistic time estimate: {step.time_estimate}s",
                "Time estimates should be between 5-600 seconds",
            ))
    return issues


def _question_issues(questions: Sequence[Any]) -> List[QualityIssue]:
    issues: List[QualityIssue] = []
    for index, q in enumerate(questions, start=1):
        options = q.options or []
        if len(q.question or "") < 20:
            issues.append(QualityIssue(
                "warning",
                f"Quiz question {index} is very short",
                "Questions should be detailed and specific",
            ))
        if not 3 <= len(options) <= 5:
            issues.append(QualityIssue(
                "error",
                f"Quiz question {index} has {len(options)} options",
                "Questions should have 3-5 answer options",
            ))
        if q.correct_answer is None or not 0 <= q.correct_answer < len(options):
            issues.append(QualityIssue(
                "error",
                f"Quiz question {index} has invalid correct answer index",
                "Correct answer index must be valid for the options array",
            ))
        if not q.explanation or len(q.explanation) < 20:
            issues.append(QualityIssue(
                "warning",
                f"Quiz question {index} has inadequate explanation",
                "Provide detailed explanation for the correct answer",
            ))
    return issues


def quality_score(step_count: int, quiz_count: int, issues: Sequence[QualityIssue]) -> int:
    score = 100
    for issue in issues:
        score -= ERROR_PENALTY if issue.severity == "error" else WARNING_PENALTY
    if 8 <= step_count <= 15:
        score += 5
    if quiz_count >= 3:
        score += 10
    return max(0, score)


def quality_status(score: int) -> str:
    if score >= 90:
        return "excellent"
    if score >= 75:
        return "good"
    if score >= 60:
        return "needs_improvement"
    return "critical_issues"


def validate_skill_quality(skill: Any) -> SkillQualityReport:
    steps = _ordered_steps(skill)
    questions = list(skill.quiz_questions)
    issues: List[QualityIssue] = []

    if not skill.name or not skill.name.strip():
        issues.append(QualityIssue("error", "Skill has no name or empty name"))
    if not steps:
        issues.append(QualityIssue("error", "Skill has no steps"))
    if len(steps) < 5:
        issues.append(QualityIssue(
            "warning",
            f"Only {len(steps)} steps - might be incomplete",
            "Most procedures should have 5-15 steps",
        ))
    if len(steps) > 20:
        issues.append(QualityIssue(
            "warning",
            f"{len(steps)} steps - might be too detailed",
            "Consider combining related steps",
        ))

    issues += _step_issues(steps)
    issues += _question_issues(questions)

    if skill.is_critical and len(questions) < 3:
        issues.append(QualityIssue(
            "warning",
            "Critical skill should have at least 3 quiz questions",
            "Add more comprehensive quiz questions for critical skills",
        ))

    score = quality_score(len(steps), len(questions), issues)
    # A skill without steps cannot be taught, whatever else it has
    status = "critical_issues" if not steps else quality_status(score)

    return SkillQualityReport(
        skill_name=skill.name or "",
        step_count=len(steps),
        quiz_count=len(questions),
        issues=issues,
        score=score,
        status=status,
    )


def build_quality_summary(skills: Sequence[Any], only_with_steps: bool = True) -> QualitySummary:
    selected = [s for s in skills if s.steps] if only_with_steps else list(skills)
    reports = [validate_skill_quality(s) for s in selected]

    def count(status: str) -> int:
        return sum(1 for r in reports if r.status == status)

    return QualitySummary(
        reports=reports,
        average_score=round(safe_divide(sum(r.score for r in reports), len(reports)), 1),
        excellent=count("excellent"),
        good=count("good"),
        needs_improvement=count("needs_improvement"),
        critical_issues=count("critical_issues"),
        total_issues=sum(len(r.issues) for r in reports),
        total_errors=sum(r.error_count for r in reports),
    )


def render_quality(summary: QualitySummary) -> List[str]:
    lines = [
        RULE,
        "QUALITY ASSURANCE VALIDATION",
        RULE,
        f"Skills validated: {len(summary.reports)}",
        f"Average quality score: {summary.average_score}/100",
        f"Excellent: {summary.excellent}",
        f"Good: {summary.good}",
        f"Needs improvement: {summary.needs_improvement}",
        f"Critical issues: {summary.critical_issues}",
        f"Total issues found: {summary.total_issues}",
        f"Errors: {summary.total_errors}",
    ]

    excellent = [r for r in summary.reports if r.status == "excellent"]
    if excellent:
        lines += ["", "EXCELLENT QUALITY SKILLS", THIN_RULE]
        lines += [
            f"  {r.skill_name} (score {r.score}, steps {r.step_count}, quiz {r.quiz_count})"
            for r in excellent
        ]

    critical = [r for r in summary.reports if r.status == "critical_issues"]
    if critical:
        lines += ["", "SKILLS WITH CRITICAL ISSUES", THIN_RULE]
        for r in critical:
            lines.append(f"  {r.skill_name} (score {r.score})")
            lines += [f"    * {i.message}" for i in r.issues if i.severity == "error"]

    improving = [r for r in summary.reports if r.status == "needs_improvement"]
    if improving:
        lines += ["", "SKILLS NEEDING IMPROVEMENT", THIN_RULE]
        for r in improving:
            lines.append(f"  {r.skill_name} (score {r.score})")
            lines += [f"    * {i.message}" for i in r.issues[:3]]
    return lines


# ---------------------------------------------------------------------------
# Live monitor
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class MonitorSnapshot:
    taken_at: datetime
    total_skills: int
    with_steps: int
    total_steps: int
    total_questions: int
    recent: List[str]

    @property
    def coverage_pct(self) -> float:
        return percentage(self.with_steps, self.total_skills)


def build_monitor_snapshot(skills: Sequence[Any], recent_limit: int = 5) -> MonitorSnapshot:
    filled = [s for s in skills if s.steps]
    # Highest step id approximates the most recent write
    filled.sort(key=lambda s: max(step.id or 0 for step in s.steps), reverse=True)
    return MonitorSnapshot(
        taken_at=datetime.now(),
        total_skills=len(skills),
        with_steps=len(filled),
        total_steps=sum(len(s.steps) for s in skills),
        total_questions=sum(len(s.quiz_questions) for s in skills),
        recent=[s.name for s in filled[:recent_limit]],
    )


def render_monitor(snapshot: MonitorSnapshot) -> List[str]:
    lines = [
        f"[{snapshot.taken_at:%H:%M:%S}] skills with steps: "
        f"{snapshot.with_steps}/{snapshot.total_skills} "
        f"{progress_bar(snapshot.with_steps, snapshot.total_skills)} {snapshot.coverage_pct}%",
        f"  steps: {snapshot.total_steps}, quiz questions: {snapshot.total_questions}",
    ]
    if snapshot.recent:
        lines.append("  recently filled: " + ", ".join(snapshot.recent))
    return lines


async def run_monitor(
    session_factory: async_sessionmaker,
    interval: Optional[float] = None,
    iterations: Optional[int] = None,
    emit: Callable[[str], None] = print,
) -> None:
    """
    Poll the store and emit a snapshot every *interval* seconds.

    Runs until cancelled, or for *iterations* rounds when given.
    """
    wait = settings.MONITOR_INTERVAL_SECONDS if interval is None else interval
    rounds = 0
    while iterations is None or rounds < iterations:
        async with session_factory() as db:
            skills = await load_skills(db)
        for line in render_monitor(build_monitor_snapshot(skills)):
            emit(line)
        rounds += 1
        if iterations is None or rounds < iterations:
            await asyncio.sleep(wait)
