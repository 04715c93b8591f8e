"""
Read-only coverage and quality reports.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from skillsmatrix.database import get_db
from skillsmatrix.services.reports import (
    build_audit_report,
    build_critical_report,
    build_progress_report,
    build_quality_summary,
    load_skills,
)
from skillsmatrix.services.subject_mapping import build_subject_mapping

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/progress", summary="Step and quiz coverage")
async def progress_report(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    report = build_progress_report(await load_skills(db))
    return {
        **dataclasses.asdict(report),
        "completion_pct": report.completion_pct,
        "critical_pct": report.critical_pct,
    }


@router.get("/audit", summary="Skills without steps and incomplete steps")
async def audit_report(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    return dataclasses.asdict(build_audit_report(await load_skills(db)))


@router.get("/critical", summary="Critical skill coverage against the deployment target")
async def critical_report(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    report = build_critical_report(await load_skills(db))
    return {
        **dataclasses.asdict(report),
        "remaining_to_target": report.remaining_to_target,
        "target_met": report.target_met,
    }


@router.get("/quality", summary="Per-skill quality scores")
async def quality_report(
    only_with_steps: bool = Query(True),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, Any]:
    summary = build_quality_summary(await load_skills(db), only_with_steps=only_with_steps)
    return dataclasses.asdict(summary)


@router.get("/subjects", summary="HEM subject to skill mapping")
async def subject_report(db: AsyncSession = Depends(get_db)) -> Dict[str, Any]:
    return build_subject_mapping(await load_skills(db)).to_dict()
