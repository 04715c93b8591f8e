"""
Pipeline orchestration endpoints.

Route summary
-------------
POST /extract-steps          start a background step-extraction run.
POST /generate-questions     start a background question-generation run.
GET  /status                 poll the latest run of a kind.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from skillsmatrix.models.schemas import (
    ExtractStepsRequest,
    GenerateQuestionsRequest,
    PipelineStatusResponse,
)
from skillsmatrix.services.pipeline import ExtractionPipeline
from skillsmatrix.services.pipeline_manager import PipelineStatus, pipeline_manager

logger = logging.getLogger(__name__)

router = APIRouter()

PIPELINE_KINDS = ("steps", "questions")


def _to_response(run: PipelineStatus) -> PipelineStatusResponse:
    return PipelineStatusResponse(
        kind=run.kind,
        phase=run.phase.value,
        total_items=run.total_items,
        items_processed=run.items_processed,
        items_skipped=run.items_skipped,
        items_failed=run.items_failed,
        current_item=run.current_item,
        errors=run.errors,
        elapsed_seconds=run.elapsed_seconds,
    )


def _ensure_idle(kind: str) -> None:
    if pipeline_manager.is_running(kind):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A {kind} run is already in progress.",
        )


# ---------------------------------------------------------------------------
# POST /extract-steps
# ---------------------------------------------------------------------------

@router.post(
    "/extract-steps",
    response_model=PipelineStatusResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Extract steps from skill documents in the background",
)
async def extract_steps(body: ExtractStepsRequest) -> PipelineStatusResponse:
    """
    Start a step-extraction run over the document directory.

    Each document is read, sent to the LLM, matched to a skill and the
    skill's steps are replaced.  Poll ``GET /status?kind=steps`` for progress.
    """
    _ensure_idle("steps")
    run = PipelineStatus(kind="steps")
    pipeline = ExtractionPipeline()
    pipeline_manager.start(
        "steps",
        pipeline.run_steps(
            start=body.start,
            stop=body.stop,
            only_unfilled=body.only_unfilled,
            dry_run=body.dry_run,
            status=run,
        ),
        run,
    )
    return _to_response(run)


# ---------------------------------------------------------------------------
# POST /generate-questions
# ---------------------------------------------------------------------------

@router.post(
    "/generate-questions",
    response_model=PipelineStatusResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Generate quiz questions in the background",
)
async def generate_questions(body: GenerateQuestionsRequest) -> PipelineStatusResponse:
    _ensure_idle("questions")
    run = PipelineStatus(kind="questions")
    pipeline = ExtractionPipeline()
    pipeline_manager.start(
        "questions",
        pipeline.run_questions(
            only_with_steps=body.only_with_steps,
            dry_run=body.dry_run,
            status=run,
        ),
        run,
    )
    return _to_response(run)


# ---------------------------------------------------------------------------
# GET /status
# ---------------------------------------------------------------------------

@router.get("/status", response_model=PipelineStatusResponse, summary="Latest run status")
async def pipeline_status(kind: str = Query("steps")) -> PipelineStatusResponse:
    if kind not in PIPELINE_KINDS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown pipeline kind {kind!r}; expected one of {', '.join(PIPELINE_KINDS)}.",
        )
    run = pipeline_manager.get_status(kind)
    if run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No {kind} run has been started.",
        )
    return _to_response(run)
