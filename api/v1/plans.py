# api/v1/plans.py
from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status

from core.errors import PlanGenerationError
from core.model_invoker import ModelBackend
from core.models.plan import GenerationRequest
from core.plan_orchestrator import MealPlanGenerator
from services.gemini import GeminiBackend
from services.progress_store import progress_store
from api.v1.schemas import PlanGenerateIn, PlanGenerateOut, ProgressOut

router = APIRouter()
_LOG = logging.getLogger(__name__)


def get_backend() -> ModelBackend:
    try:
        return GeminiBackend()
    except RuntimeError as exc:
        _LOG.error("model backend unavailable: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": "MODEL_NOT_CONFIGURED", "message": str(exc)},
        ) from exc


@router.post(
    "",
    response_model=PlanGenerateOut,
    status_code=status.HTTP_200_OK,
    summary="Generate a validated multi-day meal plan",
)
async def generate_plan(
    body: PlanGenerateIn,
    backend: ModelBackend = Depends(get_backend),
) -> PlanGenerateOut:
    """
    Runs the whole generation and returns the plan.  Progress for
    `job_id` can be polled from `/progress/{job_id}` while this runs.
    """
    job_id = body.job_id or uuid4().hex
    request = GenerationRequest(
        num_days=body.num_days,
        additional_notes=body.additional_notes,
        fast_mode=body.fast_mode,
        request_timeout_s=body.request_timeout_s,
        on_progress=progress_store.callback_for(job_id),
    )
    try:
        result = await MealPlanGenerator(backend).generate(body.patient, request)
    except PlanGenerationError as exc:
        _LOG.warning("meal plan job %s failed: %s (%s)", job_id, exc.code, exc.message)
        # per-attempt detail stays in the logs
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "code": exc.code,
                "message": "Fehler bei der Generierung. Bitte erneut versuchen.",
            },
        ) from exc

    return PlanGenerateOut(job_id=job_id, plan=result.plan, prompt=result.prompt)


@router.get("/progress/{job_id}", response_model=ProgressOut)
async def get_progress(job_id: str) -> ProgressOut:
    event = progress_store.get(job_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return ProgressOut(
        job_id=job_id,
        stage=event.stage,
        message=event.message,
        completed=event.completed,
        total=event.total,
        day_label=event.day_label,
    )
