# api/v1/schemas/plan.py
from __future__ import annotations

from pydantic import BaseModel, Field

from core.models.patient import PatientProfile
from core.models.plan import MAX_PLAN_DAYS, MealPlan
from core.progress import ProgressStage


class PlanGenerateIn(BaseModel):
    patient: PatientProfile
    additional_notes: str | None = None
    num_days: int = Field(7, ge=1, le=MAX_PLAN_DAYS)
    fast_mode: bool = False
    request_timeout_s: float | None = Field(None, gt=0)
    job_id: str | None = Field(None, description="client-chosen id for progress polling")


class PlanGenerateOut(BaseModel):
    job_id: str
    plan: MealPlan
    prompt: str


class ProgressOut(BaseModel):
    job_id: str
    stage: ProgressStage
    message: str
    completed: int
    total: int
    day_label: str | None = None
