from pydantic import BaseModel, ConfigDict, Field


class PatientProfile(BaseModel):
    """Read-only view of the patient; only feeds prompts and allergen checks."""

    birth_year: int = Field(..., ge=1900)
    current_weight: float = Field(..., gt=0)   # kg
    target_weight: float = Field(..., gt=0)    # kg
    allergies: tuple[str, ...] = ()
    autonomy_notes: str | None = None

    model_config = ConfigDict(frozen=True)
