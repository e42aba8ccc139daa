"""Re-export individual schema modules for easy imports."""

from .plan import PlanGenerateIn, PlanGenerateOut, ProgressOut

__all__ = [
    "PlanGenerateIn",
    "PlanGenerateOut",
    "ProgressOut",
]
