"""
`python -m workers.generate_weekly_plan --patient-file=patient.json --days=7`

Generate one plan outside the API (cron jobs, support, debugging) and
print it as JSON.  The patient file holds the `PatientProfile` fields:

    {"birth_year": 1961, "current_weight": 92, "target_weight": 84,
     "allergies": ["Erdnüsse"], "autonomy_notes": "kocht selbst"}
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

from config import settings
from core.errors import PlanGenerationError
from core.models.patient import PatientProfile
from core.plan_orchestrator import generate_meal_plan
from core.progress import ProgressEvent


def _print_progress(event: ProgressEvent) -> None:
    print(f"[{event.completed}/{event.total}] {event.message}", file=sys.stderr)


async def _run(args: argparse.Namespace) -> int:
    patient = PatientProfile.model_validate_json(Path(args.patient_file).read_text("utf-8"))
    try:
        result = await generate_meal_plan(
            patient,
            args.notes,
            num_days=args.days,
            fast_mode=args.fast,
            request_timeout_s=args.timeout,
            on_progress=_print_progress,
        )
    except PlanGenerationError as exc:
        print(json.dumps(exc.to_dict(), ensure_ascii=False), file=sys.stderr)
        return 1

    print(json.dumps(
        {"plan": result.plan.model_dump(mode="json", by_alias=True), "prompt": result.prompt},
        ensure_ascii=False,
        indent=2,
    ))
    return 0


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    ap.add_argument("--patient-file", required=True)
    ap.add_argument("--days", type=int, default=7, choices=range(1, 15), metavar="1-14")
    ap.add_argument("--fast", action="store_true", help="2-step attempt ladder, no variety repair")
    ap.add_argument("--notes", default=None, help="free-text notes, e.g. 'ohne Fleisch'")
    ap.add_argument("--timeout", type=float, default=None, help="per-call timeout override (s)")
    args = ap.parse_args(argv)

    logging.basicConfig(level=settings.log_level.upper())
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
