"""
CLI worker, progress store and the Gemini backend adapter – all offline.
"""
from __future__ import annotations

import asyncio
import functools
import json
from types import SimpleNamespace

import pytest
from google.genai import types

from config import Settings
from core.errors import DayGenerationFailed
from core.plan_orchestrator import generate_meal_plan
from core.progress import ProgressEvent, ProgressStage
from services.gemini import GeminiBackend
from services.progress_store import ProgressStore
from workers import generate_weekly_plan as worker
from fakes import ScriptedBackend

SETTINGS = Settings(max_parallel_days=2, fallback_timeout_s=1)


def _patient_file(tmp_path):
    path = tmp_path / "patient.json"
    path.write_text(
        json.dumps({"birth_year": 1961, "current_weight": 92, "target_weight": 84}),
        encoding="utf-8",
    )
    return str(path)


# ── worker ──────────────────────────────────────────────────────────
def test_worker_prints_plan(tmp_path, monkeypatch, capsys):
    backend = ScriptedBackend()
    monkeypatch.setattr(
        worker, "generate_meal_plan",
        functools.partial(generate_meal_plan, backend=backend, settings=SETTINGS),
    )
    code = worker.main(["--patient-file", _patient_file(tmp_path), "--days", "2", "--fast"])

    out = capsys.readouterr()
    assert code == 0
    payload = json.loads(out.out)
    assert [d["dayName"] for d in payload["plan"]["days"]] == ["Montag", "Dienstag"]
    assert "Tag fertig (2/2)" in out.err


def test_worker_reports_failure(tmp_path, monkeypatch, capsys):
    backend = ScriptedBackend(default=lambda label: "kein json")
    monkeypatch.setattr(
        worker, "generate_meal_plan",
        functools.partial(generate_meal_plan, backend=backend, settings=SETTINGS),
    )
    code = worker.main(["--patient-file", _patient_file(tmp_path), "--days", "1", "--fast"])

    assert code == 1
    err = capsys.readouterr().err.strip().splitlines()[-1]
    assert json.loads(err)["code"] == DayGenerationFailed.code


# ── progress store ──────────────────────────────────────────────────
def _event(completed: int) -> ProgressEvent:
    return ProgressEvent(ProgressStage.DAY_COMPLETED, f"{completed}", completed, 7)


def test_progress_store_keeps_latest_event():
    store = ProgressStore()
    cb = store.callback_for("a")
    cb(_event(1))
    cb(_event(2))
    assert store.get("a").completed == 2
    assert store.get("b") is None


def test_progress_store_evicts_oldest_job():
    store = ProgressStore(max_jobs=2)
    for job in ("a", "b", "c"):
        store.record(job, _event(1))
    assert store.get("a") is None
    assert store.get("c") is not None


# ── Gemini adapter ──────────────────────────────────────────────────
class _FakeModels:
    def __init__(self, text, finish):
        self.text, self.finish, self.kwargs = text, finish, None

    async def generate_content(self, **kwargs):
        self.kwargs = kwargs
        return SimpleNamespace(
            text=self.text,
            candidates=[SimpleNamespace(finish_reason=self.finish)],
        )


def _backend(text, finish):
    models = _FakeModels(text, finish)
    client = SimpleNamespace(aio=SimpleNamespace(models=models))
    cfg = Settings(gemini_model="models/test-model")
    return GeminiBackend(cfg, client=client), models


def test_gemini_backend_builds_request():
    backend, models = _backend('{"dayName": "Montag"}', types.FinishReason.STOP)
    done = asyncio.run(backend.complete("SYS", "USER", max_tokens=1600, temperature=0.2))

    assert done.text == '{"dayName": "Montag"}'
    assert not done.truncated
    assert models.kwargs["model"] == "models/test-model"
    assert models.kwargs["contents"] == ["USER"]
    config = models.kwargs["config"]
    assert config.system_instruction == "SYS"
    assert config.max_output_tokens == 1600
    assert config.response_mime_type == "application/json"


def test_gemini_backend_flags_token_limit():
    backend, _ = _backend('{"dayName": "Mon', types.FinishReason.MAX_TOKENS)
    done = asyncio.run(backend.complete("SYS", "USER", max_tokens=1400, temperature=0.2))
    assert done.truncated


def test_gemini_backend_requires_api_key():
    with pytest.raises(RuntimeError, match="GEMINI_API_KEY"):
        GeminiBackend(Settings(gemini_api_key=None))
