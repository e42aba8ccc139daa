# tests/test_model_invoker.py
from __future__ import annotations

import asyncio

import pytest

from core.errors import FailureKind, ModelInvocationError
from core.model_invoker import Completion, invoke_model
from core.prompt_builder import DayPrompts
from fakes import ScriptedBackend, Sleep

PROMPTS = DayPrompts(system='dayName MUSS exakt "Montag" sein', user="Erstelle den Plan für Montag.")


def _invoke(backend, timeout_s: float = 1.0) -> str:
    return asyncio.run(invoke_model(backend, PROMPTS, max_tokens=1400, timeout_s=timeout_s))


def _kind(backend, timeout_s: float = 1.0) -> FailureKind:
    with pytest.raises(ModelInvocationError) as exc:
        _invoke(backend, timeout_s)
    return exc.value.kind


def test_returns_raw_text_and_forwards_limits():
    backend = ScriptedBackend(script={"Montag": ['{"ok": true}']})
    assert _invoke(backend) == '{"ok": true}'
    assert backend.calls[0].max_tokens == 1400
    assert backend.calls[0].temperature == 0.2


def test_timeout():
    backend = ScriptedBackend(script={"Montag": [Sleep(0.5, "{}")]})
    assert _kind(backend, timeout_s=0.02) is FailureKind.TIMEOUT


def test_transport_error():
    backend = ScriptedBackend(script={"Montag": [ConnectionError("reset by peer")]})
    assert _kind(backend) is FailureKind.TRANSPORT_ERROR


@pytest.mark.parametrize("text", [None, "", "   \n"])
def test_empty_response(text):
    backend = ScriptedBackend(script={"Montag": [Completion(text=text)]})
    assert _kind(backend) is FailureKind.EMPTY_RESPONSE


def test_truncated_response():
    backend = ScriptedBackend(script={"Montag": [Completion(text='{"dayName": "Mon', truncated=True)]})
    assert _kind(backend) is FailureKind.TRUNCATED
