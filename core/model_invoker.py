"""
core/model_invoker.py
────────────────────────────────────────────────────────────────────────
One bounded-timeout call against a language-model backend.

The backend is anything with an async `complete(...)` returning a
`Completion`; `services.gemini.GeminiBackend` is the production one,
tests plug in a scripted fake.

A call that loses the race against `timeout_s` is abandoned (cancelled on
a best-effort basis) and whatever it returns later is discarded.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from core.errors import FailureKind, ModelInvocationError
from core.prompt_builder import DayPrompts

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class Completion:
    text: str | None
    truncated: bool = False   # stopped on the output-token limit


class ModelBackend(Protocol):
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: int,
        temperature: float,
    ) -> Completion: ...


async def invoke_model(
    backend: ModelBackend,
    prompts: DayPrompts,
    *,
    max_tokens: int,
    timeout_s: float,
    temperature: float = 0.2,
) -> str:
    """Return the raw response text or raise `ModelInvocationError`."""
    try:
        completion = await asyncio.wait_for(
            backend.complete(
                prompts.system,
                prompts.user,
                max_tokens=max_tokens,
                temperature=temperature,
            ),
            timeout=timeout_s,
        )
    except asyncio.TimeoutError as exc:
        raise ModelInvocationError(
            FailureKind.TIMEOUT, f"no response within {timeout_s:g}s"
        ) from exc
    except Exception as exc:
        _LOG.debug("model backend raised %s: %s", type(exc).__name__, exc)
        raise ModelInvocationError(
            FailureKind.TRANSPORT_ERROR, f"{type(exc).__name__}: {exc}"
        ) from exc

    if completion.truncated:
        raise ModelInvocationError(FailureKind.TRUNCATED, "response cut off at token limit")
    if not completion.text or not completion.text.strip():
        raise ModelInvocationError(FailureKind.EMPTY_RESPONSE, "empty response")
    return completion.text
