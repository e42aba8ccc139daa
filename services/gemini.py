# services/gemini.py
import logging

from google import genai
from google.genai import types

from config import Settings, settings as default_settings
from core.model_invoker import Completion

_LOG = logging.getLogger(__name__)

# ───────────── API Key & Client ─────────────
_CLIENT: genai.Client | None = None


def _shared_client(cfg: Settings) -> genai.Client:
    global _CLIENT
    if _CLIENT is None:
        _CLIENT = genai.Client(api_key=cfg.gemini_api_key)
    return _CLIENT


# ───────────── Generation (async) ─────────────
class GeminiBackend:
    """`ModelBackend` on top of the google-genai async client."""

    def __init__(self, cfg: Settings | None = None, client: genai.Client | None = None) -> None:
        self._cfg = cfg or default_settings
        if client is None and not self._cfg.gemini_api_key:
            raise RuntimeError("GEMINI_API_KEY not set in environment")
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = _shared_client(self._cfg)
        return self._client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        max_tokens: int,
        temperature: float,
    ) -> Completion:
        resp = await self.client.aio.models.generate_content(
            model=self._cfg.gemini_model,
            contents=[user_prompt],
            config=types.GenerateContentConfig(
                system_instruction=system_prompt,
                temperature=temperature,
                max_output_tokens=max_tokens,
                response_mime_type="application/json",
            ),
        )
        candidate = resp.candidates[0] if resp.candidates else None
        finish = candidate.finish_reason if candidate else None
        if finish is not None and finish != types.FinishReason.STOP:
            _LOG.debug("Gemini finish_reason=%s", finish)
        return Completion(
            text=resp.text,
            truncated=finish == types.FinishReason.MAX_TOKENS,
        )
