from __future__ import annotations

import json
import logging
import time
from typing import Any

from contentops.core.errors import UpstreamFailure
from contentops.services.backends.prompts import SCRIPT_WRITER_SYSTEM

logger = logging.getLogger(__name__)

# keep prompts bounded; long articles are cut at a word boundary
_MAX_ARTICLE_CHARS = 12000


def _truncate(text: str, max_chars: int = _MAX_ARTICLE_CHARS) -> str:
    t = (text or "").strip()
    if len(t) <= max_chars:
        return t
    return t[:max_chars].rsplit(" ", 1)[0].strip()


def _extract_json(text: str) -> dict[str, Any]:
    """
    Best-effort JSON extraction if model returns extra text.
    """
    text = (text or "").strip()
    if not text:
        raise UpstreamFailure("Empty response from script writer")

    # Fast path
    try:
        return json.loads(text)
    except ValueError:
        pass

    # Try to find outermost JSON object
    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        try:
            return json.loads(text[start : end + 1])
        except ValueError:
            pass

    raise UpstreamFailure(f"Script writer returned non-JSON. First 200 chars: {text[:200]!r}")


class ScriptWriter:
    """Language-model script writer (OpenAI chat completions, JSON mode)."""

    def __init__(
        self,
        api_key: str | None,
        model: str,
        timeout_s: float = 120.0,
        attempts: int = 2,
        client=None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout_s = timeout_s
        self.attempts = max(1, attempts)
        self._client = client

    def _build_client(self):
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise UpstreamFailure("OPENAI_API_KEY is missing")

        from openai import OpenAI

        self._client = OpenAI(api_key=self.api_key, timeout=self.timeout_s, max_retries=2)
        return self._client

    def generate_json(self, template: str, *, title: str, content: str, language: str) -> dict[str, Any]:
        client = self._build_client()
        user_prompt = template.format(title=title, content=_truncate(content), language=language)

        last_err: Exception | None = None
        for i in range(self.attempts):
            try:
                chat = client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": SCRIPT_WRITER_SYSTEM},
                        {"role": "user", "content": user_prompt},
                    ],
                    response_format={"type": "json_object"},
                )
                raw_text = (chat.choices[0].message.content or "").strip()
                return _extract_json(raw_text)
            except Exception as e:
                last_err = e
                logger.warning("Script writer attempt %s/%s failed: %s", i + 1, self.attempts, e)
                if i < self.attempts - 1:
                    time.sleep(1.5 * (2 ** i))

        raise UpstreamFailure(f"Script writer failed after {self.attempts} attempt(s): {last_err}")
