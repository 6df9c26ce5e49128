from __future__ import annotations

import os

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from p4lens_core.providers.base import BaseReviewer


class OpenAIReviewer(BaseReviewer):
    MODEL = "gpt-4o-mini"

    def __init__(self, api_key: str, model: str | None = None, base_url: str | None = None):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. " "Install it with: pip install 'p4lens[openai]'"
            )
        super().__init__(model or os.environ.get("OPENAI_MODEL"))
        # base_url lets the same provider talk to any OpenAI-compatible endpoint.
        self.client = _OpenAI(api_key=api_key, base_url=base_url or None)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=self.MAX_TOKENS,
        )
        return response.choices[0].message.content or ""
