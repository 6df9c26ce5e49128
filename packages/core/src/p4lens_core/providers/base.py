"""Base reviewer implementing the Template Method pattern.

All providers share the same review algorithm:
    review_chunk() / merge_reviews() / summarize()
        → build prompt
        → review_text() → _call_with_retry() → _call_api()   ← only this differs per provider

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

Prompt construction and retry/backoff live here so every provider produces
structurally identical reviews.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from p4lens_core.models import ReviewChunk, ReviewResult

logger = logging.getLogger(__name__)

# Shared defaults; subclasses may override as class attributes if needed.
_MAX_RETRIES = 3
_MAX_TOKENS = 4096

DEFAULT_GUIDANCE = "Review this code change for correctness, style, performance, security, and testability."

SYSTEM_PROMPT = "You are a concise, rigorous code reviewer. Prefer clear bullet lists and short, actionable notes."


class ReviewerError(Exception):
    """The model provider could not produce a response after all retries."""


class BaseReviewer(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS
    MODEL: str = ""

    def __init__(self, model: str | None = None):
        self.model = model or self.MODEL

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def review_text(self, prompt: str) -> str:
        """Send one prompt and return the model's text. Raises ReviewerError on failure."""
        return self._call_with_retry(SYSTEM_PROMPT, prompt)

    def review_chunk(self, instructions: str, chunk: ReviewChunk) -> str:
        return self.review_text(self._build_review_prompt(instructions, chunk))

    def merge_reviews(self, depot_path: str, partials: list[str]) -> str:
        return self.review_text(self._build_merge_prompt(depot_path, partials))

    def summarize(self, results: list[ReviewResult], changelist: int) -> str:
        """Synthesise one cross-file review and prefix it with the changelist header."""
        text = self.review_text(self._build_summary_prompt(results))
        return f"# Changelist {changelist} — Summary\n\n{text}\n"

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        This is the only method subclasses must implement. It should raise
        on failure. _call_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _call_with_retry(self, system_prompt: str, user_prompt: str) -> str:
        """Retry _call_api up to MAX_RETRIES times with exponential backoff.

        The last failure is re-raised as ReviewerError rather than swallowed:
        a file whose review could not be produced must fail its scheduler task.
        """
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._call_api(system_prompt, user_prompt) or ""
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    raise ReviewerError(f"{self.__class__.__name__} failed after {self.MAX_RETRIES} attempts: {e}") from e
                delay = 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        raise ReviewerError(f"{self.__class__.__name__} is configured with MAX_RETRIES={self.MAX_RETRIES}")

    def _build_review_prompt(self, instructions: str, chunk: ReviewChunk) -> str:
        """Build the per-chunk review prompt.

        Chunks of a multi-part diff are labelled "Part i/n" so the model knows
        it is looking at a fragment and does not flag the cut as a defect.
        """
        guidance = instructions.strip() if instructions and instructions.strip() else DEFAULT_GUIDANCE
        diff = chunk.text if chunk.total == 1 else f"Part {chunk.index}/{chunk.total}\n\n{chunk.text}"
        return f"""You are an expert senior engineer performing a code review. Be specific and actionable.

Custom review focus:
{guidance}

Target file: {chunk.depot_path}
Provide:
- Summary (2-4 bullets)
- Key risks and defects with code excerpts
- Improvement suggestions
- Severity labels: [blocker|major|minor|nit]

Unified diff:

{diff}
"""

    def _build_merge_prompt(self, depot_path: str, partials: list[str]) -> str:
        joined = "\n\n".join(f"Chunk {i}:\n{p}" for i, p in enumerate(partials, 1))
        return (
            f"Combine these per-chunk reviews of `{depot_path}` into a single, non-redundant review. "
            "Keep structure and priorities clear; do not simply concatenate them.\n\n"
            f"{joined}"
        )

    def _build_summary_prompt(self, results: list[ReviewResult]) -> str:
        joined = "\n\n".join(f"File: {r.depot_path}\n---\n{r.content}\n" for r in results)
        return (
            "Create a concise overall code review summary across files. "
            "Identify common issues, cross-file risks, and prioritize follow-ups.\n\n"
            f"{joined}"
        )
