"""No-op writer — used for dry runs and whenever output should not touch disk.

Using a NoOpWriter rather than None lets the pipeline always call the writer
without conditional checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from p4lens_writer.base import BaseWriter

if TYPE_CHECKING:
    from p4lens_core.models import ReviewResult


class NoOpWriter(BaseWriter):
    """Silently discards every review."""

    def write_file_review(self, result: ReviewResult) -> None:
        pass

    def write_summary(self, changelist: int, text: str) -> None:
        pass
