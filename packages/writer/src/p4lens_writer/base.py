"""Abstract writer interface.

The pipeline hands finished reviews to a BaseWriter and never touches the
file system itself, so output targets (a Markdown directory today, anything
else tomorrow) are swappable without changing p4lens_core.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from p4lens_core.models import ReviewResult

_UNSAFE_CHARS_RE = re.compile(r'[\\/:*?"<>|]')


def sanitize_name(raw_name: str) -> str:
    """Replace characters that are not allowed in file names on Windows or POSIX."""
    return _UNSAFE_CHARS_RE.sub("_", raw_name)


class BaseWriter(ABC):
    """Destination for per-file reviews and the cross-file summary."""

    @abstractmethod
    def write_file_review(self, result: ReviewResult) -> None:
        """Persist the review of one depot file."""

    @abstractmethod
    def write_summary(self, changelist: int, text: str) -> None:
        """Persist the cross-file summary for a changelist."""

    def close(self) -> None:
        """Release any resources held by the writer.

        Optional. The default is a no-op so callers can always call close() safely.
        """
