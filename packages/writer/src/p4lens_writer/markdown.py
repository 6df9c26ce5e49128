"""MarkdownWriter — one Markdown file per reviewed depot file, plus summary.md.

Layout of an output directory:

  <out_dir>/
    __depot_project_src_main.cpp.md    "# Review: //depot/project/src/main.cpp" + review
    summary.md                          "# Changelist <n> — Summary" + synthesis
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from p4lens_writer.base import BaseWriter, sanitize_name

if TYPE_CHECKING:
    from p4lens_core.models import ReviewResult

logger = logging.getLogger(__name__)

SUMMARY_FILENAME = "summary.md"


class MarkdownWriter(BaseWriter):
    def __init__(self, out_dir: str | Path):
        self.out_dir = Path(out_dir)
        self.out_dir.mkdir(parents=True, exist_ok=True)
        self.written: list[Path] = []

    def _write(self, filename: str, content: str) -> Path:
        path = self.out_dir / filename
        path.write_text(content, encoding="utf-8")
        self.written.append(path)
        logger.debug("Wrote %s", path)
        return path

    def write_file_review(self, result: ReviewResult) -> None:
        self._write(
            sanitize_name(result.depot_path) + ".md",
            f"# Review: {result.depot_path}\n\n{result.content}\n",
        )

    def write_summary(self, changelist: int, text: str) -> None:
        # Reviewer.summarize() already prefixes the changelist header.
        self._write(SUMMARY_FILENAME, text)
