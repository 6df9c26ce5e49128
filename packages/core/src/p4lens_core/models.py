"""Records produced and consumed by the changelist review pipeline.

Every record is created fresh for one run against one changelist and thrown
away afterwards; nothing here is persisted or cached between runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class FileAction(str, Enum):
    """Perforce file actions as printed in `p4 describe -s` summaries."""

    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"
    BRANCH = "branch"
    INTEGRATE = "integrate"
    MOVE_ADD = "move/add"
    MOVE_DELETE = "move/delete"
    PURGE = "purge"
    ARCHIVE = "archive"
    IMPORT = "import"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, token: str) -> FileAction:
        """Map a raw action token to a FileAction; unrecognised tokens become UNKNOWN."""
        try:
            return cls(token.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class ExtractionStage(str, Enum):
    """Which extraction path produced the diffs for a run."""

    PRIMARY = "primary"  # per-file sections of `p4 describe -du`
    FALLBACK = "fallback"  # `p4 describe -s` + one `p4 diff2` per file


@dataclass(frozen=True)
class FileRevisionEntry:
    depot_path: str
    revision: int
    action: FileAction


@dataclass(frozen=True)
class FileDiff:
    """A reviewable unified diff for one depot file.

    Binary and blank diffs never become a FileDiff. They are dropped at
    extraction time so the scheduler only ever sees reviewable content.
    """

    depot_path: str
    diff_text: str


@dataclass(frozen=True)
class ReviewChunk:
    """One bounded slice of a file's diff, numbered from 1."""

    depot_path: str
    index: int
    total: int
    text: str


@dataclass(frozen=True)
class ReviewResult:
    depot_path: str
    content: str


@dataclass
class RunOutcome:
    """Result returned by run_review, enough for the CLI to report what happened.

    ``file_count`` is the number of files reviewed. In dry-run mode nothing is
    reviewed, so it is the number of files that would have been.
    """

    changelist: int
    files_reviewed: list[str] = field(default_factory=list)
    file_count: int = 0
    stage: ExtractionStage | None = None
    summary_written: bool = False
    dry_run: bool = False
    output_dir: str | None = None


@dataclass
class ChangelistInfo:
    """A changelist header parsed from `p4 changes -l` output."""

    number: int
    date: str
    user: str
    status: str  # "pending" | "submitted"
    description: str = ""
