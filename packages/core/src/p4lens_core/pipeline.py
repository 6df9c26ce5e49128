"""Core changelist review orchestration.

    describe ──► primary extraction ──(nothing usable)──► fallback extraction
                        │                                        │
                        └──────────────► filter ◄────────────────┘
                                           │
                         run_concurrent(review_file) per file
                                           │
                          write per-file results ──► cross-file summary

The two extraction stages are separate functions so the "describe yielded
nothing" branch can be exercised on its own. The writer and p4 client are
injected; this module never touches the file system or spawns processes
directly.
"""

from __future__ import annotations

import logging
import time

from rich.console import Console

from p4lens_core.chunker import DEFAULT_MAX_CHUNK_CHARS, chunk_diff, review_chunked
from p4lens_core.config import load_instructions
from p4lens_core.describe import (
    collect_file_diffs,
    extract_diff2_body,
    parse_file_list,
    parse_revision_summary,
    split_lines,
)
from p4lens_core.models import ExtractionStage, FileAction, FileDiff, FileRevisionEntry, ReviewResult, RunOutcome
from p4lens_core.p4.client import P4Client, P4Error
from p4lens_core.providers.base import BaseReviewer
from p4lens_core.scheduler import clamp_concurrency, run_concurrent
from p4lens_core.utils.paths import is_excluded, is_reviewable_path

console = Console()
logger = logging.getLogger(__name__)

_PREVIEW_LINES = 40


class PipelineError(Exception):
    """A fatal failure that aborts the whole run for a changelist."""

    def __init__(self, changelist: int, message: str):
        self.changelist = changelist
        super().__init__(f"Changelist {changelist}: {message}")


class FileReviewError(Exception):
    """Reviewing one depot file failed; carries the path so the run error names it."""

    def __init__(self, depot_path: str, cause: BaseException):
        self.depot_path = depot_path
        self.cause = cause
        super().__init__(f"Review failed for {depot_path}: {cause}")


def get_reviewer(config: dict) -> BaseReviewer:
    provider = config.get("provider", "openai")
    if provider == "openai":
        from p4lens_core.providers.openai import OpenAIReviewer

        return OpenAIReviewer(
            api_key=config["openai_api_key"],
            model=config.get("model"),
            base_url=config.get("openai_base_url"),
        )
    if provider == "anthropic":
        from p4lens_core.providers.anthropic import AnthropicReviewer

        return AnthropicReviewer(api_key=config["anthropic_api_key"], model=config.get("model"))
    raise ValueError(f"Unknown model provider: {provider!r}. Choose 'openai' or 'anthropic'.")


def get_p4(config: dict) -> P4Client:
    return P4Client(client=config.get("p4_client"), user=config.get("p4_user"), port=config.get("p4_port"))


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_primary(describe_text: str) -> list[FileDiff]:
    """Build FileDiffs from the per-file sections of `p4 describe -du` output."""
    return collect_file_diffs(describe_text, parse_file_list(describe_text))


def resolve_fallback_revisions(entry: FileRevisionEntry) -> tuple[int, int] | None:
    """Return the (from, to) revision pair to diff for entry, or None to skip it.

    A file added at #1 has no prior revision to compare against, and a
    revision of 0 means the file has no content at all.
    """
    if entry.revision <= 0:
        return None
    if entry.action == FileAction.ADD and entry.revision <= 1:
        return None
    return max(entry.revision - 1, 1), entry.revision


def extract_fallback(p4: P4Client, changelist: int, shelved: bool = False) -> list[FileDiff]:
    """Build FileDiffs with one `p4 diff2` per file listed in `p4 describe -s`.

    A failure fetching one file's diff only drops that file. Failing to
    fetch the summary itself is fatal.
    """
    try:
        summary_text = p4.describe_summary(changelist, shelved)
    except P4Error as e:
        raise PipelineError(changelist, f"could not fetch changelist summary: {e}") from e

    diffs = []
    for entry in parse_revision_summary(summary_text):
        revisions = resolve_fallback_revisions(entry)
        if revisions is None:
            logger.debug("No prior revision to diff for %s#%d (%s)", entry.depot_path, entry.revision, entry.action.value)
            continue
        from_rev, to_rev = revisions
        try:
            raw = p4.diff2(entry.depot_path, from_rev, to_rev)
        except P4Error as e:
            logger.warning("Skipping %s: could not diff #%d against #%d: %s", entry.depot_path, from_rev, to_rev, e)
            continue
        body = extract_diff2_body(raw)
        if body.strip():
            diffs.append(FileDiff(depot_path=entry.depot_path, diff_text=body))
    return diffs


def extract_diffs(p4: P4Client, changelist: int, shelved: bool = False) -> tuple[ExtractionStage, list[FileDiff]]:
    """Fetch the changelist and return its reviewable diffs plus the stage that produced them."""
    try:
        describe_text = p4.describe(changelist, shelved)
    except P4Error as e:
        raise PipelineError(changelist, f"could not describe changelist: {e}") from e

    diffs = extract_primary(describe_text)
    if diffs:
        return ExtractionStage.PRIMARY, diffs

    logger.info("CL %d: describe output had no usable diffs; falling back to diff2", changelist)
    return ExtractionStage.FALLBACK, extract_fallback(p4, changelist, shelved)


def filter_diffs(diffs: list[FileDiff], exclude_patterns: list[str]) -> list[FileDiff]:
    kept = []
    for file_diff in diffs:
        if is_excluded(file_diff.depot_path, exclude_patterns) or not is_reviewable_path(file_diff.depot_path):
            console.print(f"  Skipping: {file_diff.depot_path}")
            logger.info("Excluded %s", file_diff.depot_path)
            continue
        kept.append(file_diff)
    return kept


# ---------------------------------------------------------------------------
# Reviewing
# ---------------------------------------------------------------------------


def review_file(
    reviewer: BaseReviewer,
    instructions: str,
    file_diff: FileDiff,
    max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS,
    align_lines: bool = False,
    chunk_concurrency: int = 1,
) -> ReviewResult:
    """Review one file end to end: chunk, review every chunk, merge if needed."""
    chunks = chunk_diff(file_diff.depot_path, file_diff.diff_text, max_chunk_chars, align_lines)
    if len(chunks) > 1:
        logger.info("%s: diff split into %d chunks", file_diff.depot_path, len(chunks))
    try:
        content = review_chunked(
            chunks,
            lambda chunk: reviewer.review_chunk(instructions, chunk),
            lambda partials: reviewer.merge_reviews(file_diff.depot_path, partials),
            concurrency=chunk_concurrency,
        )
    except Exception as e:
        raise FileReviewError(file_diff.depot_path, e) from e
    return ReviewResult(depot_path=file_diff.depot_path, content=content)


def preview_diffs(diffs: list[FileDiff], max_lines: int = _PREVIEW_LINES) -> None:
    """Print each file and the head of its diff without calling the reviewer."""
    for file_diff in diffs:
        console.print(f"- [bold cyan]{file_diff.depot_path}[/bold cyan]")
        console.print("\n".join(split_lines(file_diff.diff_text)[:max_lines]), markup=False, highlight=False)
        console.print("---")


def run_review(
    changelist: int,
    config: dict,
    p4: P4Client | None = None,
    reviewer: BaseReviewer | None = None,
    writer=None,
    shelved: bool = False,
    summary: bool | None = None,
    concurrency: int | None = None,
    dry_run: bool = False,
    output_dir: str | None = None,
) -> RunOutcome:
    """Run the full changelist review pipeline and return a RunOutcome.

    ``writer`` is any object with write_file_review() and write_summary()
    (see p4lens_writer); None means results are only returned, not written.
    ``output_dir`` names where that writer puts its files and is reported
    back on the outcome of a real run.
    Dry runs never construct or call a reviewer.
    """
    p4 = p4 if p4 is not None else get_p4(config)
    summary = config.get("summary", True) if summary is None else summary
    workers = clamp_concurrency(concurrency if concurrency is not None else config.get("concurrency"))

    try:
        p4.ensure_available()
    except P4Error as e:
        raise PipelineError(changelist, str(e)) from e

    stage, diffs = extract_diffs(p4, changelist, shelved)
    diffs = filter_diffs(diffs, config.get("exclude", []))
    console.print(f"[cyan]CL {changelist}: {len(diffs)} file(s) with diffs to review ({stage.value} extraction).[/cyan]")

    if dry_run:
        console.print(f"Changelist {changelist} files:")
        preview_diffs(diffs)
        console.print("Dry run complete.")
        return RunOutcome(changelist=changelist, file_count=len(diffs), stage=stage, dry_run=True)

    if not diffs:
        return RunOutcome(changelist=changelist, stage=stage, output_dir=output_dir)

    reviewer = reviewer if reviewer is not None else get_reviewer(config)
    instructions = load_instructions(config)
    max_chunk_chars = config.get("max_chunk_chars") or DEFAULT_MAX_CHUNK_CHARS
    align_lines = bool(config.get("align_chunks_to_lines", False))
    chunk_concurrency = config.get("chunk_concurrency") or 1
    total = len(diffs)

    def _task(idx: int) -> ReviewResult:
        file_diff = diffs[idx]
        console.print(f"[{idx + 1}/{total}] Reviewing: {file_diff.depot_path}")
        return review_file(reviewer, instructions, file_diff, max_chunk_chars, align_lines, chunk_concurrency)

    console.print(f"Starting reviews with concurrency={workers} ...")
    review_start = time.monotonic()
    results: list[ReviewResult] = run_concurrent(total, _task, workers)
    logger.info("CL %d: reviewed %d file(s) in %.1fs", changelist, len(results), time.monotonic() - review_start)

    if writer is not None:
        for result in results:
            writer.write_file_review(result)

    summary_written = False
    if summary and results:
        # Barrier: every per-file review is final before the summary is requested.
        summary_text = reviewer.summarize(results, changelist)
        if writer is not None:
            writer.write_summary(changelist, summary_text)
        summary_written = True

    return RunOutcome(
        changelist=changelist,
        files_reviewed=[r.depot_path for r in results],
        file_count=len(results),
        stage=stage,
        summary_written=summary_written,
        output_dir=output_dir,
    )
