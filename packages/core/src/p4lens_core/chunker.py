"""Split oversized diffs into bounded chunks and fold chunk reviews back together.

Chunk boundaries are purely mechanical. Whatever a cut splits apart (a hunk,
or with raw cuts even a line) is the merge step's problem: the merge prompt
asks the model to deduplicate across chunk boundaries.
"""

from __future__ import annotations

from typing import Callable

from p4lens_core.models import ReviewChunk
from p4lens_core.scheduler import run_concurrent

DEFAULT_MAX_CHUNK_CHARS = 12000


def _cut_at(diff_text: str, start: int, max_size: int, align_lines: bool) -> int:
    end = min(start + max_size, len(diff_text))
    if not align_lines or end == len(diff_text):
        return end
    # Prefer to end the slice just after the last newline in the window.
    newline_at = diff_text.rfind("\n", start, end)
    if newline_at >= start:
        return newline_at + 1
    return end


def chunk_diff(depot_path: str, diff_text: str, max_size: int, align_lines: bool = False) -> list[ReviewChunk]:
    """Split diff_text into contiguous, non-overlapping chunks of at most max_size characters.

    Joining the chunk texts in index order always reproduces diff_text.
    With raw cuts (the default) there are exactly ceil(len / max_size)
    chunks. With align_lines=True cuts move back to line boundaries where
    the window contains one, which can add chunks.
    """
    if max_size <= 0:
        raise ValueError(f"max_size must be positive, got {max_size}")

    if len(diff_text) <= max_size:
        return [ReviewChunk(depot_path=depot_path, index=1, total=1, text=diff_text)]

    slices = []
    start = 0
    while start < len(diff_text):
        end = _cut_at(diff_text, start, max_size, align_lines)
        slices.append(diff_text[start:end])
        start = end

    total = len(slices)
    return [
        ReviewChunk(depot_path=depot_path, index=i, total=total, text=text) for i, text in enumerate(slices, 1)
    ]


def review_chunked(
    chunks: list[ReviewChunk],
    review_one: Callable[[ReviewChunk], str],
    merge_many: Callable[[list[str]], str],
    concurrency: int = 1,
) -> str:
    """Review every chunk and return one review for the file.

    A single chunk is reviewed directly. Several chunks are reviewed
    independently (sequentially unless concurrency > 1) and their partial
    reviews are handed to merge_many once, in chunk order.
    """
    if not chunks:
        raise ValueError("review_chunked() needs at least one chunk")

    if len(chunks) == 1:
        return review_one(chunks[0])

    partials = run_concurrent(len(chunks), lambda i: review_one(chunks[i]), concurrency)
    return merge_many(partials)
