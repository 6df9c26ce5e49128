"""Parsers for the text that the `p4` command prints.

Four outputs are understood:

  p4 describe -du   per-file sections, each opened by a header line
                    "==== //depot/path/file#3 (text) ====" and followed by
                    that file's unified diff
  p4 describe -s    summary with one "... //depot/path/file#3 edit" line
                    per affected file
  p4 diff2 -du      a single "==== ... ====" header followed by hunks
  p4 changes -l     "Change N on YYYY/MM/DD by user@client" headers with
                    indented description lines

None of these functions raise on unexpected input. A missing header or an
unmatched line contributes nothing, and an empty result tells the pipeline
to try its fallback extraction.
"""

from __future__ import annotations

import re

from p4lens_core.models import ChangelistInfo, FileAction, FileDiff, FileRevisionEntry

_LINE_SPLIT_RE = re.compile(r"\r?\n")
_HEADER_RE = re.compile(r"^====\s+(.+?)\s+====$")
_HEADER_DEPOT_RE = re.compile(r"(//\S+?)(?:#\S+)?(?:\s|$)")
_SUMMARY_LINE_RE = re.compile(r"^\.\.\.\s+(//\S+?)#(\d+)\s+(\S+)")
_BINARY_DIFFER_RE = re.compile(r"^Binary files .+ and .+ differ$", re.MULTILINE)
_BINARY_TAG_RE = re.compile(r"\(binary\)", re.IGNORECASE)
_DIFF2_HEADER_RE = re.compile(r"^====\s+")
_CHANGE_HEADER_RE = re.compile(r"^Change\s+(\d+)\s+on\s+(\d{4}/\d{2}/\d{2})\s+by\s+(\S+)")


def split_lines(text: str) -> list[str]:
    """Split on LF or CRLF only; diff bodies may legitimately contain other control characters."""
    return _LINE_SPLIT_RE.split(text or "")


def _header_body(line: str) -> str | None:
    match = _HEADER_RE.match(line)
    return match.group(1) if match else None


def _depot_path_from_header(header_body: str) -> str | None:
    match = _HEADER_DEPOT_RE.search(header_body)
    return match.group(1) if match else None


def parse_file_list(raw_describe: str) -> list[str]:
    """Return the depot paths named by per-file headers, deduplicated in first-seen order."""
    seen: set[str] = set()
    files: list[str] = []
    for line in split_lines(raw_describe):
        body = _header_body(line)
        if body is None:
            continue
        depot_path = _depot_path_from_header(body)
        if depot_path and depot_path not in seen:
            seen.add(depot_path)
            files.append(depot_path)
    return files


def parse_revision_summary(raw_summary: str) -> list[FileRevisionEntry]:
    """Parse `p4 describe -s` file lines into revision entries.

    Only the first line for a given depot path counts; later duplicates are
    ignored so each file appears once, in the order it was first listed.
    """
    seen: set[str] = set()
    entries: list[FileRevisionEntry] = []
    for line in split_lines(raw_summary):
        match = _SUMMARY_LINE_RE.match(line)
        if not match:
            continue
        depot_path = match.group(1)
        if depot_path in seen:
            continue
        seen.add(depot_path)
        entries.append(
            FileRevisionEntry(
                depot_path=depot_path,
                revision=int(match.group(2)),
                action=FileAction.parse(match.group(3)),
            )
        )
    return entries


def is_binary_diff(body: str) -> bool:
    return bool(_BINARY_DIFFER_RE.search(body) or _BINARY_TAG_RE.search(body))


def _find_section_start(lines: list[str], depot_path: str) -> int:
    """Return the index of the header line for depot_path, or -1.

    An exact match on the header's parsed depot path wins, so that
    //depot/a.c is not mistaken for //depot/a.cpp. A plain substring match
    on the header body is the fallback for headers the depot-path pattern
    cannot parse.
    """
    contains_at = -1
    for i, line in enumerate(lines):
        body = _header_body(line)
        if body is None:
            continue
        if _depot_path_from_header(body) == depot_path:
            return i
        if contains_at < 0 and depot_path in body:
            contains_at = i
    return contains_at


def extract_diff_section(raw_describe: str, depot_path: str) -> str:
    """Return the unified diff body for one file, or "" if it is missing or binary.

    The body runs from the line after the file's header up to (not including)
    the next header, or to the end of the text.
    """
    lines = split_lines(raw_describe)
    header_at = _find_section_start(lines, depot_path)
    if header_at < 0:
        return ""

    start = header_at + 1
    end = len(lines)
    for i in range(start, len(lines)):
        if _HEADER_RE.match(lines[i]):
            end = i
            break

    body = "\n".join(lines[start:end])
    if is_binary_diff(body):
        return ""
    return body


def collect_file_diffs(raw_describe: str, depot_paths: list[str]) -> list[FileDiff]:
    """Build FileDiffs for depot_paths, dropping binary files and blank bodies."""
    diffs = []
    for depot_path in depot_paths:
        diff_text = extract_diff_section(raw_describe, depot_path)
        if diff_text.strip():
            diffs.append(FileDiff(depot_path=depot_path, diff_text=diff_text))
    return diffs


def extract_diff2_body(raw_diff2: str) -> str:
    """Strip the "==== lhs - rhs ====" header that `p4 diff2` prints before its hunks."""
    lines = split_lines(raw_diff2)
    for i, line in enumerate(lines):
        if _DIFF2_HEADER_RE.match(line):
            return "\n".join(lines[i + 1 :])
    return "\n".join(lines)


def parse_changes(raw_changes: str) -> list[ChangelistInfo]:
    """Parse `p4 changes -l` output into ChangelistInfo records.

    Indented lines following a header form that changelist's description;
    they are joined with single spaces.
    """
    results: list[ChangelistInfo] = []
    description: list[str] = []
    current: ChangelistInfo | None = None

    def _close():
        if current is not None:
            current.description = " ".join(description)
            results.append(current)

    for line in split_lines(raw_changes):
        match = _CHANGE_HEADER_RE.match(line)
        if match:
            _close()
            description = []
            current = ChangelistInfo(
                number=int(match.group(1)),
                date=match.group(2),
                user=match.group(3).split("@", 1)[0],
                status="pending" if "*pending*" in line else "submitted",
            )
            continue
        if current is None or not line.strip():
            continue
        if line[0] in (" ", "\t"):
            description.append(line.strip())

    _close()
    return results
