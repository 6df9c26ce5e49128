from __future__ import annotations

from p4lens_core.describe import parse_changes
from p4lens_core.models import ChangelistInfo
from p4lens_core.p4.client import P4Client


def get_changelists(
    p4: P4Client,
    user: str,
    max_results: int | None = None,
    status: str | None = None,
) -> list[ChangelistInfo]:
    """Return the user's changelists, newest first as p4 lists them."""
    return parse_changes(p4.changes(user, max_results=max_results, status=status))
