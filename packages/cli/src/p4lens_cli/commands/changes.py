"""changes command — list a user's changelists."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("changes")
@click.option("--user", required=True, help="Perforce user whose changelists to list.")
@click.option("--limit", default=20, show_default=True, help="Maximum number of changelists to show.")
@click.option(
    "--status",
    type=click.Choice(["pending", "submitted", "shelved"]),
    default=None,
    help="Only show changelists in this state.",
)
@click.pass_context
def changes_cmd(ctx, user: str, limit: int, status: str | None):
    """List recent changelists for a user, most recent first.

    Pick a number from this table and pass it to `p4lens review --cl`.
    """
    from p4lens_core.config import load_config
    from p4lens_core.p4.changes import get_changelists
    from p4lens_core.p4.client import P4Error
    from p4lens_core.pipeline import get_p4

    config = load_config((ctx.obj or {}).get("config_path", ".p4lens.yml"))
    p4 = get_p4(config)

    try:
        records = get_changelists(p4, user, max_results=limit, status=status)
    except P4Error as e:
        raise click.ClickException(f"Could not list changelists for {user}: {e}")

    if not records:
        console.print("[yellow]No changelists found.[/yellow]")
        return

    table = Table(title=f"Changelists — {user}", show_header=True, header_style="bold cyan")
    table.add_column("CL", style="bold", width=10)
    table.add_column("Date", width=12)
    table.add_column("Status", width=10)
    table.add_column("Description", max_width=60)

    _status_style = {"pending": "yellow", "submitted": "green"}

    for r in records[:limit]:
        style = _status_style.get(r.status, "white")
        table.add_row(
            str(r.number),
            r.date,
            f"[{style}]{r.status}[/{style}]",
            r.description[:60],
        )

    console.print(table)
