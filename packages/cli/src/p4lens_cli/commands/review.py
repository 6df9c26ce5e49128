"""review command — run AI review on a Perforce changelist."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from p4lens_core.p4.client import P4Error
from p4lens_core.pipeline import FileReviewError, PipelineError, run_review
from p4lens_core.providers.base import ReviewerError
from p4lens_writer.markdown import MarkdownWriter
from p4lens_writer.noop import NoOpWriter

console = Console()

_API_KEY_ENV = {"openai": "OPENAI_API_KEY", "anthropic": "ANTHROPIC_API_KEY"}


@click.command("review")
@click.option("--cl", "changelist", type=click.IntRange(min=1), required=True, help="Perforce changelist number.")
@click.option(
    "--instructions",
    "instructions_path",
    default=None,
    help="Path to a text file with review instructions. Overrides config file.",
)
@click.option("--out", "output_dir", default=None, help="Output directory for review results. Overrides config file.")
@click.option(
    "--provider",
    type=click.Choice(["openai", "anthropic"]),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.option("--model", default=None, help="Model name, e.g. gpt-4o-mini. Defaults to OPENAI_MODEL or the provider default.")
@click.option("--shelved", is_flag=True, help="Review the shelved files of a pending changelist (p4 describe -S).")
@click.option("--summary/--no-summary", default=None, help="Write a cross-file summary.md (default: on).")
@click.option("--dry-run", is_flag=True, help="List files and preview their diffs; do not call the AI provider.")
@click.option(
    "--concurrency",
    type=click.IntRange(1, 10),
    default=None,
    help="Number of files reviewed in parallel (1-10, default 3).",
)
@click.option(
    "--max-chunk-chars",
    type=click.IntRange(min=1),
    default=None,
    help="Largest diff slice sent in one request; bigger diffs are chunked and merged.",
)
@click.option("--config", "config_path", default=None, help="Path to the configuration file.")
@click.pass_context
def review_cmd(
    ctx,
    changelist: int,
    instructions_path: str | None,
    output_dir: str | None,
    provider: str | None,
    model: str | None,
    shelved: bool,
    summary: bool | None,
    dry_run: bool,
    concurrency: int | None,
    max_chunk_chars: int | None,
    config_path: str | None,
):
    """Review every file in a Perforce changelist with Claude or GPT.

    Writes one Markdown review per file plus summary.md into
    <out>/CL_<changelist>.

    \b
    Required environment variables:
      OPENAI_API_KEY       Required when using --provider openai
      ANTHROPIC_API_KEY    Required when using --provider anthropic
    Optional:
      OPENAI_BASE_URL      OpenAI-compatible endpoint
      OPENAI_MODEL         Default model for the openai provider
      P4PORT, P4USER, P4CLIENT
    """
    from p4lens_core.config import load_config

    if config_path is None:
        config_path = (ctx.obj or {}).get("config_path", ".p4lens.yml")

    config = load_config(
        config_path,
        cli_overrides={
            "provider": provider,
            "model": model,
            "instructions": instructions_path,
            "output_dir": output_dir,
            "max_chunk_chars": max_chunk_chars,
        },
    )

    if not dry_run:
        key_env = _API_KEY_ENV.get(config["provider"])
        if key_env is None:
            raise click.UsageError(f"Unknown provider {config['provider']!r}. Choose 'openai' or 'anthropic'.")
        if not config.get(f"{config['provider']}_api_key"):
            raise click.UsageError(f"{key_env} environment variable is not set.")

    out_dir = Path(config["output_dir"]).resolve() / f"CL_{changelist}"
    writer = NoOpWriter() if dry_run else MarkdownWriter(out_dir)

    try:
        outcome = run_review(
            changelist=changelist,
            config=config,
            writer=writer,
            shelved=shelved,
            summary=summary,
            concurrency=concurrency,
            dry_run=dry_run,
            output_dir=None if dry_run else str(out_dir),
        )
    except FileNotFoundError as e:
        raise click.UsageError(str(e))
    except (PipelineError, FileReviewError, ReviewerError, P4Error, ValueError) as e:
        raise click.ClickException(f"Review of changelist {changelist} failed: {e}")
    finally:
        writer.close()

    if outcome.dry_run:
        return
    console.print(f"[green]Done. Output: {outcome.output_dir}. Files reviewed: {outcome.file_count}[/green]")
