"""Branch analysis command."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..analysis.models import AnalysisResult, BranchAnalysis
from ..api import analyze as run_analysis
from ..exceptions import BrambleError
from ..logging_config import setup_logging
from ..serializers import result_to_dict
from . import app
from ._common import console, resolve_options
from .progress import AnalysisProgress

# Rows shown in the branch table before truncating
_TABLE_LIMIT = 50


def _format_last_activity(branch: BranchAnalysis) -> str:
    if branch.last_activity is None:
        return "[dim]unknown[/dim]"
    return branch.last_activity.strftime("%Y-%m-%d")


def _summary_panel(result: AnalysisResult) -> Panel:
    summary = result.summary
    stats = result.statistics

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim")
    table.add_column(style="bold")

    table.add_row("Repository", escape(summary.path))
    table.add_row("Default branch", f"[cyan]{escape(summary.default_branch)}[/cyan]")
    table.add_row(
        "Branches",
        f"{summary.total_branches} "
        f"[dim]({summary.local_branches} local, {summary.remote_branches} remote)[/dim]",
    )
    table.add_row(
        "Stale",
        f"[{'yellow' if summary.stale_branches else 'green'}]{summary.stale_branches}[/]",
    )
    table.add_row("Mergeable", str(summary.mergeable_branches))
    table.add_row(
        "Conflicted",
        f"[{'red' if summary.conflicted_branches else 'green'}]{summary.conflicted_branches}[/]",
    )
    table.add_row("Contributors", str(stats.total_contributors))
    table.add_row("Average age", f"{stats.average_age_days:.1f} days")
    if stats.most_active:
        table.add_row("Most active", escape(stats.most_active))

    depth = result.options.depth.value if result.options is not None else "normal"
    return Panel(
        table,
        title="[bold cyan]BRAMBLE[/bold cyan]",
        subtitle=f"[dim]{depth} analysis in {result.duration_seconds:.1f}s[/dim]",
        expand=False,
    )


def _branch_table(result: AnalysisResult) -> Table:
    table = Table(title="Branches", show_lines=False)
    table.add_column("Branch", style="cyan", no_wrap=True)
    table.add_column("Last activity")
    table.add_column("Author")
    table.add_column("Ahead", justify="right")
    table.add_column("Behind", justify="right")
    table.add_column("Commits", justify="right")
    table.add_column("Status")

    default = result.summary.default_branch
    for branch in result.branches[:_TABLE_LIMIT]:
        name = escape(branch.name)
        if name == default:
            name = f"[bold]{name}[/bold] [dim](default)[/dim]"
        elif branch.is_current:
            name = f"{name} [dim](current)[/dim]"

        status = []
        if branch.is_stale:
            status.append("[yellow]stale[/yellow]")
        if branch.mergeable and branch.name != default:
            status.append("[green]merged[/green]")
        if branch.conflict_count:
            status.append(f"[red]{branch.conflict_count} files differ[/red]")
        if branch.degraded:
            status.append("[dim]partial[/dim]")

        table.add_row(
            name,
            _format_last_activity(branch),
            escape(branch.last_commit_author or ""),
            str(branch.divergence.ahead),
            str(branch.divergence.behind),
            str(branch.commit_count),
            " ".join(status),
        )
    return table


@app.command()
def analyze(
    path: Path = typer.Argument(
        Path("."),
        help="Repository to analyze (default: current directory)",
        file_okay=False,
        dir_okay=True,
    ),
    fast: bool = typer.Option(False, "--fast", help="Divergence counts only"),
    deep: bool = typer.Option(
        False, "--deep", help="Full history, conflicts, branch size and merge check"
    ),
    max_branches: Optional[int] = typer.Option(
        None, "--max-branches", "-n", help="Analyze at most this many branches", min=1
    ),
    max_concurrency: Optional[int] = typer.Option(
        None,
        "--max-concurrency",
        "-j",
        help="Branch analyses in flight at once (default: auto-detect)",
        min=1,
        max=64,
    ),
    skip_stale: Optional[int] = typer.Option(
        None, "--skip-stale", help="Skip branches idle for more than DAYS", min=0, metavar="DAYS"
    ),
    stale_days: Optional[int] = typer.Option(
        None, "--stale-days", help="Days without commits before a branch is stale", min=1
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable query memoization"),
    no_remote: bool = typer.Option(False, "--no-remote", help="Only analyze local branches"),
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the full result as JSON to FILE"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print errors"),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="Also write debug logs, with worker thread names, to FILE"
    ),
):
    """
    Analyze every branch of a git repository.

    [bold cyan]Examples:[/bold cyan]

      bramble analyze

      bramble analyze --fast --max-branches 100

      bramble analyze /path/to/repo --deep --output branches.json
    """
    if fast and deep:
        console.print("[red]Error:[/red] --fast and --deep are mutually exclusive")
        raise typer.Exit(1)
    if verbose and quiet:
        console.print("[red]Error:[/red] --verbose and --quiet are mutually exclusive")
        raise typer.Exit(1)

    logger = setup_logging(
        verbose=verbose, quiet=quiet, log_file=str(log_file) if log_file else None
    )

    try:
        options = resolve_options(
            config=config,
            fast=fast,
            deep=deep,
            max_branches=max_branches,
            max_concurrency=max_concurrency,
            skip_stale=skip_stale,
            stale_days=stale_days,
            no_cache=no_cache,
            no_remote=no_remote,
        )

        if quiet:
            result = run_analysis(str(path), options=options)
        else:
            progress = AnalysisProgress(console)
            with progress:
                result = run_analysis(str(path), progress=progress, options=options)
                progress.finish(len(result.branches))

        if output is not None:
            with open(output, "w") as f:
                json.dump(result_to_dict(result), f, indent=2)
            logger.info(f"Results written to {output}")

        if not quiet:
            console.print()
            console.print(_summary_panel(result))
            console.print(_branch_table(result))
            hidden = len(result.branches) - _TABLE_LIMIT
            if hidden > 0:
                console.print(f"[dim]... and {hidden} more branches[/dim]")
            if output is not None:
                console.print(f"[green]Results written to[/green] {escape(str(output))}")

    except BrambleError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    except KeyboardInterrupt:
        logger.info("Analysis interrupted by user")
        console.print("\n[yellow]Analysis interrupted[/yellow]")
        raise typer.Exit(130)
