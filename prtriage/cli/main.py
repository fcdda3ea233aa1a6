# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
prtriage CLI - Main entry point

Usage:
    prtriage config                 - Show the resolved configuration
    prtriage report                 - Fetch and print every view
    prtriage hotspots [PATH...]     - Drill into file change hotspots
    prtriage involvement            - Daily PR involvement and balance scores
"""

import asyncio
from pathlib import Path
from typing import Optional, Tuple

import bittensor as bt
import click
from rich.console import Console
from rich.markup import escape

from prtriage import __version__
from prtriage.analysis.balance import anonymize_authors
from prtriage.analysis.throughput import repositories_with_data
from prtriage.classes import FetchWarning, LoadingProgress, WarningKind
from prtriage.cli.tables import (
    build_breakdown_table,
    build_hotspot_table,
    build_involvement_table,
    build_table,
    build_throughput_table,
)
from prtriage.client import GitHubSearchClient
from prtriage.errors import TriageError
from prtriage.session import TriageSession
from prtriage.utils.config import DEFAULT_CONFIG_FILE, TriageConfig, check_config_types, load_config
from prtriage.utils.logging import log_fetch_warning, setup_events_logger
from prtriage.utils.utils import mask_secret

console = Console()


def print_warning(warning: FetchWarning) -> None:
    log_fetch_warning(warning)
    scope = f' involves:{warning.author}' if warning.author else ''
    if warning.kind == WarningKind.TRUNCATED:
        console.print(f'[yellow]⚠ {warning.message} for {warning.query_label.value} query{scope}[/yellow]')
        console.print(f'[dim]  {warning.description}[/dim]')
    else:
        console.print(f'[dim]ℹ {warning.message} for {warning.query_label.value} query{scope}[/dim]')


def print_progress(progress: LoadingProgress) -> None:
    console.print(f'[dim]Loading: {progress.loaded_repos}/{progress.total_repos} repos[/dim]')


def run_session(config: TriageConfig) -> TriageSession:
    """Run one fetch cycle, exiting with status 1 on a fatal error."""
    try:
        session = TriageSession(config, GitHubSearchClient(config.token))
        asyncio.run(session.refresh(on_warning=print_warning, on_progress=print_progress))
    except TriageError as e:
        console.print(f'[red]Error: {escape(str(e))}[/red]')
        raise SystemExit(1)
    return session


@click.group()
@click.version_option(version=__version__, prog_name='prtriage')
@click.option(
    '--config',
    'config_path',
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help='JSON configuration file',
)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.option(
    '--events-dir',
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    default=None,
    help='Directory to record fetch warnings in (events.log)',
)
@click.pass_context
def cli(ctx, config_path: Path, verbose: bool, events_dir: Optional[Path]):
    """prtriage - bugfix throughput, code hotspots and workload balance from GitHub PRs"""
    if verbose:
        bt.logging.set_debug(True)
    if events_dir is not None:
        setup_events_logger(str(events_dir))
    ctx.obj = load_config(config_path)


@cli.command('config')
@click.pass_obj
def show_config(config: TriageConfig):
    """Show the resolved configuration"""
    try:
        check_config_types(config)
    except TriageError as e:
        console.print(f'[red]Error: {escape(str(e))}[/red]')
        raise SystemExit(1)

    table = build_table(show_header=True)
    table.add_column('Setting', style='cyan')
    table.add_column('Value', style='green')

    table.add_row('repositories', '\n'.join(repository.id for repository in config.repositories) or '(none)')
    table.add_row('authors', ', '.join(config.authors) or '(none)')
    table.add_row('bugfixPRsQuery', config.bugfix_query)
    table.add_row('totalPRsQuery', config.total_query)
    table.add_row('fileFetchConcurrency', str(config.file_fetch_concurrency))
    table.add_row('token', mask_secret(config.token) if config.token else '[red](not set)[/red]')

    console.print(table)


@cli.command('report')
@click.option('--days', type=click.IntRange(min=1), default=7, show_default=True, help='Involvement days to show')
@click.pass_obj
def report(config: TriageConfig, days: int):
    """Fetch PRs and print every view"""
    session = run_session(config)
    snapshot = session.snapshot

    console.print(f'\n[bold]{len(snapshot.bugfix_prs)} bugfix PRs[/bold] of {len(snapshot.total_prs)} total')
    console.print(build_breakdown_table(session.breakdown()))

    repo_ids = [
        repository.id
        for repository in repositories_with_data(config.repositories, snapshot.bugfix_prs, snapshot.total_prs)
    ]
    console.print(build_throughput_table(session.throughput(), repo_ids))

    if repo_ids:
        console.print(build_hotspot_table(session.hotspots(repo_ids[0]), repo_ids[0]))

    involvement = session.involvement()
    if involvement:
        console.print(build_involvement_table(involvement[-days:], config.authors))


@cli.command('hotspots')
@click.argument('path', nargs=-1)
@click.option('--repo', 'repo_id', default=None, help='Repository (owner/repo), defaults to the first configured')
@click.option('--file', 'file_name', default=None, help='List the bugfix PRs that changed PATH/FILE')
@click.pass_obj
def hotspots(config: TriageConfig, path: Tuple[str, ...], repo_id: Optional[str], file_name: Optional[str]):
    """Show the most frequently changed entries below PATH.

    \b
    Examples:
        prtriage hotspots                     # repository root
        prtriage hotspots src api             # inside src/api
        prtriage hotspots src --file main.py  # PRs that changed src/main.py
    """
    session = run_session(config)
    repo_id = repo_id or (config.repositories[0].id if config.repositories else None)
    if repo_id is None:
        console.print('[yellow]No repository selected[/yellow]')
        return

    if file_name:
        table = build_table(theme='square', title=f'Bugfix PRs touching {"/".join([*path, file_name])}')
        table.add_column('PR #', style='cyan', justify='right')
        table.add_column('Title', style='green', max_width=50)
        table.add_column('Author', style='yellow')
        table.add_column('Created', style='magenta')
        table.add_column('URL', style='blue', max_width=60)
        for pr in session.prs_touching_file(repo_id, list(path), file_name):
            table.add_row(str(pr.number), escape(pr.title), pr.author_login, pr.created_at.date().isoformat(), pr.url)
        console.print(table)
        return

    console.print(build_hotspot_table(session.hotspots(repo_id, list(path)), repo_id))


@cli.command('involvement')
@click.option('--days', type=click.IntRange(min=1), default=30, show_default=True, help='Days to show')
@click.option('--anonymize', is_flag=True, help='Show dev1..devN instead of logins')
@click.pass_obj
def involvement(config: TriageConfig, days: int, anonymize: bool):
    """Daily open PRs per author with team balance scores"""
    if not config.authors:
        console.print('[yellow]No authors configured; showing total open PRs only.[/yellow]')

    session = run_session(config)
    points = session.involvement()
    labels = anonymize_authors(config.authors) if anonymize else None
    console.print(build_involvement_table(points[-days:], config.authors, labels))


def main():
    """Main entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
