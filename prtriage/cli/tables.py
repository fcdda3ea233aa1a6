# The MIT License (MIT)
# Copyright © 2025 Entrius

"""Reusable Rich table presets."""

from dataclasses import dataclass
from typing import Dict, List, Optional

from rich import box
from rich.table import Table

from prtriage.classes import DailyInvolvementPoint, HotspotType, HotspotView, MonthlyThroughputPoint, RepoBreakdown


@dataclass(frozen=True)
class TableTheme:
    box_style: box.Box
    header_style: str
    border_style: str
    show_lines: bool
    pad_edge: bool


TABLE_THEMES = {
    # Full wrapped grid
    'square': TableTheme(
        box_style=box.SQUARE,
        header_style='bold magenta',
        border_style='grey35',
        show_lines=True,
        pad_edge=True,
    ),
    # Minimal separators with a heavier header rule
    'minimal': TableTheme(
        box_style=box.MINIMAL_HEAVY_HEAD,
        header_style='bold white',
        border_style='grey50',
        show_lines=False,
        pad_edge=False,
    ),
}

DEFAULT_TABLE_THEME = 'minimal'


def build_table(theme: str = DEFAULT_TABLE_THEME, **kwargs) -> Table:
    """Create a Rich table using a named visual theme."""
    preset = TABLE_THEMES.get(theme, TABLE_THEMES[DEFAULT_TABLE_THEME])
    params = {
        'box': preset.box_style,
        'header_style': preset.header_style,
        'border_style': preset.border_style,
        'show_lines': preset.show_lines,
        'pad_edge': preset.pad_edge,
    }
    params.update(kwargs)
    return Table(**params)


def build_breakdown_table(breakdown: List[RepoBreakdown]) -> Table:
    table = build_table(title='Bugfix PRs by repository')
    table.add_column('Repository', style='cyan')
    table.add_column('Bugfix', justify='right', style='yellow')
    table.add_column('Total', justify='right')
    table.add_column('Bugfix %', justify='right', style='green')

    for row in breakdown:
        table.add_row(row.repo_id, str(row.bugfix_count), str(row.total_count), f'{row.percentage:.1f}%')
    return table


def build_throughput_table(points: List[MonthlyThroughputPoint], repo_ids: List[str]) -> Table:
    """One row per month, one column per repository. Blank cells mean no bugfix PRs that month."""
    table = build_table(title='Monthly bugfix share')
    table.add_column('Month', style='cyan')
    table.add_column('All PRs', justify='right')
    for repo_id in repo_ids:
        table.add_column(repo_id, justify='right', style='green')

    for point in points:
        cells = []
        for repo_id in repo_ids:
            entry = point.repos.get(repo_id)
            cells.append(f'{entry.percentage:.1f}% ({entry.count})' if entry else '')
        table.add_row(point.month, str(point.month_total), *cells)
    return table


def build_hotspot_table(view: HotspotView, repo_id: str) -> Table:
    location = '/'.join(view.path) or '/'
    table = build_table(theme='square', title=f'Hotspots in {repo_id} at {location}')
    table.add_column('Name', style='cyan')
    table.add_column('Type', style='dim')
    table.add_column('Changes', justify='right', style='yellow')
    table.add_column('', style='magenta')

    scale = view.max_count_at_root or 1
    for node in view.nodes:
        name = f'{node.name}/' if node.type == HotspotType.DIRECTORY else node.name
        bar = '█' * max(1, round(node.count / scale * 30))
        table.add_row(name, node.type.value, str(node.count), bar)
    return table


def build_involvement_table(
    points: List[DailyInvolvementPoint], authors: List[str], labels: Optional[Dict[str, str]] = None
) -> Table:
    labels = labels or {}
    table = build_table(title='Active PR context, by dev')
    table.add_column('Day', style='cyan')
    table.add_column('Open', justify='right')
    for author in authors:
        table.add_column(labels.get(author, author), justify='right')
    table.add_column('Balance (Gini)', justify='right', style='green')
    table.add_column('Balance (Entropy)', justify='right', style='green')

    for point in points:
        counts = [str(point.author_counts.get(author, 0)) for author in authors]
        table.add_row(
            point.day.isoformat(),
            str(point.open_count),
            *counts,
            f'{point.balance_score:.2f}',
            f'{point.entropy_score:.2f}',
        )
    return table
