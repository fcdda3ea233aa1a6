import logging
import os
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING, List

import bittensor as bt

if TYPE_CHECKING:
    from prtriage.classes import FetchWarning, HotspotView, MonthlyThroughputPoint
    from prtriage.session import TriageSnapshot

EVENTS_LEVEL_NUM = 38
DEFAULT_LOG_BACKUP_COUNT = 10
DEFAULT_EVENTS_RETENTION_SIZE = 2 * 1024 * 1024


def setup_events_logger(full_path, events_retention_size=DEFAULT_EVENTS_RETENTION_SIZE):
    """File logger at the custom EVENT level, used to keep a record of fetch warnings."""
    logging.addLevelName(EVENTS_LEVEL_NUM, 'EVENT')

    logger = logging.getLogger('event')
    logger.setLevel(EVENTS_LEVEL_NUM)

    def event(self, message, *args, **kws):
        if self.isEnabledFor(EVENTS_LEVEL_NUM):
            self._log(EVENTS_LEVEL_NUM, message, args, **kws)

    logging.Logger.event = event

    formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    file_handler = RotatingFileHandler(
        os.path.join(full_path, 'events.log'),
        maxBytes=events_retention_size,
        backupCount=DEFAULT_LOG_BACKUP_COUNT,
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(EVENTS_LEVEL_NUM)
    logger.addHandler(file_handler)

    return logger


def log_fetch_warning(warning: 'FetchWarning') -> None:
    """Forward a fetch warning to the EVENT log when one has been set up."""
    logger = logging.getLogger('event')
    if logger.handlers:
        logger.event(str(warning))


def log_fetch_summary(snapshot: 'TriageSnapshot') -> None:
    """Log a per-repository summary of a completed fetch cycle."""
    bugfix_counts = {}
    for pr in snapshot.bugfix_prs:
        bugfix_counts[pr.repo_id] = bugfix_counts.get(pr.repo_id, 0) + 1
    total_counts = {}
    for pr in snapshot.total_prs:
        total_counts[pr.repo_id] = total_counts.get(pr.repo_id, 0) + 1

    repo_ids = sorted(set(bugfix_counts) | set(total_counts))
    bt.logging.info(f'Fetch cycle #{snapshot.generation} complete ({len(repo_ids)} repositories with data):')

    if repo_ids:
        max_name_len = max(len(repo_id) for repo_id in repo_ids)
        for repo_id in repo_ids:
            files_loaded = sum(1 for pr in snapshot.bugfix_prs if pr.repo_id == repo_id and pr.key in snapshot.files_map)
            bt.logging.info(
                f'  ├─ {repo_id:<{max_name_len}}  '
                f'bugfix: {bugfix_counts.get(repo_id, 0):>4}  '
                f'total: {total_counts.get(repo_id, 0):>4}  '
                f'files: {files_loaded:>4}'
            )

    for repo_id in snapshot.failed_repos:
        bt.logging.warning(f'  ├─ {repo_id}: FAILED (no data)')

    if snapshot.warnings:
        bt.logging.info(f'  └─ {len(snapshot.warnings)} warning(s)')
    else:
        bt.logging.info('  └─ no warnings')


def log_hotspot_view(view: 'HotspotView', repo_id: str) -> None:
    """Debug listing of one hotspot level."""
    location = '/'.join(view.path) or '(root)'
    bt.logging.debug(f'Hotspots for {repo_id} at {location} (root max: {view.max_count_at_root}):')

    if not view.nodes:
        bt.logging.debug('  └─ no changes')
        return

    max_name_len = max(len(node.name) for node in view.nodes)
    for node in view.nodes:
        suffix = '/' if node.type.value == 'directory' else ''
        bt.logging.debug(f'  │   {node.name + suffix:<{max_name_len + 1}}  {node.count:>4}')


def log_throughput(points: List['MonthlyThroughputPoint']) -> None:
    """Debug listing of monthly bugfix share."""
    for point in points:
        if not point.repos:
            bt.logging.debug(f'  {point.month}: no bugfix PRs ({point.month_total} total)')
            continue
        repos_str = ' | '.join(
            f'{repo_id}: {entry.percentage:.1f}% ({entry.count})' for repo_id, entry in sorted(point.repos.items())
        )
        bt.logging.debug(f'  {point.month}: {repos_str} of {point.month_total}')
