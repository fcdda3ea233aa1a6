# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Change-frequency index over the files touched by bugfix PRs, navigable one directory level at a time.

Counts are independent per level: a file touched by N PRs adds N to its own entry and N to
each ancestor directory's entry at that directory's level. Levels are not rolled up.
"""

from collections import Counter
from typing import Dict, Iterator, List, Optional, Sequence

from prtriage.classes import FileChange, HotspotNode, HotspotType, HotspotView, PRFilesMap, PullRequest
from prtriage.constants import HOTSPOT_MAX_ENTRIES, PATH_SEPARATOR


def _files_in_repository(files_map: PRFilesMap, bugfix_prs: List[PullRequest], repo_id: str) -> Iterator[FileChange]:
    pr_keys = {pr.key for pr in bugfix_prs if pr.repo_id == repo_id}
    for key, file_changes in files_map.items():
        if key in pr_keys:
            yield from file_changes


def _matches_path(parts: List[str], path: Sequence[str]) -> bool:
    if len(parts) < len(path):
        return False
    return all(parts[i] == segment for i, segment in enumerate(path))


def max_count_at_root(files_map: PRFilesMap, bugfix_prs: List[PullRequest], repo_id: Optional[str]) -> int:
    """Highest first-segment count in the repository, regardless of navigation."""
    if not files_map or not repo_id:
        return 0

    counts = Counter(
        file_change.filename.split(PATH_SEPARATOR)[0]
        for file_change in _files_in_repository(files_map, bugfix_prs, repo_id)
    )
    return max(counts.values(), default=0)


def aggregate_hotspots(
    files_map: PRFilesMap,
    bugfix_prs: List[PullRequest],
    repo_id: Optional[str],
    path: Optional[Sequence[str]] = None,
    limit: int = HOTSPOT_MAX_ENTRIES,
) -> HotspotView:
    """
    Count changes per entry directly below ``path`` in one repository.

    Args:
        files_map (PRFilesMap): file changes keyed by PR identity key
        bugfix_prs (List[PullRequest]): PRs whose files are counted
        repo_id (Optional[str]): repository to aggregate; None or empty yields an empty view
        path (Optional[Sequence[str]]): navigation path segments, empty for the root
        limit (int): maximum entries returned

    Returns:
        HotspotView: up to ``limit`` entries by descending count, plus the root-level maximum
    """
    path = list(path or [])
    if not files_map or not repo_id:
        return HotspotView(nodes=[], max_count_at_root=0, path=path)

    counts: Dict[str, int] = Counter()
    types: Dict[str, HotspotType] = {}
    depth = len(path)

    for file_change in _files_in_repository(files_map, bugfix_prs, repo_id):
        parts = file_change.filename.split(PATH_SEPARATOR)
        if len(parts) <= depth or not _matches_path(parts, path):
            continue

        name = parts[depth]
        counts[name] += 1
        types[name] = HotspotType.DIRECTORY if len(parts) > depth + 1 else HotspotType.FILE

    # sorted() is stable, so ties keep first-seen order
    ranked = sorted(counts.items(), key=lambda entry: entry[1], reverse=True)[:limit]
    nodes = [HotspotNode(name=name, count=count, type=types[name]) for name, count in ranked]

    return HotspotView(nodes=nodes, max_count_at_root=max_count_at_root(files_map, bugfix_prs, repo_id), path=path)


def prs_touching_file(
    files_map: PRFilesMap,
    bugfix_prs: List[PullRequest],
    repo_id: str,
    path: Sequence[str],
    file_name: str,
) -> List[PullRequest]:
    """Bugfix PRs in ``repo_id`` that changed ``path/file_name``, newest first."""
    full_path = PATH_SEPARATOR.join([*path, file_name])

    touching = [
        pr
        for pr in bugfix_prs
        if pr.repo_id == repo_id
        and any(file_change.filename == full_path for file_change in files_map.get(pr.key, []))
    ]
    return sorted(touching, key=lambda pr: pr.created_at, reverse=True)
