# The MIT License (MIT)
# Copyright © 2025 Entrius

from datetime import datetime, timedelta, timezone

import pytest

from prtriage.classes import FetchWarning, FileChange, PullRequest, QueryLabel, Repository, WarningKind, pr_key
from prtriage.utils.utils import mask_secret, parse_github_timestamp


class TestPullRequestFromSearchItem:
    def test_fields(self, search_item, widgets):
        item = search_item(10, created_at='2025-02-01T10:00:00Z', closed_at='2025-02-03T08:30:00Z', login='bob')

        pr = PullRequest.from_search_item(item, widgets)

        assert pr.number == 10
        assert pr.key == 'acme/widgets#10'
        assert pr.author_login == 'bob'
        assert pr.url == 'https://github.com/acme/widgets/pull/10'
        assert pr.created_at == datetime(2025, 2, 1, 10, 0, tzinfo=timezone.utc)
        assert pr.closed_at == datetime(2025, 2, 3, 8, 30, tzinfo=timezone.utc)
        assert (pr.owner, pr.repo, pr.repo_id) == ('acme', 'widgets', 'acme/widgets')

    def test_open_pr(self, search_item, widgets):
        assert PullRequest.from_search_item(search_item(1), widgets).closed_at is None

    def test_missing_user(self, search_item, widgets):
        item = search_item(1)
        item['user'] = None

        assert PullRequest.from_search_item(item, widgets).author_login == ''

    @pytest.mark.parametrize(
        'item',
        [
            'not an object',
            {'title': 'no number', 'created_at': '2025-02-01T10:00:00Z'},
            {'number': True, 'created_at': '2025-02-01T10:00:00Z'},
            {'number': 3},
            {'number': 3, 'created_at': 'yesterday'},
        ],
    )
    def test_malformed(self, item, widgets):
        with pytest.raises(ValueError):
            PullRequest.from_search_item(item, widgets)


class TestIsOpenAt:
    def test_open_semantics(self, pr_factory):
        pr = pr_factory(1, created_at=datetime(2025, 5, 1, 9, 0), closed_at=datetime(2025, 5, 3, 9, 0))
        created, closed = pr.created_at, pr.closed_at

        assert not pr.is_open_at(created - timedelta(seconds=1))
        assert not pr.is_open_at(created)
        assert pr.is_open_at(created + timedelta(hours=1))
        assert not pr.is_open_at(closed)
        assert not pr.is_open_at(closed + timedelta(days=1))

    def test_never_closed(self, pr_factory):
        pr = pr_factory(1, created_at=datetime(2025, 5, 1, 9, 0))

        assert pr.is_open_at(pr.created_at + timedelta(days=365))


class TestFileChange:
    def test_defaults(self):
        change = FileChange.from_github_response(4, 'acme/widgets', {'filename': 'src/a.py'})

        assert change.status == 'modified'
        assert (change.additions, change.deletions, change.changes) == (0, 0, 0)

    @pytest.mark.parametrize('entry', [None, {}, {'filename': ''}, {'filename': 'a.py', 'changes': 1.5}])
    def test_malformed(self, entry):
        with pytest.raises(ValueError):
            FileChange.from_github_response(4, 'acme/widgets', entry)


class TestFetchWarning:
    def test_truncated(self):
        warning = FetchWarning(WarningKind.TRUNCATED, 'acme/widgets', QueryLabel.TOTAL, 1500, author='alice')

        assert warning.message == 'Repository "acme/widgets" has 1500 PRs (exceeds 1000 limit)'
        assert 'date filters' in warning.description
        assert '(involves:alice)' in str(warning)

    def test_empty(self):
        warning = FetchWarning(WarningKind.EMPTY, 'acme/widgets', QueryLabel.BUGFIX)

        assert str(warning).startswith('Repository "acme/widgets" has no PRs matching query for bugfix query.')


class TestHelpers:
    def test_pr_key(self):
        assert pr_key('acme/widgets', 7) == 'acme/widgets#7'

    def test_repository_id(self):
        assert str(Repository('acme', 'widgets')) == 'acme/widgets'

    def test_parse_timestamp_with_offset(self):
        assert parse_github_timestamp('2025-02-01T12:00:00+02:00') == datetime(2025, 2, 1, 10, 0, tzinfo=timezone.utc)

    def test_mask_secret_hides_value(self):
        masked = mask_secret('ghp_example')

        assert 'ghp_example' not in masked
        assert masked == mask_secret('ghp_example')


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
