# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Unit tests for the fetch orchestrator: fan-out across repositories, per-author
"involves:" sub-queries, deduplication, involvement index and failure isolation.
"""

import asyncio
from unittest.mock import patch

import pytest

from prtriage.classes import Repository, WarningKind
from prtriage.errors import ConfigurationError
from prtriage.fetch.orchestrator import fetch_pull_requests

BUGFIX = 'is:pr fix in:title'
TOTAL = 'is:pr'


def run(client, repositories, authors=None, **kwargs):
    return asyncio.run(fetch_pull_requests(client, repositories, BUGFIX, TOTAL, authors, **kwargs))


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch('prtriage.fetch.orchestrator.bt.logging'), patch('prtriage.fetch.search_fetcher.bt.logging'):
        yield


class TestWithoutAuthors:
    def test_runs_both_queries_per_repository(self, fake_client, widgets, gadgets, search_item):
        fake_client.add_results('acme/widgets', BUGFIX, [search_item(10)])
        fake_client.add_results('acme/widgets', TOTAL, [search_item(10), search_item(12)])
        fake_client.add_results('acme/gadgets', BUGFIX, [search_item(3)])
        fake_client.add_results('acme/gadgets', TOTAL, [search_item(3), search_item(4)])

        result = run(fake_client, [widgets, gadgets])

        assert sorted(pr.key for pr in result.bugfix_prs) == ['acme/gadgets#3', 'acme/widgets#10']
        assert sorted(pr.key for pr in result.total_prs) == [
            'acme/gadgets#3',
            'acme/gadgets#4',
            'acme/widgets#10',
            'acme/widgets#12',
        ]
        assert result.involvement == {}
        assert result.failed_repos == []

    def test_repositories_run_concurrently(self, fake_client, widgets, gadgets, search_item):
        fake_client.add_results('acme/widgets', BUGFIX, [search_item(1)])
        fake_client.add_results('acme/gadgets', BUGFIX, [search_item(2)])

        run(fake_client, [widgets, gadgets])

        assert fake_client.max_in_flight_total == 2

    def test_max_concurrent_repos_bounds_fan_out(self, fake_client, widgets, gadgets, search_item):
        fake_client.add_results('acme/widgets', BUGFIX, [search_item(1)])
        fake_client.add_results('acme/gadgets', BUGFIX, [search_item(2)])

        run(fake_client, [widgets, gadgets], max_concurrent_repos=1)

        assert fake_client.max_in_flight_total == 1

    def test_bugfix_list_keeps_repository_order(self, fake_client, widgets, gadgets, search_item):
        fake_client.add_results('acme/widgets', BUGFIX, [search_item(5), search_item(6)])
        fake_client.add_results('acme/gadgets', BUGFIX, [search_item(1)])

        result = run(fake_client, [widgets, gadgets])

        assert [pr.key for pr in result.bugfix_prs] == ['acme/widgets#5', 'acme/widgets#6', 'acme/gadgets#1']


class TestWithAuthors:
    AUTHORS = ['alice', 'bob', 'carol']

    def _register_overlapping(self, fake_client, search_item):
        fake_client.add_results('acme/widgets', f'{TOTAL} involves:alice', [search_item(1), search_item(2)])
        fake_client.add_results('acme/widgets', f'{TOTAL} involves:bob', [search_item(2), search_item(3)])
        fake_client.add_results(
            'acme/widgets', f'{TOTAL} involves:carol', [search_item(1), search_item(2), search_item(3)]
        )

    def test_bugfix_query_gets_author_terms(self, fake_client, widgets, search_item):
        fake_client.add_results('acme/widgets', f'{BUGFIX} author:alice author:bob author:carol', [search_item(9)])

        result = run(fake_client, [widgets], self.AUTHORS)

        assert [pr.number for pr in result.bugfix_prs] == [9]

    def test_one_involves_query_per_author(self, fake_client, widgets, search_item):
        self._register_overlapping(fake_client, search_item)

        run(fake_client, [widgets], self.AUTHORS)

        total_queries = [query for _, query, _ in fake_client.search_calls if 'involves:' in query]
        assert total_queries == [f'{TOTAL} involves:alice', f'{TOTAL} involves:bob', f'{TOTAL} involves:carol']
        assert not any(query == TOTAL for _, query, _ in fake_client.search_calls)

    def test_overlapping_authors_never_duplicate_prs(self, fake_client, widgets, search_item):
        self._register_overlapping(fake_client, search_item)

        result = run(fake_client, [widgets], self.AUTHORS)

        keys = [pr.key for pr in result.total_prs]
        assert len(keys) == len(set(keys))
        assert sorted(keys) == ['acme/widgets#1', 'acme/widgets#2', 'acme/widgets#3']

    def test_involvement_index_is_complete(self, fake_client, widgets, search_item):
        self._register_overlapping(fake_client, search_item)

        result = run(fake_client, [widgets], self.AUTHORS)

        assert result.involvement == {
            'acme/widgets#1': {'alice', 'carol'},
            'acme/widgets#2': {'alice', 'bob', 'carol'},
            'acme/widgets#3': {'bob', 'carol'},
        }

    def test_author_queries_are_sequential_within_repository(self, fake_client, widgets, gadgets, search_item):
        self._register_overlapping(fake_client, search_item)
        fake_client.add_results('acme/gadgets', f'{TOTAL} involves:alice', [search_item(1)])

        run(fake_client, [widgets, gadgets], self.AUTHORS)

        assert fake_client.max_in_flight_per_repo['acme/widgets'] == 1
        assert fake_client.max_in_flight_per_repo['acme/gadgets'] == 1
        assert fake_client.max_in_flight_total == 2

    def test_same_number_in_two_repositories_is_two_prs(self, fake_client, widgets, gadgets, search_item):
        fake_client.add_results('acme/widgets', f'{TOTAL} involves:alice', [search_item(1)])
        fake_client.add_results('acme/gadgets', f'{TOTAL} involves:alice', [search_item(1)])

        result = run(fake_client, [widgets, gadgets], ['alice'])

        assert sorted(pr.key for pr in result.total_prs) == ['acme/gadgets#1', 'acme/widgets#1']
        assert result.involvement['acme/gadgets#1'] == {'alice'}


class TestFailureIsolation:
    def test_failed_repository_contributes_nothing(self, fake_client, widgets, gadgets, search_item, api_error):
        fake_client.add_results('acme/widgets', BUGFIX, [search_item(1)])
        fake_client.add_results('acme/widgets', TOTAL, [search_item(1), search_item(2)])
        fake_client.add_results('acme/gadgets', BUGFIX, [search_item(5)])
        fake_client.add_failure('acme/gadgets', TOTAL, api_error)

        result = run(fake_client, [widgets, gadgets])

        assert [pr.key for pr in result.bugfix_prs] == ['acme/widgets#1']
        assert sorted(pr.key for pr in result.total_prs) == ['acme/widgets#1', 'acme/widgets#2']
        assert result.failed_repos == ['acme/gadgets']

    def test_unexpected_exception_is_isolated(self, fake_client, widgets, gadgets, search_item):
        fake_client.add_results('acme/widgets', BUGFIX, [search_item(1)])
        fake_client.add_failure('acme/gadgets', BUGFIX, RuntimeError('boom'))

        result = run(fake_client, [widgets, gadgets])

        assert [pr.key for pr in result.bugfix_prs] == ['acme/widgets#1']
        assert result.failed_repos == ['acme/gadgets']

    def test_all_repositories_failing_still_returns(self, fake_client, widgets, api_error):
        fake_client.add_failure('acme/widgets', BUGFIX, api_error)

        result = run(fake_client, [widgets])

        assert result.bugfix_prs == []
        assert result.total_prs == []
        assert result.failed_repos == ['acme/widgets']


class TestWarningsAndProgress:
    def test_warnings_collected_and_forwarded(self, fake_client, widgets, search_item):
        fake_client.add_results('acme/widgets', BUGFIX, [search_item(1)], total_count=2000)
        fake_client.add_results('acme/widgets', TOTAL, [])
        forwarded = []

        result = run(fake_client, [widgets], on_warning=forwarded.append)

        assert [warning.kind for warning in result.warnings] == [WarningKind.TRUNCATED, WarningKind.EMPTY]
        assert forwarded == result.warnings

    def test_progress_reported_per_repository(self, fake_client, widgets, gadgets, search_item):
        fake_client.add_results('acme/widgets', BUGFIX, [search_item(1), search_item(2)])
        fake_client.add_results('acme/gadgets', BUGFIX, [search_item(3)])
        updates = []

        run(fake_client, [widgets, gadgets], on_progress=updates.append)

        assert [update.loaded_repos for update in updates] == [1, 2]
        assert all(update.total_repos == 2 for update in updates)
        assert updates[-1].total_prs == 3


class TestConfigurationErrors:
    def test_no_repositories(self, fake_client):
        with pytest.raises(ConfigurationError):
            run(fake_client, [])

    def test_blank_query(self, fake_client, widgets):
        with pytest.raises(ConfigurationError):
            asyncio.run(fetch_pull_requests(fake_client, [widgets], '   ', TOTAL))

    def test_blank_total_query(self, fake_client):
        with pytest.raises(ConfigurationError):
            asyncio.run(fetch_pull_requests(fake_client, [Repository('a', 'b')], BUGFIX, ''))


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
