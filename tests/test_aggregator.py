"""Tests for newsfeed.services.aggregator."""
import asyncio

from newsfeed.models.schemas import ProviderTag, QueryFilters, SourceResult, SourceStatus
from newsfeed.services.aggregator import Aggregator, sort_by_date
from newsfeed.services.cancellation import CancellationToken
from newsfeed.services.providers.guardian import GuardianClient
from newsfeed.services.providers.newsapi import NewsApiClient
from newsfeed.services.providers.nytimes import NYTimesClient

from support import StubClient, make_article


class OpeningClient(StubClient):
    """Releases ``gate`` when fetched instead of waiting on it."""

    async def fetch_with_status(self, filters, cancel_token=None):
        self.calls.append(filters)
        self.gate.set()
        return SourceResult(provider=self.provider, articles=list(self.articles), status=self.status)


class TestFetchAll:
    def test_merges_and_sorts_newest_first(self) -> None:
        newsapi = StubClient(ProviderTag.NEWSAPI, [
            make_article("n1", published_at="2024-02-01T10:00:00Z"),
            make_article("n2", published_at="2024-01-30T10:00:00Z"),
        ])
        guardian = StubClient(ProviderTag.GUARDIAN, [
            make_article("g1", published_at="2024-01-31T10:00:00Z", provider=ProviderTag.GUARDIAN),
        ])
        nytimes = StubClient(ProviderTag.NYTIMES, [
            make_article("t1", published_at="2024-02-02T10:00:00+0000", provider=ProviderTag.NYTIMES),
        ])
        aggregator = Aggregator([newsapi, guardian, nytimes])

        articles = asyncio.run(aggregator.fetch_all(QueryFilters()))

        assert [a.id for a in articles] == ["t1", "n1", "g1", "n2"]

    def test_every_client_receives_the_filters(self) -> None:
        clients = [StubClient(tag) for tag in ProviderTag]
        filters = QueryFilters(query="climate", categories=["science"])

        asyncio.run(Aggregator(clients).fetch_all(filters))

        assert all(c.calls == [filters] for c in clients)

    def test_missing_filters_default_to_empty(self) -> None:
        client = StubClient(ProviderTag.NEWSAPI)

        asyncio.run(Aggregator([client]).fetch_all())

        assert client.calls == [QueryFilters()]

    def test_failed_provider_does_not_affect_others(self) -> None:
        ok = StubClient(ProviderTag.NEWSAPI, [make_article("n1")])
        failed = StubClient(ProviderTag.GUARDIAN, status=SourceStatus.FAILED)
        aggregator = Aggregator([ok, failed])

        result = asyncio.run(aggregator.fetch_all_with_status(QueryFilters()))

        assert [a.id for a in result.articles] == ["n1"]
        assert result.failed_providers == [ProviderTag.GUARDIAN]
        assert [r.status for r in result.sources] == [SourceStatus.OK, SourceStatus.FAILED]

    def test_all_providers_empty_is_not_an_error(self) -> None:
        clients = [StubClient(tag, status=SourceStatus.FAILED) for tag in ProviderTag]

        result = asyncio.run(Aggregator(clients).fetch_all_with_status(QueryFilters()))

        assert result.articles == []
        assert len(result.sources) == 3

    def test_unconfigured_providers_yield_empty_feed(self) -> None:
        aggregator = Aggregator([
            NewsApiClient(api_key=""),
            GuardianClient(api_key=""),
            NYTimesClient(api_key="", max_pre_delay=0),
        ])

        result = asyncio.run(aggregator.fetch_all_with_status(QueryFilters()))

        assert result.articles == []
        assert {r.status for r in result.sources} == {SourceStatus.UNCONFIGURED}

    def test_providers_are_called_concurrently(self) -> None:
        # The first client blocks until the last one runs, so a sequential
        # fan-out would never finish.
        gate = asyncio.Event()
        waiting = StubClient(ProviderTag.NEWSAPI, [make_article("n1")], gate=gate)
        opening = OpeningClient(ProviderTag.GUARDIAN, [make_article("g1")], gate=gate)
        aggregator = Aggregator([waiting, opening])

        async def run():
            return await asyncio.wait_for(aggregator.fetch_all(QueryFilters()), timeout=2)

        articles = asyncio.run(run())

        assert {a.id for a in articles} == {"n1", "g1"}

    def test_reports_cancellation(self) -> None:
        token = CancellationToken()
        token.cancel()

        result = asyncio.run(Aggregator([StubClient(ProviderTag.NEWSAPI)]).fetch_all_with_status(QueryFilters(), token))

        assert result.cancelled is True

    def test_close_closes_every_client(self) -> None:
        clients = [StubClient(tag) for tag in ProviderTag]

        asyncio.run(Aggregator(clients).close())

        assert all(c.closed for c in clients)


class TestSortByDate:
    def test_unparseable_dates_sort_last_in_input_order(self) -> None:
        articles = [
            make_article("bad1", published_at="not a date"),
            make_article("old", published_at="2023-01-01T00:00:00Z"),
            make_article("bad2", published_at=""),
            make_article("new", published_at="2024-01-01T00:00:00Z"),
        ]

        assert [a.id for a in sort_by_date(articles)] == ["new", "old", "bad1", "bad2"]

    def test_equal_timestamps_keep_input_order(self) -> None:
        articles = [make_article(str(i), published_at="2024-01-01T00:00:00Z") for i in range(5)]

        assert [a.id for a in sort_by_date(articles)] == ["0", "1", "2", "3", "4"]

    def test_offset_timestamps_compare_as_instants(self) -> None:
        articles = [
            make_article("utc", published_at="2024-01-01T10:00:00Z"),
            make_article("plus2", published_at="2024-01-01T11:00:00+02:00"),
        ]

        assert [a.id for a in sort_by_date(articles)] == ["utc", "plus2"]


class TestOptions:
    def test_sources_and_categories_are_merged_without_duplicates(self) -> None:
        clients = [
            StubClient(ProviderTag.NEWSAPI, sources=["BBC News", "Reuters"], categories=["business", "science"]),
            StubClient(ProviderTag.GUARDIAN, sources=["The Guardian"], categories=["World news", "science"]),
            StubClient(ProviderTag.NYTIMES, sources=["The New York Times", "Reuters"], categories=["Politics"]),
        ]
        aggregator = Aggregator(clients)

        sources = asyncio.run(aggregator.available_sources())
        categories = asyncio.run(aggregator.available_categories())

        assert sources == ["BBC News", "Reuters", "The Guardian", "The New York Times"]
        assert categories == ["business", "science", "World news", "Politics"]
