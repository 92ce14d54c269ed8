"""Tests for the client SearchController."""

from datetime import timedelta
from decimal import Decimal

import httpx
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import make_property
from stayhub.client.api import StayHubClient
from stayhub.client.search import DEFAULT_PRICE_RANGE, SearchController, SearchFilters
from stayhub.database import utcnow
from stayhub.models.user import User


@pytest_asyncio.fixture
async def listings(db_session: AsyncSession, test_user: User):
    return [
        await make_property(db_session, test_user, title="Small studio by the river", bedrooms=1),
        await make_property(db_session, test_user, title="Family house with garden", bedrooms=3, property_type="House"),
        await make_property(db_session, test_user, title="Rustic mountain cabin retreat", bedrooms=2, price=Decimal("900")),
    ]


class TestSearchController:
    async def test_fetch_then_load_more(self, sdk: StayHubClient, listings):
        search = SearchController(sdk, page_size=2)
        assert not search.is_empty

        await search.fetch()
        assert len(search.properties) == 2
        assert search.has_more is True
        assert search.cursor is not None

        await search.load_more()
        assert len(search.properties) == 3
        assert search.has_more is False
        assert len({p.id for p in search.properties}) == 3

        # Nothing left: no request, no change.
        await search.load_more()
        assert len(search.properties) == 3

    async def test_fetch_filters_carry_into_load_more(
        self, sdk: StayHubClient, db_session: AsyncSession, test_user: User
    ):
        base = utcnow() - timedelta(hours=1)
        for i, kind in enumerate(("House", "Apartment", "House")):
            await make_property(db_session, test_user, property_type=kind, created_at=base + timedelta(seconds=i))

        search = SearchController(sdk, page_size=1)
        await search.fetch(SearchFilters(property_type="House"))
        await search.load_more()
        await search.load_more()

        assert search.filters.property_type == "House"
        assert [p.property_type for p in search.properties] == ["House", "House"]
        assert search.has_more is False

    async def test_load_more_ignored_while_loading(self):
        requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"items": [], "next_cursor": None})

        async with StayHubClient("http://testserver", transport=httpx.MockTransport(record)) as api:
            search = SearchController(api)
            search.loading = True
            await search.load_more()

        assert requests == []
        assert search.properties == []
        assert search.loading is True

    async def test_newest_first(self, sdk: StayHubClient, listings):
        search = SearchController(sdk)
        await search.fetch()
        assert [p.id for p in search.properties] == [p.id for p in reversed(listings)]
        assert search.has_more is False

    async def test_apply_filters(self, sdk: StayHubClient, listings):
        search = SearchController(sdk)
        search.set_bedrooms(2)
        search.set_price_range(0, 500)
        await search.apply_filters()

        assert search.filters.min_price == Decimal("0")
        assert search.filters.max_price == Decimal("500")
        assert [p.title for p in search.properties] == ["Family house with garden"]

    async def test_property_type_and_term(self, sdk: StayHubClient, listings):
        search = SearchController(sdk)
        search.set_property_type("House")
        await search.apply_filters()
        assert [p.property_type for p in search.properties] == ["House"]

        search.set_property_type(None)
        search.set_search_term("mountain")
        search.set_price_range(0, 500)
        await search.apply_filters()
        assert search.properties == []
        assert search.is_empty

        search.set_price_range(0, 1000)
        await search.apply_filters()
        assert [p.title for p in search.properties] == ["Rustic mountain cabin retreat"]

    async def test_clear_filters(self, sdk: StayHubClient, listings):
        search = SearchController(sdk)
        search.set_property_type("Cabin")
        await search.apply_filters()
        assert search.is_empty

        await search.clear_filters()
        assert search.filters == SearchFilters()
        assert search.price_range == DEFAULT_PRICE_RANGE
        assert len(search.properties) == 3

    async def test_fetch_error_is_absorbed(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"detail": "boom"}))
        async with StayHubClient("http://testserver", transport=transport) as broken:
            search = SearchController(broken)
            await search.fetch()

        assert search.error == "Failed to load properties"
        assert search.properties == []
        assert search.loading is False
        assert not search.is_empty
