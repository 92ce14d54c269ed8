"""Search page state: filters, price range and cursor pagination."""

import logging
from decimal import Decimal

import httpx

from stayhub.client.api import StayHubClient
from stayhub.schemas.property import PropertyFilter, PropertyResponse

logger = logging.getLogger(__name__)

DEFAULT_PRICE_RANGE = (0, 1000)
DEFAULT_PAGE_SIZE = 8


class SearchFilters(PropertyFilter):
    """Search constraints as edited in the UI, plus the free-text term."""

    search_term: str | None = None


class SearchController:
    """Holds the visible result list and pages through it.

    Read failures never raise: they are logged, ``error`` is set and the
    current list is left as it was.
    """

    def __init__(self, client: StayHubClient, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self.client = client
        self.page_size = page_size
        self.filters = SearchFilters()
        self.price_range: tuple[float, float] = DEFAULT_PRICE_RANGE
        self.cursor: str | None = None
        self.properties: list[PropertyResponse] = []
        self.loading = False
        self.has_more = True
        self.error: str | None = None
        self._fetched = False

    @property
    def is_empty(self) -> bool:
        """A completed search with no results (not an error state)."""
        return self._fetched and not self.loading and not self.properties

    async def _fetch_page(self, filters: SearchFilters, cursor: str | None):
        return await self.client.search_properties(
            filters,
            q=filters.search_term,
            cursor=cursor,
            page_size=self.page_size,
        )

    async def fetch(self, filters: SearchFilters | None = None) -> None:
        """Load the first page for ``filters`` (or the current filters)."""
        if filters is not None:
            self.filters = filters
        self.loading = True
        self.error = None
        try:
            page = await self._fetch_page(self.filters, None)
        except httpx.HTTPError as exc:
            logger.error("Error fetching properties: %s", exc)
            self.error = "Failed to load properties"
            return
        finally:
            self.loading = False

        self.properties = list(page.items)
        self.cursor = page.next_cursor
        self.has_more = len(page.items) == self.page_size
        self._fetched = True

    async def load_more(self) -> None:
        if self.loading or not self.has_more:
            return

        self.loading = True
        self.error = None
        try:
            page = await self._fetch_page(self.filters, self.cursor)
        except httpx.HTTPError as exc:
            logger.error("Error loading more properties: %s", exc)
            self.error = "Failed to load more properties"
            return
        finally:
            self.loading = False

        self.properties = [*self.properties, *page.items]
        self.cursor = page.next_cursor
        self.has_more = len(page.items) == self.page_size

    async def apply_filters(self) -> None:
        low, high = self.price_range
        self.filters = self.filters.model_copy(update={"min_price": Decimal(str(low)), "max_price": Decimal(str(high))})
        await self.fetch(self.filters)

    async def clear_filters(self) -> None:
        self.filters = SearchFilters()
        self.price_range = DEFAULT_PRICE_RANGE
        await self.fetch(self.filters)

    # ------------------------------------------------------------------
    # Setters (take effect on the next fetch / apply)
    # ------------------------------------------------------------------

    def set_search_term(self, term: str | None) -> None:
        self.filters = self.filters.model_copy(update={"search_term": term or None})

    def set_bedrooms(self, bedrooms: int | None) -> None:
        """``None`` means "any"."""
        self.filters = self.filters.model_copy(update={"bedrooms": bedrooms})

    def set_bathrooms(self, bathrooms: int | None) -> None:
        self.filters = self.filters.model_copy(
            update={"bathrooms": Decimal(bathrooms) if bathrooms is not None else None}
        )

    def set_property_type(self, property_type: str | None) -> None:
        self.filters = self.filters.model_copy(update={"property_type": property_type or None})

    def set_price_range(self, low: float, high: float) -> None:
        self.price_range = (low, high)
