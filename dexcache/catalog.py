"""Aggregation service: the read-through data path behind the HTTP routes.

Composes the TTL store, the upstream client, the filter/sort/paginate engine
and the enrichment resolver. Routes stay thin and only translate HTTP
parameters into calls on `CatalogService`.
"""

import asyncio
import logging
from typing import List, Sequence, Tuple, Union

from .engine import IndexEntry, Pagination, apply_query, paginate, select_by_numbers
from .enrichment import MOVES_LIMIT, build_detail, resolve_species
from .query import NormalizedQuery, parse_id
from .schemas import DetailItem, PageResult, PaginationOut, SummaryItem
from .ttl_cache import INDEX_KEY, TTLStore, detail_key, full_detail_key
from .upstream import CatalogClient

log = logging.getLogger(__name__)


def _page(results: List[SummaryItem], p: Pagination) -> PageResult[SummaryItem]:
    return PageResult[SummaryItem](
        results=results,
        pagination=PaginationOut(
            total=p.total,
            limit=p.limit,
            offset=p.offset,
            has_next=p.has_next,
            has_prev=p.has_prev,
        ),
    )


class CatalogService:
    """Cached, searchable view over the upstream catalog.

    Args:
        client: Upstream catalog client.
        store: Process-lifetime TTL store (tests pass a fresh one).
        moves_limit: Number of moves kept on detail items.
    """

    def __init__(
        self, client: CatalogClient, store: TTLStore, moves_limit: int = MOVES_LIMIT
    ) -> None:
        self.client = client
        self.store = store
        self.moves_limit = moves_limit

    async def index(self) -> List[IndexEntry]:
        """Return the full listing, from cache when fresh."""
        return await self.store.get_or_fetch(INDEX_KEY, self.client.fetch_index)

    async def summary(self, name_or_id: Union[str, int]) -> SummaryItem:
        return await self.store.get_or_fetch(
            detail_key(name_or_id), lambda: self.client.fetch_summary(name_or_id)
        )

    async def _summaries(self, window: Sequence[IndexEntry]) -> List[SummaryItem]:
        # Fan out; gather keeps results in window order regardless of completion order
        return list(await asyncio.gather(*(self.summary(e.name) for e in window)))

    async def list_index(self, query: NormalizedQuery) -> PageResult[SummaryItem]:
        """Search, sort and paginate the listing, then resolve the window.

        Args:
            query: Normalized listing parameters.

        Returns:
            PageResult of SummaryItem for the requested window.
        """
        entries = await self.index()
        window, p = apply_query(entries, query)
        log.info(
            "catalog.list terms=%s sort=%s order=%s limit=%d offset=%d total=%d returned=%d",
            ",".join(query.search_terms) or "-",
            query.sort_by,
            query.sort_order,
            query.limit,
            query.offset,
            p.total,
            len(window),
        )
        return _page(await self._summaries(window), p)

    async def list_by_numbers(
        self, numbers: Sequence[int], limit: int, offset: int
    ) -> PageResult[SummaryItem]:
        """Look entries up by listing number, keeping the requested order.

        An empty `numbers` yields an empty page without touching upstream.
        """
        if not numbers:
            return _page([], paginate([], limit, offset)[1])

        entries = await self.index()
        window, p = select_by_numbers(entries, numbers, limit, offset)
        log.info(
            "catalog.by_numbers requested=%d matched=%d returned=%d",
            len(numbers),
            p.total,
            len(window),
        )
        return _page(await self._summaries(window), p)

    async def _build_detail(self, pokemon_id: int) -> Tuple[DetailItem, bool]:
        """Return the detail and whether it may be cached."""
        record = await self.client.fetch_primary(pokemon_id)
        species = await resolve_species(self.client, record, pokemon_id)
        log.info(
            "catalog.detail id=%d species=%s",
            pokemon_id,
            getattr(species, "via", "unavailable"),
        )
        detail = build_detail(record, species, moves_limit=self.moves_limit)
        return detail, not getattr(species, "transient", False)

    async def get_detail(self, raw_id: Union[str, int]) -> DetailItem:
        """Return the enriched record for one id.

        Raises:
            InvalidId: `raw_id` is not a positive integer.
            NotFound: Upstream has no item with this id.
            UpstreamUnavailable: The primary record could not be fetched.
        """
        pokemon_id = parse_id(raw_id)
        cacheable = True

        async def fetch() -> DetailItem:
            nonlocal cacheable
            detail, cacheable = await self._build_detail(pokemon_id)
            return detail

        # A detail degraded by a species outage is served but not stored.
        return await self.store.get_or_fetch(
            full_detail_key(pokemon_id), fetch, keep=lambda _detail: cacheable
        )
