"""Client for the upstream creature catalog (PokeAPI).

Only the three resources the aggregation layer needs are covered: the full
listing, per-item records and species records. Failures are classified into
`NotFound` and `UpstreamUnavailable` and surfaced immediately; there are no
retries here because the read-through cache is the only load mitigation.
"""

import logging
from typing import Any, Dict, List, Optional, Union

import httpx

from . import metrics
from .engine import IndexEntry
from .enrichment import summarize
from .errors import NotFound, UpstreamUnavailable
from .schemas import SummaryItem

log = logging.getLogger(__name__)

BASE_URL = "https://pokeapi.co/api/v2"
INDEX_LIMIT = 1500
REQUEST_TIMEOUT = 10.0


class CatalogClient:
    """Thin async wrapper over the upstream REST endpoints.

    Args:
        http: Shared `httpx.AsyncClient` (owned by the caller).
        base_url: Upstream API root, without trailing slash.
        timeout: Per-request timeout in seconds.
        index_limit: Number of entries requested from the listing endpoint.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str = BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        index_limit: int = INDEX_LIMIT,
    ) -> None:
        self._http = http
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.index_limit = index_limit

    async def _get_json(
        self, url: str, endpoint: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """GET `url` and decode JSON, classifying every failure.

        Raises:
            NotFound: Upstream answered 404.
            UpstreamUnavailable: Transport error, timeout, other error status,
                or a body that is not JSON.
        """
        try:
            r = await self._http.get(url, params=params, timeout=self.timeout)
        except httpx.TimeoutException as exc:
            metrics.record_upstream(endpoint, "timeout")
            log.warning("upstream.timeout url=%s err=%r", url, exc)
            raise UpstreamUnavailable("Upstream API timed out", url=url) from exc
        except httpx.HTTPError as exc:
            metrics.record_upstream(endpoint, "error")
            log.warning("upstream.error url=%s err=%r", url, exc)
            raise UpstreamUnavailable("Upstream API unavailable", url=url) from exc

        if r.status_code == 404:
            metrics.record_upstream(endpoint, "not_found")
            log.info("upstream.not_found url=%s", url)
            raise NotFound("Pokemon not found")

        if r.status_code >= 400:
            metrics.record_upstream(endpoint, "error")
            log.warning("upstream.bad_status url=%s status=%d", url, r.status_code)
            raise UpstreamUnavailable(
                f"External API error: {r.status_code} {r.reason_phrase}".strip(),
                upstream_status=r.status_code,
                url=url,
            )

        try:
            data = r.json()
        except ValueError as exc:
            metrics.record_upstream(endpoint, "error")
            log.warning("upstream.bad_json url=%s err=%r", url, exc)
            raise UpstreamUnavailable(
                "Upstream API returned invalid JSON", upstream_status=r.status_code, url=url
            ) from exc

        metrics.record_upstream(endpoint, "ok")
        return data

    # -----------------------------------------------------------------
    # Public functions
    # -----------------------------------------------------------------

    async def fetch_index(self) -> List[IndexEntry]:
        """Fetch the full listing in one call and number it by position.

        Returns:
            IndexEntry list in upstream order; `number` is 1-based.
        """
        data = await self._get_json(
            f"{self.base_url}/pokemon", "index", params={"limit": self.index_limit}
        )
        results = (data or {}).get("results") or []
        entries = [
            IndexEntry(name=p["name"], number=i, source_ref=p.get("url", ""))
            for i, p in enumerate(results, start=1)
        ]
        log.info("upstream.index fetched=%d", len(entries))
        return entries

    async def fetch_primary(self, name_or_id: Union[str, int]) -> Dict[str, Any]:
        """Fetch the raw item record (sprites, types, stats, ...)."""
        return await self._get_json(f"{self.base_url}/pokemon/{name_or_id}", "pokemon")

    async def fetch_summary(self, name_or_id: Union[str, int]) -> SummaryItem:
        return summarize(await self.fetch_primary(name_or_id))

    async def fetch_species(self, pokemon_id: int) -> Dict[str, Any]:
        """Fetch the species record addressed by the item id (may 404)."""
        return await self._get_json(
            f"{self.base_url}/pokemon-species/{pokemon_id}", "species"
        )

    async def fetch_url(self, url: str) -> Dict[str, Any]:
        """Fetch an absolute upstream URL embedded in another record."""
        return await self._get_json(url, "species")

    async def probe(self) -> bool:
        """Lightweight upstream reachability check for health endpoints.

        Returns:
            True if the API root answers 200, otherwise False.
        """
        try:
            r = await self._http.get(f"{self.base_url}/", timeout=5.0)
            return r.status_code == 200
        except httpx.HTTPError as exc:
            log.debug("upstream.probe_failed err=%r", exc)
            return False
