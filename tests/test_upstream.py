"""Upstream client tests (httpx mocked with respx).

Exercises:
* Listing numbering and the single capped listing call
* 404 -> NotFound, 5xx/timeout/transport/bad JSON -> UpstreamUnavailable
* No retries on failure
* Health probe true/false paths
"""

import httpx
import pytest
from httpx import Response

from dexcache.engine import IndexEntry
from dexcache.errors import NotFound, UpstreamUnavailable

from conftest import BASE, listing, make_pokemon


@pytest.mark.asyncio
async def test_fetch_index_numbers_by_position(upstream, respx_mocked):
    route = respx_mocked.get("/pokemon").mock(
        return_value=Response(200, json=listing(["bulbasaur", "ivysaur", "venusaur"]))
    )

    entries = await upstream.fetch_index()

    assert entries == [
        IndexEntry("bulbasaur", 1, f"{BASE}/pokemon/1/"),
        IndexEntry("ivysaur", 2, f"{BASE}/pokemon/2/"),
        IndexEntry("venusaur", 3, f"{BASE}/pokemon/3/"),
    ]
    assert route.call_count == 1
    assert route.calls.last.request.url.params["limit"] == "1500"


@pytest.mark.asyncio
async def test_fetch_index_empty_results(upstream, respx_mocked):
    respx_mocked.get("/pokemon").mock(return_value=Response(200, json={"results": []}))
    assert await upstream.fetch_index() == []


@pytest.mark.asyncio
async def test_fetch_summary_shapes_record(upstream, respx_mocked):
    respx_mocked.get("/pokemon/pikachu").mock(
        return_value=Response(200, json=make_pokemon(25, "pikachu", types=["electric"]))
    )

    item = await upstream.fetch_summary("pikachu")

    assert item.id == 25
    assert item.number == 25
    assert item.name == "pikachu"
    assert item.types == ["electric"]
    assert item.image == "https://img.test/artwork/25.png"


@pytest.mark.asyncio
async def test_fetch_summary_falls_back_to_front_sprite(upstream, respx_mocked):
    respx_mocked.get("/pokemon/missingno").mock(
        return_value=Response(200, json=make_pokemon(0, "missingno", artwork=False))
    )
    item = await upstream.fetch_summary("missingno")
    assert item.image == "https://img.test/sprites/0.png"


@pytest.mark.asyncio
async def test_404_is_not_found(upstream, respx_mocked):
    respx_mocked.get("/pokemon/99999").mock(return_value=Response(404, text="Not Found"))
    with pytest.raises(NotFound):
        await upstream.fetch_primary(99999)


@pytest.mark.asyncio
async def test_5xx_is_unavailable_with_status_and_no_retry(upstream, respx_mocked):
    route = respx_mocked.get("/pokemon").mock(return_value=Response(502))

    with pytest.raises(UpstreamUnavailable) as excinfo:
        await upstream.fetch_index()

    assert excinfo.value.upstream_status == 502
    assert "502" in excinfo.value.detail
    assert route.call_count == 1  # surfaced immediately


@pytest.mark.asyncio
async def test_429_is_unavailable(upstream, respx_mocked):
    respx_mocked.get("/pokemon/1").mock(return_value=Response(429))
    with pytest.raises(UpstreamUnavailable) as excinfo:
        await upstream.fetch_primary(1)
    assert excinfo.value.upstream_status == 429


@pytest.mark.asyncio
async def test_timeout_is_unavailable(upstream, respx_mocked):
    respx_mocked.get("/pokemon").mock(side_effect=httpx.ReadTimeout("slow"))
    with pytest.raises(UpstreamUnavailable) as excinfo:
        await upstream.fetch_index()
    assert "timed out" in excinfo.value.detail


@pytest.mark.asyncio
async def test_transport_error_is_unavailable(upstream, respx_mocked):
    respx_mocked.get("/pokemon").mock(side_effect=httpx.ConnectError("refused"))
    with pytest.raises(UpstreamUnavailable):
        await upstream.fetch_index()


@pytest.mark.asyncio
async def test_invalid_json_is_unavailable(upstream, respx_mocked):
    respx_mocked.get("/pokemon-species/1").mock(
        return_value=Response(200, text="<html>oops</html>")
    )
    with pytest.raises(UpstreamUnavailable):
        await upstream.fetch_species(1)


@pytest.mark.asyncio
async def test_fetch_url_follows_absolute_link(upstream, respx_mocked):
    route = respx_mocked.get("/pokemon-species/26/").mock(
        return_value=Response(200, json={"id": 26})
    )
    assert await upstream.fetch_url(f"{BASE}/pokemon-species/26/") == {"id": 26}
    assert route.called


@pytest.mark.asyncio
async def test_probe_true_and_false(upstream, respx_mocked):
    route = respx_mocked.get("/").mock(return_value=Response(200, json={}))
    assert await upstream.probe() is True

    route.mock(side_effect=httpx.ConnectError("down"))
    assert await upstream.probe() is False
