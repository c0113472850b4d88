# --- keep this shim at the very top ---
import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
# --------------------------------------

# Generous limit so the shared in-memory limiter never trips across the suite
os.environ.setdefault("RATE_LIMIT", "10000/minute")

import json
import pathlib
from typing import Any, Dict, Iterable, List, Optional

import httpx
import pytest
import pytest_asyncio
import respx

from dexcache import auth
from dexcache.catalog import CatalogService
from dexcache.ttl_cache import TTLStore
from dexcache.upstream import CatalogClient

import dexcache.main as app_main  # patch names bound inside main.py

BASE = "https://pokeapi.test/api/v2"
FIXTURES = pathlib.Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> dict:
    return json.loads((FIXTURES / name).read_text(encoding="utf-8"))


def listing(names: Iterable[str]) -> Dict[str, Any]:
    """Build an upstream listing payload; position defines the number."""
    results = [
        {"name": n, "url": f"{BASE}/pokemon/{i}/"} for i, n in enumerate(names, start=1)
    ]
    return {"count": len(results), "next": None, "previous": None, "results": results}


def make_pokemon(
    pid: int,
    name: str,
    types: Iterable[str] = ("normal",),
    species_url: Optional[str] = None,
    artwork: bool = True,
) -> Dict[str, Any]:
    """Minimal upstream item record."""
    other = (
        {"official-artwork": {"front_default": f"https://img.test/artwork/{pid}.png"}}
        if artwork
        else {}
    )
    rec: Dict[str, Any] = {
        "id": pid,
        "name": name,
        "height": 10,
        "weight": 100,
        "sprites": {
            "front_default": f"https://img.test/sprites/{pid}.png",
            "back_default": None,
            "front_shiny": None,
            "back_shiny": None,
            "other": other,
        },
        "types": [{"slot": i, "type": {"name": t}} for i, t in enumerate(types, 1)],
        "abilities": [],
        "moves": [],
        "stats": [],
    }
    if species_url is not None:
        rec["species"] = {"name": name, "url": species_url}
    return rec


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> TTLStore:
    """Fresh store per test; nothing leaks between tests."""
    return TTLStore(ttl=300.0, timer=clock)


@pytest.fixture
def respx_mocked():
    """respx router scoped to the fake upstream base URL."""
    with respx.mock(base_url=BASE, assert_all_called=False) as router:
        yield router


@pytest.fixture
def mock_upstream(respx_mocked):
    """Install listing + per-name item routes from plain data.

    Usage:
        mock_upstream(["bulbasaur", "ivysaur"])

    Returns:
        A function(names, records=None) -> respx route for the listing. Item
        routes answer /pokemon/<name>, with `records` overriding the default body.
    """

    def _install(names: List[str], records: Optional[Dict[str, dict]] = None):
        records = records or {}
        index_route = respx_mocked.get("/pokemon").mock(
            return_value=httpx.Response(200, json=listing(names))
        )
        for i, n in enumerate(names, start=1):
            rec = records.get(n) or make_pokemon(i, n)
            respx_mocked.get(f"/pokemon/{n}", name=f"pokemon-{n}").mock(
                return_value=httpx.Response(200, json=rec)
            )
        return index_route

    return _install


@pytest_asyncio.fixture
async def http():
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def upstream(http) -> CatalogClient:
    return CatalogClient(http, base_url=BASE, timeout=1.0)


@pytest.fixture
def catalog(upstream, store) -> CatalogService:
    return CatalogService(upstream, store)


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {auth.issue_token('admin')}"}


@pytest_asyncio.fixture
async def test_client(catalog):
    """ASGI client bound to the app with the test catalog injected (no lifespan)."""
    app_main.app.dependency_overrides[app_main.get_catalog] = lambda: catalog
    transport = httpx.ASGITransport(app=app_main.app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as c:
        yield c
    app_main.app.dependency_overrides.pop(app_main.get_catalog, None)
