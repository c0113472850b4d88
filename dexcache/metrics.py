import time
from fastapi import FastAPI, Request, Response
from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# --- Metric objects ---
REQUESTS = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["path", "method", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_latency_seconds",
    "Request latency seconds",
    labelnames=["path", "method"],
)
CACHE_LOOKUPS = Counter(
    "catalog_cache_lookups_total",
    "Read-through cache lookups",
    labelnames=["kind", "result"],
)
UPSTREAM_REQUESTS = Counter(
    "upstream_requests_total",
    "Requests issued to the upstream catalog",
    labelnames=["endpoint", "outcome"],
)


def _key_kind(key: str) -> str:
    """Collapse a cache key to a low-cardinality label ("detail:pikachu" -> "detail")."""
    if key == "all-index":
        return "index"
    return key.split(":", 1)[0]


# --- Public helpers ---
def record_cache_lookup(key: str, hit: bool) -> None:
    CACHE_LOOKUPS.labels(kind=_key_kind(key), result="hit" if hit else "miss").inc()


def record_upstream(endpoint: str, outcome: str) -> None:
    UPSTREAM_REQUESTS.labels(endpoint=endpoint, outcome=outcome).inc()


# --- Installation: middleware + /metrics endpoint ---
def install(app: FastAPI) -> None:
    @app.middleware("http")
    async def _metrics_mw(request: Request, call_next):
        t0 = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            # Route template keeps /api/pokemons/25 and /api/pokemons/26 on one label
            route = request.scope.get("route")
            path = getattr(route, "path", request.url.path)
            REQUEST_LATENCY.labels(path=path, method=request.method).observe(
                time.perf_counter() - t0
            )
            REQUESTS.labels(path=path, method=request.method, status=str(status)).inc()

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
