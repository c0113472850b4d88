"""FastAPI app, lifespan bootstrap, and HTTP routes.

Defines the application instance, the startup sequence (shared HTTP client,
TTL store and catalog service), error translation to problem+json, and the
public REST endpoints:

- GET  /                              -> redirect to Swagger UI (/docs)
- GET  /healthz, /api/health          -> liveness
- GET  /api/healthcheck               -> deep health (upstream and cache)
- POST /api/auth/{login,verify,logout}
- GET  /api/pokemons                  -> searchable, sortable, paginated listing
- GET  /api/pokemons/number/{numbers} -> lookup by listing number(s)
- GET  /api/pokemons/{id}             -> enriched detail
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
from fastapi import FastAPI, HTTPException, Query, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse, JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIASGIMiddleware
from slowapi.util import get_remote_address

from . import auth, metrics
from .catalog import CatalogService
from .errors import CatalogError, InvalidInput
from .logging_config import configure_logging
from .query import normalize, parse_numbers
from .schemas import (
    DetailItem,
    Envelope,
    HealthOut,
    HealthcheckOut,
    LoginIn,
    LoginOut,
    MessageOut,
    PageResult,
    ProblemDetail,
    SummaryItem,
    UserOut,
    VerifyIn,
    VerifyOut,
)
from .settings import settings
from .ttl_cache import INDEX_KEY, TTLStore
from .upstream import CatalogClient

configure_logging()
log = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# App
# ---------------------------------------------------------------------

app = FastAPI(title="Pokedex Aggregator", version="1.0.0")

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.RATE_LIMIT])
app.state.limiter = limiter
app.add_middleware(SlowAPIASGIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
metrics.install(app)


_STATUS_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def _problem(
    status: int,
    title: str | None = None,
    detail: str | None = None,
    instance: str | None = None,
) -> JSONResponse:
    """Return an RFC7807 problem+json response."""
    body = {
        "type": "about:blank",
        "title": title or _STATUS_TITLES.get(status, "Error"),
        "status": status,
        "detail": detail,
        "instance": instance,
    }
    return JSONResponse(
        status_code=status, content=body, media_type="application/problem+json"
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(_req: Request, exc: HTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else None
    return _problem(
        status=exc.status_code, title=_STATUS_TITLES.get(exc.status_code), detail=detail
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_req: Request, exc: RequestValidationError):
    msg = exc.errors()[0]["msg"] if exc.errors() else "Validation error"
    return _problem(status=422, title=_STATUS_TITLES[422], detail=msg)


@app.exception_handler(CatalogError)
async def catalog_error_handler(req: Request, exc: CatalogError):
    log.info(
        "route.error path=%s status=%d kind=%s detail=%s",
        req.url.path,
        exc.status_code,
        type(exc).__name__,
        exc.detail,
    )
    return _problem(
        status=exc.status_code, title=exc.title, detail=exc.detail, instance=req.url.path
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(_req: Request, exc: RateLimitExceeded):
    return _problem(status=429, detail=f"Rate limit exceeded: {exc.detail}")


# ---------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the shared upstream client and build the process-wide catalog service."""
    http = httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT)
    store = TTLStore(ttl=settings.CACHE_TTL_SECONDS)
    client = CatalogClient(
        http,
        base_url=settings.UPSTREAM_BASE_URL,
        timeout=settings.REQUEST_TIMEOUT,
        index_limit=settings.INDEX_LIMIT,
    )
    app.state.catalog = CatalogService(client, store, moves_limit=settings.MOVES_LIMIT)
    log.info(
        "startup.catalog upstream=%s ttl=%.0fs timeout=%.1fs",
        settings.UPSTREAM_BASE_URL,
        settings.CACHE_TTL_SECONDS,
        settings.REQUEST_TIMEOUT,
    )
    try:
        yield
    finally:
        await http.aclose()
        log.info("shutdown.catalog closed upstream client")


app.router.lifespan_context = lifespan


def get_catalog(request: Request) -> CatalogService:
    """FastAPI dependency returning the process-wide catalog service."""
    return request.app.state.catalog


_problem_resp = {
    "application/problem+json": {"schema": ProblemDetail.model_json_schema()},
}


def _errors(*codes: int) -> Dict[int, Dict[str, Any]]:
    return {c: {"content": _problem_resp, "model": ProblemDetail} for c in codes}


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------


@app.get("/", include_in_schema=False)
async def root(_request: Request):
    """Redirect the root path to the interactive API docs (/docs)."""
    return RedirectResponse(url=app.docs_url or "/docs", status_code=307)


@app.get("/healthz", include_in_schema=False)
async def healthz():
    """Lightweight, in-process health endpoint (no network)."""
    return {"status": "ok"}


@app.get("/api/health", response_model=HealthOut)
async def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/api/healthcheck", response_model=HealthcheckOut)
async def healthcheck(catalog: CatalogService = Depends(get_catalog)):
    """Deep health check: upstream reachability and cache state."""
    upstream_ok = await catalog.client.probe()
    stats = catalog.store.stats()
    status = "ok" if upstream_ok else "degraded"
    log.info(
        "route.healthcheck status=%s upstream_ok=%s cache_size=%d",
        status,
        upstream_ok,
        stats["size"],
    )
    return {
        "status": status,
        "upstream_ok": upstream_ok,
        "index_cached": catalog.store.is_fresh(INDEX_KEY),
        "cache_size": stats["size"],
        "cache_ttl_seconds": stats["ttl_seconds"],
    }


@app.post(
    "/api/auth/login",
    response_model=Envelope[LoginOut],
    responses=_errors(400, 401),
)
async def login(body: LoginIn):
    """Exchange the configured credentials for a bearer token."""
    auth.check_credentials(body.username, body.password)
    token = auth.issue_token(body.username)
    log.info("auth.login username=%s", body.username)
    return Envelope[LoginOut](data=LoginOut(token=token, user=UserOut(username=body.username)))


@app.post(
    "/api/auth/verify",
    response_model=Envelope[VerifyOut],
    responses=_errors(400, 401),
)
async def verify(body: VerifyIn):
    if not body.token:
        raise InvalidInput("Token is required")
    claims = auth.decode_token(body.token)
    return Envelope[VerifyOut](data=VerifyOut(user=UserOut(username=claims["username"])))


@app.post("/api/auth/logout", response_model=MessageOut)
async def logout():
    """Tokens are stateless; the client discards its copy."""
    return {"success": True, "message": "Logged out successfully"}


@app.get(
    "/api/pokemons",
    response_model=Envelope[PageResult[SummaryItem]],
    responses=_errors(401, 429, 503),
)
async def list_pokemons(
    limit: Optional[str] = Query(None, description="Page size (1-100, default 20)"),
    offset: Optional[str] = Query(None, description="Items to skip (default 0)"),
    search: Optional[str] = Query(None, description="Comma-separated name fragments"),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="name | number"),
    sort_order: Optional[str] = Query(None, alias="sortOrder", description="asc | desc"),
    _user: Dict[str, Any] = Depends(auth.require_user),
    catalog: CatalogService = Depends(get_catalog),
):
    """Return a filtered, sorted, paginated page of summaries.

    Parameters are lenient: anything unparsable falls back to its default.
    """
    query = normalize(
        {
            "limit": limit,
            "offset": offset,
            "search": search,
            "sortBy": sort_by,
            "sortOrder": sort_order,
        }
    )
    page = await catalog.list_index(query)
    return Envelope[PageResult[SummaryItem]](data=page)


@app.get(
    "/api/pokemons/number/{numbers}",
    response_model=Envelope[PageResult[SummaryItem]],
    responses=_errors(400, 401, 429, 503),
)
async def pokemons_by_number(
    numbers: str,
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    _user: Dict[str, Any] = Depends(auth.require_user),
    catalog: CatalogService = Depends(get_catalog),
):
    """Look up one or more listing numbers ("4", "004", "25,1").

    Results follow the order the numbers were given in.
    """
    wanted = parse_numbers(numbers)
    if not wanted:
        raise InvalidInput("At least one valid number is required")
    q = normalize({"limit": limit, "offset": offset})
    page = await catalog.list_by_numbers(wanted, q.limit, q.offset)
    return Envelope[PageResult[SummaryItem]](data=page)


@app.get(
    "/api/pokemons/{pokemon_id}",
    response_model=Envelope[DetailItem],
    responses=_errors(400, 401, 404, 429, 503),
)
async def pokemon_detail(
    pokemon_id: str,
    _user: Dict[str, Any] = Depends(auth.require_user),
    catalog: CatalogService = Depends(get_catalog),
):
    """Return the enriched record (species data merged when available)."""
    item = await catalog.get_detail(pokemon_id)
    return Envelope[DetailItem](data=item)
