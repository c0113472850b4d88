"""Error taxonomy for the catalog aggregation layer.

Each error carries the HTTP status it maps to so the FastAPI exception
handlers in `main` can render it as problem+json without a lookup table.
"""

from typing import Optional


class CatalogError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    title: str = "Internal Server Error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class InvalidInput(CatalogError):
    """Malformed or missing caller parameters (never retried)."""

    status_code = 400
    title = "Bad Request"


class InvalidId(InvalidInput):
    """An entity id that is not a positive integer."""


class NotFound(CatalogError):
    """Upstream confirmed that a specific entity does not exist."""

    status_code = 404
    title = "Not Found"


class UpstreamUnavailable(CatalogError):
    """Network error, timeout or non-404 error status from upstream.

    Args:
        detail: Human-readable summary.
        upstream_status: HTTP status returned by upstream, if any.
        url: The upstream URL that failed (diagnostics only).
    """

    status_code = 503
    title = "Service Unavailable"

    def __init__(
        self,
        detail: str,
        upstream_status: Optional[int] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(detail)
        self.upstream_status = upstream_status
        self.url = url


class AuthError(CatalogError):
    status_code = 401
    title = "Unauthorized"


class Unauthenticated(AuthError):
    """No bearer token was presented."""


class TokenInvalid(AuthError):
    """Bearer token failed signature or expiry checks."""
