"""Normalization of untrusted listing parameters.

Everything here is pure: raw query-string values go in, a `NormalizedQuery`
(or a tuple of numbers) comes out. Listing parameters never raise; bad values
fall back to defaults. Only entity ids are strict (`parse_id`).
"""

import re
from typing import Any, Mapping, NamedTuple, Optional, Tuple

from .errors import InvalidId

DEFAULT_LIMIT = 20
MAX_LIMIT = 100

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_STRICT_ID = re.compile(r"^\d+$")


class NormalizedQuery(NamedTuple):
    """Validated listing parameters for one request."""

    limit: int = DEFAULT_LIMIT
    offset: int = 0
    search_terms: Tuple[str, ...] = ()
    sort_by: str = "number"
    sort_order: str = "asc"


def parse_int(value: Any) -> Optional[int]:
    """Leniently parse an integer prefix ("12abc" -> 12, "abc" -> None)."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    m = _LEADING_INT.match(str(value))
    return int(m.group(1)) if m else None


def parse_search(raw: Any) -> Tuple[str, ...]:
    """Split a comma-separated search string into unique lowercase terms."""
    if not raw:
        return ()
    terms = []
    for part in str(raw).split(","):
        term = part.strip().lower()
        if term and term not in terms:
            terms.append(term)
    return tuple(terms)


def normalize(raw: Mapping[str, Any]) -> NormalizedQuery:
    """Coerce raw listing parameters into a `NormalizedQuery`.

    Args:
        raw: Mapping of query-string values (`limit`, `offset`, `search`,
            `sortBy`, `sortOrder`); missing keys are allowed.

    Returns:
        A NormalizedQuery with `1 <= limit <= 100` and `offset >= 0`.
    """
    limit = parse_int(raw.get("limit")) or DEFAULT_LIMIT
    limit = max(1, min(limit, MAX_LIMIT))

    offset = parse_int(raw.get("offset")) or 0
    offset = max(0, offset)

    sort_by = "name" if raw.get("sortBy") == "name" else "number"
    sort_order = "desc" if raw.get("sortOrder") == "desc" else "asc"

    return NormalizedQuery(
        limit=limit,
        offset=offset,
        search_terms=parse_search(raw.get("search")),
        sort_by=sort_by,
        sort_order=sort_order,
    )


def parse_numbers(raw: Any) -> Tuple[int, ...]:
    """Parse a comma-separated number list, preserving first-seen order.

    Zero-padded values collapse to the same number ("004" == "4");
    unparsable segments are dropped.
    """
    numbers = []
    for part in str(raw or "").split(","):
        n = parse_int(part.strip())
        if n is not None and n not in numbers:
            numbers.append(n)
    return tuple(numbers)


def parse_id(raw: Any) -> int:
    """Validate an entity id.

    Raises:
        InvalidId: If `raw` is not a positive integer.
    """
    text = str(raw).strip() if raw is not None else ""
    if not _STRICT_ID.match(text) or int(text) <= 0:
        raise InvalidId("Valid Pokemon ID is required")
    return int(text)
