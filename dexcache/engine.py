"""In-memory filter/sort/paginate over the cached catalog index.

The index is small (a few thousand entries), so every request works on a
fresh list derived from the cached one; the cached list itself is never
reordered or mutated.
"""

from typing import Iterable, List, NamedTuple, Sequence, Tuple

from .query import NormalizedQuery


class IndexEntry(NamedTuple):
    """One row of the upstream listing.

    Attributes:
        name: Canonical upstream name (e.g. "bulbasaur").
        number: 1-based position in the upstream listing.
        source_ref: Upstream detail URL for the entry.
    """

    name: str
    number: int
    source_ref: str


class Pagination(NamedTuple):
    total: int
    limit: int
    offset: int
    has_next: bool
    has_prev: bool


def filter_entries(entries: Iterable[IndexEntry], terms: Sequence[str]) -> List[IndexEntry]:
    """Keep entries whose lowercased name contains any of `terms`.

    An empty `terms` keeps everything.
    """
    if not terms:
        return list(entries)
    return [e for e in entries if any(t in e.name.lower() for t in terms)]


def _name_key(e: IndexEntry) -> Tuple[str, str]:
    # Case-insensitive first, raw name breaks ties deterministically
    return (e.name.casefold(), e.name)


def _number_key(e: IndexEntry) -> int:
    return e.number


def sort_entries(entries: List[IndexEntry], sort_by: str, sort_order: str) -> List[IndexEntry]:
    """Return a stably sorted copy of `entries`.

    Args:
        entries: Entries to sort (not modified).
        sort_by: "name" or "number".
        sort_order: "asc" or "desc".
    """
    key = _name_key if sort_by == "name" else _number_key
    return sorted(entries, key=key, reverse=(sort_order == "desc"))


def paginate(entries: Sequence[IndexEntry], limit: int, offset: int) -> Tuple[List[IndexEntry], Pagination]:
    """Slice a window out of `entries` and compute pagination metadata."""
    total = len(entries)
    window = list(entries[offset : offset + limit])
    return window, Pagination(
        total=total,
        limit=limit,
        offset=offset,
        has_next=offset + limit < total,
        has_prev=offset > 0,
    )


def apply_query(entries: Sequence[IndexEntry], query: NormalizedQuery) -> Tuple[List[IndexEntry], Pagination]:
    """Filter, sort and paginate the full index for one listing request."""
    filtered = filter_entries(entries, query.search_terms)
    ordered = sort_entries(filtered, query.sort_by, query.sort_order)
    return paginate(ordered, query.limit, query.offset)


def select_by_numbers(
    entries: Sequence[IndexEntry],
    numbers: Sequence[int],
    limit: int,
    offset: int,
) -> Tuple[List[IndexEntry], Pagination]:
    """Pick entries by listing number, in the order the numbers were requested.

    `select_by_numbers(idx, [25, 1], ...)` yields entry 25 before entry 1.
    Numbers with no matching entry are skipped.
    """
    by_number = {e.number: e for e in entries}
    picked = [by_number[n] for n in dict.fromkeys(numbers) if n in by_number]
    return paginate(picked, limit, offset)
