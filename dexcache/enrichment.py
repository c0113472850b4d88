"""Shaping of upstream records into summary/detail items.

The detail path merges two upstream resources: the item record and its
species record. Alternate forms (regional variants, mega forms, ...) often have
no species record at their own id but point at their base form's species via
`species.url`; `resolve_species` tries both before giving up, and
`build_detail` fills sentinel values when neither exists.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, NamedTuple, Optional, Union

from .errors import NotFound, UpstreamUnavailable
from .schemas import Ability, DetailItem, Form, Images, Move, Stat, SummaryItem

if TYPE_CHECKING:  # pragma: no cover
    from .upstream import CatalogClient

log = logging.getLogger(__name__)

MOVES_LIMIT = 20
NO_DESCRIPTION = "No description available"
UNKNOWN = "Unknown"


class SpeciesFound(NamedTuple):
    record: Dict[str, Any]
    via: str  # "direct" or "redirect"


class SpeciesNotAvailable(NamedTuple):
    reason: str
    transient: bool = False  # an outage, not a confirmed absence


SpeciesResult = Union[SpeciesFound, SpeciesNotAvailable]


def _sprites(record: Dict[str, Any]) -> Dict[str, Any]:
    return record.get("sprites") or {}


def _artwork(sprites: Dict[str, Any]) -> Optional[str]:
    other = sprites.get("other") or {}
    return (other.get("official-artwork") or {}).get("front_default")


def _types(record: Dict[str, Any]) -> List[str]:
    return [t["type"]["name"] for t in record.get("types") or []]


def summarize(record: Dict[str, Any]) -> SummaryItem:
    """Build a SummaryItem from a raw item record.

    `image` prefers the official artwork and falls back to the default sprite.
    """
    sprites = _sprites(record)
    return SummaryItem(
        id=record["id"],
        name=record["name"],
        number=record["id"],
        image=_artwork(sprites) or sprites.get("front_default"),
        types=_types(record),
    )


async def resolve_species(
    client: "CatalogClient", record: Dict[str, Any], pokemon_id: int
) -> SpeciesResult:
    """Locate the species record for an item, never raising.

    Strategy:
      1) `pokemon-species/<id>` directly.
      2) If that fails, the `species.url` link carried by the item record.

    Args:
        client: Upstream client used for both lookups.
        record: The already-fetched item record.
        pokemon_id: Id used for the direct lookup.

    Returns:
        SpeciesFound with the record and the path that produced it, or
        SpeciesNotAvailable with a short reason.
    """
    direct_outage = False
    try:
        return SpeciesFound(await client.fetch_species(pokemon_id), "direct")
    except (NotFound, UpstreamUnavailable) as exc:
        direct_outage = isinstance(exc, UpstreamUnavailable)
        log.info("species.direct_failed id=%s err=%s", pokemon_id, exc.detail)

    redirect = (record.get("species") or {}).get("url")
    if not redirect:
        return SpeciesNotAvailable(
            "no species record and no redirect link", transient=direct_outage
        )

    try:
        return SpeciesFound(await client.fetch_url(redirect), "redirect")
    except (NotFound, UpstreamUnavailable) as exc:
        log.warning(
            "species.redirect_failed id=%s url=%s err=%s", pokemon_id, redirect, exc.detail
        )
        return SpeciesNotAvailable(
            f"redirect failed: {exc.detail}",
            transient=isinstance(exc, UpstreamUnavailable),
        )


def _english(entries: Optional[List[Dict[str, Any]]], field: str) -> Optional[str]:
    for e in entries or []:
        if (e.get("language") or {}).get("name") == "en":
            return e.get(field)
    return None


def _learn_method(move: Dict[str, Any]) -> Optional[str]:
    details = move.get("version_group_details") or []
    if not details:
        return None
    return (details[0].get("move_learn_method") or {}).get("name")


def build_detail(
    record: Dict[str, Any], species: SpeciesResult, moves_limit: int = MOVES_LIMIT
) -> DetailItem:
    """Merge an item record and its species lookup into a DetailItem.

    Height and weight arrive in decimetres and hectograms and are converted to
    metres and kilograms. Moves keep upstream order and are cut at
    `moves_limit`.
    """
    sprites = _sprites(record)
    artwork = _artwork(sprites)

    fields: Dict[str, Any] = {}
    if isinstance(species, SpeciesFound):
        sp = species.record
        fields["forms"] = [
            Form(name=v["pokemon"]["name"], is_default=bool(v.get("is_default")))
            for v in sp.get("varieties") or []
        ]
        flavor = _english(sp.get("flavor_text_entries"), "flavor_text")
        fields["description"] = flavor.replace("\f", " ") if flavor else NO_DESCRIPTION
        fields["genus"] = _english(sp.get("genera"), "genus") or UNKNOWN
        fields["habitat"] = (sp.get("habitat") or {}).get("name") or UNKNOWN
        fields["generation"] = (sp.get("generation") or {}).get("name") or UNKNOWN
    else:
        fields.update(
            forms=[],
            description=NO_DESCRIPTION,
            genus=UNKNOWN,
            habitat=UNKNOWN,
            generation=UNKNOWN,
        )

    return DetailItem(
        id=record["id"],
        name=record["name"],
        number=record["id"],
        image=artwork or sprites.get("front_default"),
        images=Images(
            front=sprites.get("front_default"),
            back=sprites.get("back_default"),
            front_shiny=sprites.get("front_shiny"),
            back_shiny=sprites.get("back_shiny"),
            artwork=artwork,
        ),
        types=_types(record),
        height=(record.get("height") or 0) / 10,
        weight=(record.get("weight") or 0) / 10,
        abilities=[
            Ability(name=a["ability"]["name"], is_hidden=bool(a.get("is_hidden")))
            for a in record.get("abilities") or []
        ],
        moves=[
            Move(name=m["move"]["name"], learn_method=_learn_method(m))
            for m in (record.get("moves") or [])[:moves_limit]
        ],
        stats=[
            Stat(name=s["stat"]["name"], value=s["base_stat"])
            for s in record.get("stats") or []
        ],
        **fields,
    )
