"""
Grouping/summary engine for pallet lists.

Turns a flat list of pallets into trip-date groups for the office views:

* pallets without a trip land in the NO_TRIP group, which always comes first;
* dated groups follow in ascending date order;
* inside a group pallets are ordered by client, then pallet number;
* every group carries pallet/bobbin totals and one summary row per client.

The engine is pure: the same input, in any order, gives the same output.
"""

from collections import defaultdict
from datetime import date
from typing import Any, Callable, Iterable, List, Optional, Union

from pydantic import BaseModel

from bancalplast.app.schemas.pallet import PalletRecord

NO_TRIP = "NONE"

TripDateOf = Callable[[Any], Optional[Union[str, date]]]


class ClientSummary(BaseModel):
    client: str
    pallets: int
    bobbins: int


class TripGroup(BaseModel):
    key: str
    trip_date: Optional[date] = None
    trip_ids: List[str] = []
    pallets: List[PalletRecord]
    total_pallets: int
    total_bobbins: int
    clients: List[ClientSummary]


def _text_key(value: str):
    return (value.casefold(), value)


def pallet_sort_key(pallet):
    return (_text_key(pallet.client), _text_key(pallet.pallet_no), str(pallet.id))


def _group_sort_key(key: str):
    # NO_TRIP sorts before every ISO date
    return (key != NO_TRIP, key)


def _date_key(value: Optional[Union[str, date]]) -> str:
    if value is None or value == "":
        return NO_TRIP
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def default_trip_date_of(pallet) -> Optional[Union[str, date]]:
    return pallet.trip_date


def summarize_clients(pallets: Iterable) -> List[ClientSummary]:
    counts = defaultdict(lambda: [0, 0])
    for pallet in pallets:
        row = counts[pallet.client]
        row[0] += 1
        row[1] += pallet.bobbins_count or 0
    return [
        ClientSummary(client=client, pallets=n, bobbins=bobbins)
        for client, (n, bobbins) in sorted(counts.items(), key=lambda item: _text_key(item[0]))
    ]


def group_by_trip_then_client(
    pallets: Iterable,
    trip_date_of: TripDateOf = default_trip_date_of,
) -> List[TripGroup]:
    """
    Group pallets by resolved trip date.

    Args:
        pallets: PalletRecord items
        trip_date_of: returns the trip date of a pallet, or None when it has
            no trip

    Returns:
        Ordered list of TripGroup
    """
    buckets = defaultdict(list)
    for pallet in pallets:
        buckets[_date_key(trip_date_of(pallet))].append(pallet)

    groups = []
    for key in sorted(buckets, key=_group_sort_key):
        members = sorted(buckets[key], key=pallet_sort_key)
        trip_ids = sorted({p.trip_id for p in members if getattr(p, "trip_id", None)})
        groups.append(
            TripGroup(
                key=key,
                trip_date=None if key == NO_TRIP else date.fromisoformat(key),
                trip_ids=trip_ids,
                pallets=members,
                total_pallets=len(members),
                total_bobbins=sum(p.bobbins_count or 0 for p in members),
                clients=summarize_clients(members),
            )
        )
    return groups


def matches_query(pallet, query: Optional[str]) -> bool:
    """Case-insensitive substring search over client, pallet number and dimensions."""
    q = (query or "").strip().lower()
    if not q:
        return True
    return (
        q in pallet.client.lower()
        or q in pallet.pallet_no.lower()
        or q in (pallet.dimensions or "").lower()
    )
