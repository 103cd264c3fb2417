"""
Trip Resolver.

Resolves a calendar date to the id of an OPEN trip for that date, creating
the trip when none exists.

The lookup and the insert are two separate store calls. Two concurrent
resolutions for a date with no open trip can both miss the lookup and create
two OPEN trips for the same date; the trips table carries no uniqueness
constraint that would stop it.
"""

import logging
import re
from datetime import date, datetime
from typing import Union

from bancalplast.app.core.exceptions import ValidationError
from bancalplast.app.db.store import RecordStore, eq
from bancalplast.app.models.trip_enums import TripStatus

logger = logging.getLogger("bancalplast.trips")

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_trip_date(value: Union[str, date, None]) -> str:
    """
    Validate a trip date and return it as YYYY-MM-DD.

    Raises:
        ValidationError: if the value is not a real ISO calendar date.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or not _ISO_DATE_RE.match(value.strip()):
        raise ValidationError(f"Invalid trip date: {value!r}", field="trip_date", value=value)
    try:
        return date.fromisoformat(value.strip()).isoformat()
    except ValueError:
        raise ValidationError(f"Invalid trip date: {value!r}", field="trip_date", value=value)


class TripResolver:

    @staticmethod
    async def resolve(store: RecordStore, trip_date: Union[str, date]) -> str:
        """
        Return the id of the OPEN trip for trip_date, creating it if needed.

        Raises:
            ValidationError: if trip_date is not YYYY-MM-DD.
            StoreError: if either store call fails. Nothing is retried.
        """
        day = parse_trip_date(trip_date)

        found = await store.find(
            "trips",
            [eq("trip_date", day), eq("status", TripStatus.OPEN.value)],
            columns=["id"],
            limit=1,
        )
        if found:
            return found[0]["id"]

        created = await store.insert(
            "trips",
            {"trip_date": day, "status": TripStatus.OPEN.value},
            columns=["id"],
        )
        logger.info("Created open trip %s for %s", created["id"], day)
        return created["id"]


resolve_trip = TripResolver.resolve
