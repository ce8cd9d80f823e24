"""
Scheduling conflict detection.

Finds other shows at the same venue starting within a window (48 hours by
default) either side of a candidate start time. Advisory only: nothing here
blocks show or offer creation.

Candidate times without an offset are read as wall-clock time at the venue,
using the zone rules in force on the candidate date, so a show entered in
summer for a winter date gets the winter offset.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.ext.asyncio import AsyncSession

from .core.config import get_settings
from .core.errors import InvalidArgumentError
from .schemas import NearbyShowOut, NearbyShowsResponse
from .tenancy import TenantContext, get_venue, list_shows_at_venue_between


logger = logging.getLogger(__name__)


def get_zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidArgumentError("timezone", f"Unknown time zone: {tz_name}")


def resolve_instant(value: datetime, tz_name: str) -> datetime:
    """Return `value` as an aware UTC instant, reading naive values in the venue's zone."""
    if value.tzinfo is None or value.utcoffset() is None:
        value = value.replace(tzinfo=get_zone(tz_name))
    return value.astimezone(timezone.utc)


def utc_offset_minutes(instant: datetime, tz_name: str) -> int:
    """Offset of the venue's zone at `instant`, in minutes east of UTC."""
    offset = instant.astimezone(get_zone(tz_name)).utcoffset()
    if not offset:
        return 0
    return int(offset.total_seconds() // 60)


def with_offset(instant_utc: datetime, offset_minutes: int) -> datetime:
    """Express a UTC instant in a fixed offset (the one stored with the show)."""
    return instant_utc.astimezone(timezone(timedelta(minutes=offset_minutes)))


async def find_nearby_shows(
    session: AsyncSession,
    ctx: TenantContext,
    venue_key: uuid.UUID,
    candidate_start: datetime,
    *,
    exclude_show_key: Optional[uuid.UUID] = None,
) -> NearbyShowsResponse:
    """
    List shows at a venue starting within +/- the nearby window of `candidate_start`.

    The window is inclusive at both ends. Results are ordered by start time;
    an empty list is a normal outcome.
    """
    settings = get_settings()
    window = timedelta(hours=settings.nearby_window_hours)

    venue = await get_venue(session, ctx, venue_key)
    reference = resolve_instant(candidate_start, venue.timezone)

    rows = await list_shows_at_venue_between(
        session, ctx, venue.id, reference - window, reference + window
    )
    shows = [
        NearbyShowOut(
            show_key=show.public_id,
            act_name=act_name,
            start_time=with_offset(show.start_at_utc, show.start_utc_offset_minutes),
        )
        for show, act_name in rows
        if show.public_id != exclude_show_key
    ]

    hours = settings.nearby_window_hours
    if shows:
        message = f"{len(shows)} show(s) found within {hours} hours"
    else:
        message = f"No other shows scheduled at this venue within {hours} hours"

    logger.debug(f"Nearby shows for venue {venue.public_id} at {reference.isoformat()}: {len(shows)}")
    return NearbyShowsResponse(
        venue_key=venue.public_id,
        venue_name=venue.name,
        reference_time=with_offset(reference, utc_offset_minutes(reference, venue.timezone)),
        shows=shows,
        message=message,
    )
