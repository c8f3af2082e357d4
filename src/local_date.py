# ABOUTME: Resolves the local calendar-day key used to partition the log and aggregate files.
# ABOUTME: Uses zoneinfo civil-calendar rules so DST and UTC offsets are handled correctly.

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def _zone(tz_name: str):
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError, TypeError):
        logger.warning("Unknown timezone %r, using UTC for the date key", tz_name)
        return timezone.utc


def _parse_instant(instant) -> datetime | None:
    if isinstance(instant, datetime):
        return instant
    if isinstance(instant, str) and instant.strip():
        try:
            return datetime.fromisoformat(instant.strip())
        except ValueError:
            return None
    return None


def resolve_local_date(instant: datetime | str | None, tz_name: str, now: datetime | None = None) -> str:
    """Return the ``YYYY-MM-DD`` calendar day of ``instant`` in ``tz_name``.

    ``instant`` may be a datetime or an ISO-8601 string such as an observation's
    validTimeLocal. Values without an offset are read as wall-clock time in the zone.
    A missing or unparsable instant falls back to ``now`` (the current time by
    default), and an unknown zone falls back to UTC, so this never raises.
    """
    zone = _zone(tz_name)
    fallback = now or datetime.now(timezone.utc)
    moment = _parse_instant(instant) or fallback

    try:
        return _date_in_zone(moment, zone)
    except (OverflowError, ValueError):
        # e.g. 9999-12-31T23:00-05:00 lands past datetime.max once converted
        return _date_in_zone(fallback, zone)


def _date_in_zone(moment: datetime, zone) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=zone)
    return moment.astimezone(zone).date().isoformat()
