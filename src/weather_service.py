# ABOUTME: Service layer for Weather.com aggcommon API calls and response parsing.
# ABOUTME: Handles retrying fetches, target-location selection, and normalization into log records.

import asyncio
import logging
from datetime import datetime, timezone

import httpx
from pydantic import ValidationError
from tenacity import AsyncRetrying, RetryCallState, RetryError, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.config import LoggerSettings
from src.errors import FetchExhausted, ResponseShapeError
from src.models import CompositeEntry, NormalizedSample

logger = logging.getLogger(__name__)

BASE_URL = "https://api.weather.com/v3/aggcommon/v3alertsHeadlines;v3-wx-observations-current;v3-location-point"

MAX_ATTEMPTS = 3
BACKOFF_BASE_S = 0.5
BACKOFF_FACTOR = 2

FALLBACK_CITY = "London"
FALLBACK_COUNTRY_CODE = "GB"


def build_params(settings: LoggerSettings) -> dict[str, str]:
    """Query parameters for the aggcommon request."""
    return {
        "apiKey": settings.api_key,
        "geocodes": settings.geocodes,
        "units": "m",
        "format": "json",
        "language": "en-US",
    }


def _log_failed_attempt(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception()
    logger.warning("Fetch attempt %d failed: %r", retry_state.attempt_number, error)


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    params: dict | None = None,
    *,
    max_attempts: int = MAX_ATTEMPTS,
    timeout_s: float = 15.0,
    sleep=asyncio.sleep,
) -> httpx.Response:
    """GET ``url`` until it answers with a 2xx status or the attempt budget runs out.

    Each attempt is bounded by ``timeout_s``. Transport errors, timeouts and non-2xx
    statuses all count as failures; between attempts the wait is 0.5s, 1s, 2s, ...
    There is no wait after the final attempt.

    Raises FetchExhausted carrying the last error once ``max_attempts`` have failed.
    """
    retrying = AsyncRetrying(
        retry=retry_if_exception_type((httpx.HTTPError, TimeoutError)),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=BACKOFF_BASE_S, exp_base=BACKOFF_FACTOR),
        after=_log_failed_attempt,
        sleep=sleep,
    )
    try:
        async for attempt in retrying:
            with attempt:
                resp = await asyncio.wait_for(client.get(url, params=params), timeout=timeout_s)
                resp.raise_for_status()
    except RetryError as e:
        last_error = e.last_attempt.exception()
        raise FetchExhausted(max_attempts, last_error) from last_error
    return resp


async def fetch_composite(
    client: httpx.AsyncClient,
    settings: LoggerSettings,
    sleep=asyncio.sleep,
) -> list[CompositeEntry]:
    """Fetch the composite feed for the configured geocodes and parse it into entries."""
    logger.info("Fetching Weather.com composite data (timeout %dms)", settings.fetch_timeout_ms)
    resp = await fetch_with_retry(
        client,
        BASE_URL,
        params=build_params(settings),
        timeout_s=settings.fetch_timeout_s,
        sleep=sleep,
    )
    try:
        data = resp.json()
    except ValueError as e:
        raise ResponseShapeError(f"Response body is not JSON: {e}") from e
    return parse_entries(data)


def parse_entries(data) -> list[CompositeEntry]:
    """Validate a decoded response body as a list of composite entries.

    Elements that are not valid entries are logged and dropped, so one bad record
    for another geocode does not block the rest of the payload.
    """
    if not isinstance(data, list):
        raise ResponseShapeError(f"Unexpected response shape: expected an array, got {type(data).__name__}")

    entries = []
    for index, raw in enumerate(data):
        try:
            entries.append(CompositeEntry.model_validate(raw))
        except ValidationError as e:
            logger.warning("Dropping malformed composite entry #%d: %d validation error(s)", index, e.error_count())
    return entries


def select_location(entries: list[CompositeEntry], target_id: str) -> CompositeEntry | None:
    """Pick the entry to record.

    An exact ``id`` match wins. Otherwise the first entry located in London, GB is
    used, since the feed does not always echo the requested geocode verbatim.
    """
    for entry in entries:
        if entry.id == target_id:
            return entry

    for entry in entries:
        location = entry.location
        if location is not None and location.city == FALLBACK_CITY and location.countryCode == FALLBACK_COUNTRY_CODE:
            return entry
    return None


def format_utc_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_sample(entry: CompositeEntry, target_id: str, captured_at: datetime | None = None) -> NormalizedSample:
    """Flatten a selected entry into a log record.

    Raises ResponseShapeError when the entry lacks its location or observation block.
    """
    location = entry.location
    observation = entry.observation
    if location is None or observation is None:
        missing = [name for name, block in (("location", location), ("observation", observation)) if block is None]
        raise ResponseShapeError(f"Missing {' and '.join(missing)} data for entry {entry.id!r}")

    return NormalizedSample(
        ts_utc=format_utc_timestamp(captured_at or datetime.now(timezone.utc)),
        id=entry.id or target_id,
        city=location.city,
        displayContext=location.displayContext,
        ianaTimeZone=location.ianaTimeZone,
        pwsId=location.pwsId,
        validTimeUtc=observation.validTimeUtc,
        validTimeLocal=observation.validTimeLocal,
        temperatureC=observation.temperature,
        temperatureMax24Hour=observation.temperatureMax24Hour,
        temperatureMin24Hour=observation.temperatureMin24Hour,
        relativeHumidity=observation.relativeHumidity,
        windSpeed=observation.windSpeed,
        windDirectionCardinal=observation.windDirectionCardinal,
        pressureMeanSeaLevel=observation.pressureMeanSeaLevel,
        wxPhraseLong=observation.wxPhraseLong,
    )
