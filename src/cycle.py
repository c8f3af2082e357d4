# ABOUTME: One sampling cycle: fetch, select the target location, append the sample, update the daily high.
# ABOUTME: Cycle-local failures are logged and turn into a skipped cycle instead of an exception.

import asyncio
import logging
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel

from src.deps import LoggerDeps
from src.errors import ResponseShapeError, WeatherLoggerError
from src.local_date import resolve_local_date
from src.models import CompositeEntry, DailyAggregate, NormalizedSample
from src.storage import (
    append_sample,
    apply_sample,
    build_daily_high_path,
    build_jsonl_path,
    ensure_output_dir,
    load_daily_high,
    save_daily_high,
)
from src.weather_service import fetch_composite, normalize_sample, select_location

logger = logging.getLogger(__name__)


class CycleResult(BaseModel):
    """What a successful cycle wrote."""

    date_local: str
    sample: NormalizedSample
    aggregate: DailyAggregate
    jsonl_path: Path
    daily_high_path: Path


def record_entry(
    entry: CompositeEntry,
    output_dir: Path,
    target_id: str,
    tz_name: str,
    captured_at: datetime | None = None,
) -> CycleResult:
    """Write a selected entry to the day's log and fold it into the day's aggregate."""
    sample = normalize_sample(entry, target_id, captured_at)
    date_local = resolve_local_date(sample.validTimeLocal, tz_name, now=captured_at)

    ensure_output_dir(output_dir)
    jsonl_path = build_jsonl_path(output_dir, date_local)
    append_sample(jsonl_path, sample)

    daily_high_path = build_daily_high_path(output_dir, date_local)
    current = load_daily_high(daily_high_path, date_local, tz_name)
    updated = apply_sample(current, sample.temperatureC, sample.validTimeLocal, date_local, tz_name)
    save_daily_high(daily_high_path, updated)

    return CycleResult(
        date_local=date_local,
        sample=sample,
        aggregate=updated,
        jsonl_path=jsonl_path,
        daily_high_path=daily_high_path,
    )


async def log_once(deps: LoggerDeps, sleep=asyncio.sleep, captured_at: datetime | None = None) -> CycleResult | None:
    """Run one cycle. Returns None when the cycle was skipped."""
    settings = deps.settings
    try:
        entries = await fetch_composite(deps.http_client, settings, sleep=sleep)
        entry = select_location(entries, settings.target_id)
        if entry is None:
            raise ResponseShapeError(f"Target location {settings.target_id!r} not found in response")
        result = record_entry(entry, settings.output_dir, settings.target_id, settings.timezone, captured_at)
    except WeatherLoggerError as e:
        logger.error("Skipping cycle: %s", e)
        return None

    agg = result.aggregate
    logger.info(
        "Recorded %s %s°C at %s (day %s: %d samples, high %s°C)",
        result.sample.city,
        result.sample.temperatureC,
        result.sample.validTimeLocal,
        result.date_local,
        agg.samples,
        agg.high_temperatureC,
    )
    return result
