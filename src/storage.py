# ABOUTME: Flat-file persistence for the per-day JSONL sample log and the daily-high aggregate.
# ABOUTME: The log is append-only; the aggregate is read, updated, and fully rewritten every cycle.

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from src.models import AggregateLoad, DailyAggregate, NormalizedSample

logger = logging.getLogger(__name__)


def ensure_output_dir(output_dir: Path) -> None:
    Path(output_dir).mkdir(parents=True, exist_ok=True)


def build_jsonl_path(output_dir: Path, date_local: str) -> Path:
    return Path(output_dir) / f"wu_current_london_{date_local}.jsonl"


def build_daily_high_path(output_dir: Path, date_local: str) -> Path:
    return Path(output_dir) / f"wu_daily_high_{date_local}.json"


def append_sample(path: Path, sample: NormalizedSample) -> None:
    """Append one sample as a single JSON line, creating the file if needed."""
    with open(path, "a", encoding="utf-8") as f:
        f.write(sample.model_dump_json() + "\n")


def empty_aggregate(date_local: str, tz_name: str) -> DailyAggregate:
    return DailyAggregate(date_local=date_local, timezone=tz_name)


def read_daily_high(path: Path, date_local: str, tz_name: str) -> AggregateLoad:
    """Read the aggregate at ``path``, reporting whether it was loaded, absent, or corrupt.

    Keys missing from an otherwise valid file are filled from the fallbacks.
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("No daily aggregate at %s yet", path)
        return AggregateLoad(status="absent", aggregate=empty_aggregate(date_local, tz_name))
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read daily aggregate %s (%s), starting fresh", path, e)
        return AggregateLoad(status="corrupt", aggregate=empty_aggregate(date_local, tz_name))

    try:
        parsed = json.loads(raw)
        if not isinstance(parsed, dict):
            raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
        merged = {"date_local": date_local, "timezone": tz_name}
        merged.update({k: v for k, v in parsed.items() if v is not None})
        aggregate = DailyAggregate.model_validate(merged)
    except (ValueError, ValidationError) as e:
        logger.warning("Daily aggregate %s is corrupt (%s), starting fresh", path, e)
        return AggregateLoad(status="corrupt", aggregate=empty_aggregate(date_local, tz_name))

    return AggregateLoad(status="loaded", aggregate=aggregate)


def load_daily_high(path: Path, date_local: str, tz_name: str) -> DailyAggregate:
    """Read the aggregate at ``path``; a missing or unreadable file yields a zero-valued one."""
    return read_daily_high(path, date_local, tz_name).aggregate


def save_daily_high(path: Path, aggregate: DailyAggregate) -> None:
    """Overwrite ``path`` with the aggregate as indented JSON."""
    Path(path).write_text(aggregate.model_dump_json(indent=2), encoding="utf-8")


def apply_sample(
    aggregate: DailyAggregate,
    temperature: float | None,
    valid_time_local: str | None,
    date_local: str | None = None,
    tz_name: str | None = None,
) -> DailyAggregate:
    """Fold one reading into the aggregate and return the updated copy.

    A reading replaces the high only when it is strictly greater, so on ties the
    first occurrence's time is kept. Last-seen fields always take the new reading,
    including nulls when this cycle had no temperature.
    """
    high = aggregate.high_temperatureC
    high_at = aggregate.high_at_validTimeLocal
    if temperature is not None and (high is None or temperature > high):
        high = temperature
        high_at = valid_time_local or high_at

    return aggregate.model_copy(
        update={
            "date_local": date_local or aggregate.date_local,
            "timezone": tz_name or aggregate.timezone,
            "samples": aggregate.samples + 1,
            "high_temperatureC": high,
            "high_at_validTimeLocal": high_at,
            "last_seen_temperatureC": temperature,
            "last_seen_validTimeLocal": valid_time_local,
        }
    )
