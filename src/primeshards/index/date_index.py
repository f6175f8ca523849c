"""Calendar day to shard reverse index."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List

from primeshards.models import ShardInfo
from primeshards.utils.files import write_json

LOGGER = logging.getLogger(__name__)

SECONDS_PER_DAY = 86_400
DATE_INDEX_VERSION = 1


@dataclass(slots=True)
class DateIndex:
    tz_offset_minutes: int
    created_at: float
    days: Dict[str, List[int]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": DATE_INDEX_VERSION,
            "tz_offset_minutes": self.tz_offset_minutes,
            "created_at": datetime.fromtimestamp(self.created_at, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "days": self.days,
        }


def shifted_day_start(t_sec: int, offset_minutes: int) -> int:
    """Unix seconds at the start of the shifted day containing ``t_sec``."""
    shift = offset_minutes * 60
    return (t_sec + shift) // SECONDS_PER_DAY * SECONDS_PER_DAY - shift


def day_key(t_sec: int, offset_minutes: int) -> str:
    shifted = datetime.fromtimestamp(t_sec + offset_minutes * 60, tz=timezone.utc)
    return shifted.strftime("%Y-%m-%d")


def build_date_index(
    shards: Iterable[ShardInfo],
    offset_minutes: int = 0,
    *,
    created_at: float = 0.0,
) -> DateIndex:
    """Map every shifted day to the shards whose time range overlaps it.

    Shards without both time bounds are left out.
    """
    days: Dict[str, set[int]] = {}
    for shard in shards:
        if shard.tmin is None or shard.tmax is None:
            LOGGER.debug("Shard %d has no time bounds, skipping", shard.sid)
            continue
        current = shifted_day_start(int(shard.tmin), offset_minutes)
        end = shifted_day_start(int(shard.tmax), offset_minutes)
        while current <= end:
            days.setdefault(day_key(current, offset_minutes), set()).add(shard.sid)
            current += SECONDS_PER_DAY
    return DateIndex(
        tz_offset_minutes=offset_minutes,
        created_at=created_at,
        days={day: sorted(sids) for day, sids in sorted(days.items())},
    )


def save_date_index(index: DateIndex, path: Path) -> None:
    write_json(path, index.to_dict(), indent=2)
