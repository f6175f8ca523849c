"""Core data models shared by the pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from primeshards.primes.tags import PrimeTag, serialize_tags

UNTITLED = "[Untitled]"
ANONYMOUS = "anon"


@dataclass(slots=True)
class RawItem:
    """One record of the upstream export, as parsed from a single line."""

    id: int
    type: str | None = None
    time: int | None = None
    by: str | None = None
    title: str | None = None
    text: str | None = None
    url: str | None = None
    score: int | None = None
    parent: int | None = None

    @classmethod
    def from_json(cls, payload: Dict[str, Any]) -> "RawItem":
        """Build an item from a decoded JSON object.

        Raises ``ValueError`` when the identifier is missing or not a
        non-negative integer; every other field degrades to ``None``.
        """
        item_id = payload.get("id")
        if isinstance(item_id, bool) or not isinstance(item_id, int) or item_id < 0:
            raise ValueError(f"invalid item id: {item_id!r}")
        return cls(
            id=item_id,
            type=_as_str(payload.get("type")),
            time=_as_int(payload.get("time")),
            by=_as_str(payload.get("by")),
            title=_as_str(payload.get("title")),
            text=_as_str(payload.get("text")),
            url=_as_str(payload.get("url")),
            score=_as_int(payload.get("score")),
            parent=_as_int(payload.get("parent")),
        )


@dataclass(slots=True)
class CandidateRecord:
    """A prime-id item ready to be written to a shard."""

    id: int
    title: str
    user: str
    score: int
    time: int | None
    type: str | None
    tags: List[PrimeTag] = field(default_factory=list)

    @property
    def prime_type(self) -> str | None:
        return serialize_tags(self.tags)


@dataclass(slots=True)
class ShardInfo:
    """Summary of a single written shard."""

    sid: int
    count: int
    id_min: int
    id_max: int
    tmin: int | None
    tmax: int | None


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None
