"""Special-prime tag types and their on-disk token format."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Tuple

FIXED_OFFSETS: Tuple[int, ...] = (2, 4, 6, 8, 10, 12)


class TagKind(str, Enum):
    MERSENNE = "mersenne"
    FERMAT = "fermat"
    GERMAIN = "germain"
    PALINDROME = "palindrome"
    PKK = "pkk"
    PK_FIXED = "pk"
    PKEK2 = "pkek2"
    PKESQRT = "pkesqrt"
    POSTS = "posts"


@dataclass(frozen=True, slots=True)
class PrimeTag:
    """One classification of an identifier.

    ``params`` carries the numbers that make the token unique:

    * ``PKK``: ``(p, k)``
    * ``PK_FIXED``: ``(e, p, k)``
    * ``PKEK2`` and ``PKESQRT``: ``(p, k, e)``
    * ``POSTS``: ``(score, time)``
    """

    kind: TagKind
    params: Tuple[int, ...] = ()

    @property
    def token(self) -> str:
        kind = self.kind
        if kind is TagKind.PK_FIXED:
            e, p, k = self.params
            return f"pk{e}:{p}-{k}"
        if not self.params:
            return kind.value
        return f"{kind.value}:" + "-".join(str(value) for value in self.params)


def serialize_tags(tags: Iterable[PrimeTag]) -> str | None:
    """Join tag tokens with commas; ``None`` when there are no tags."""
    tokens = [tag.token for tag in tags]
    return ",".join(tokens) if tokens else None


@dataclass(frozen=True, slots=True)
class FilterCategory:
    """A filter the client offers, matched by substring on ``prime_type``."""

    name: str
    pattern: str


def _build_categories() -> Tuple[FilterCategory, ...]:
    categories = [
        FilterCategory(kind.value, kind.value)
        for kind in (TagKind.MERSENNE, TagKind.FERMAT, TagKind.GERMAIN, TagKind.PALINDROME)
    ]
    categories.append(FilterCategory("pkk", "pkk:"))
    categories.extend(FilterCategory(f"pk{e}", f"pk{e}:") for e in FIXED_OFFSETS)
    categories.append(FilterCategory("pkek2", "pkek2:"))
    categories.append(FilterCategory("pkesqrt", "pkesqrt:"))
    categories.append(FilterCategory("posts", "posts:"))
    return tuple(categories)


FILTER_CATEGORIES: Tuple[FilterCategory, ...] = _build_categories()
