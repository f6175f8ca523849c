"""Prime sieve and special-prime classifiers.

The sieve is built once per run with numpy and every classifier below is a
pure function of it. ``classify`` evaluates the classifiers in a fixed order
so the resulting tag string is stable across runs.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Tuple

import numpy as np

from primeshards.primes.tags import FIXED_OFFSETS, PrimeTag, TagKind

LOGGER = logging.getLogger(__name__)

MERSENNE_EXPONENTS: Tuple[int, ...] = (2, 3, 5, 7, 13, 17, 19, 31)
FERMAT_PRIMES = frozenset({3, 5, 17, 257, 65537})

# Search ceilings for the p^k + e families.
PKK_MAX_K = 40
FIXED_E_MAX_K = 30
PKEK2_MAX_K = 20
PKESQRT_MAX_K = 20
PKESQRT_BASE_LIMIT = 100_000


class SieveBoundError(ValueError):
    """Raised when identifiers at or above the sieve bound must not be ignored."""


def integer_root(value: int, k: int) -> int:
    """Largest ``r`` with ``r ** k <= value``."""
    if value < 0:
        raise ValueError("integer_root requires a non-negative value")
    if value < 2:
        return value
    root = int(round(value ** (1.0 / k)))
    while root ** k > value:
        root -= 1
    while (root + 1) ** k <= value:
        root += 1
    return root


def is_palindrome(n: int) -> bool:
    digits = str(n)
    return digits == digits[::-1]


class PrimeSieve:
    """Primality oracle for ``[0, bound]`` plus the special-prime classifiers."""

    def __init__(self, bound: int) -> None:
        if bound < 2:
            raise ValueError(f"sieve bound must be at least 2, got {bound}")
        self.bound = bound
        LOGGER.info("Generating sieve up to %s", bound)
        flags = np.ones(bound + 1, dtype=bool)
        flags[:2] = False
        for i in range(2, math.isqrt(bound) + 1):
            if flags[i]:
                flags[i * i :: i] = False
        self._flags = flags
        self.mersenne_primes = frozenset(
            m for m in ((1 << p) - 1 for p in MERSENNE_EXPONENTS) if m <= bound
        )
        LOGGER.debug(
            "Special primes in range: %d Mersenne, %d Fermat",
            len(self.mersenne_primes),
            len([f for f in FERMAT_PRIMES if f <= bound]),
        )

    def is_prime(self, n: int) -> bool:
        """Primality of ``n``; anything outside ``[0, bound]`` reports False."""
        if n < 0 or n > self.bound:
            return False
        return bool(self._flags[n])

    def primes(self) -> np.ndarray:
        """All primes up to the bound, ascending."""
        return np.flatnonzero(self._flags)

    # -- individual classifiers -------------------------------------------

    def is_mersenne(self, n: int) -> bool:
        return n in self.mersenne_primes

    def is_fermat(self, n: int) -> bool:
        return n in FERMAT_PRIMES

    def is_sophie_germain(self, n: int) -> bool:
        # 2n+1 beyond the bound is unknown, so it is not tagged.
        if not self.is_prime(n):
            return False
        partner = 2 * n + 1
        return partner <= self.bound and self.is_prime(partner)

    def is_palindrome_prime(self, n: int) -> bool:
        return self.is_prime(n) and is_palindrome(n)

    def _prime_root(self, base: int, k: int) -> int | None:
        """``p`` when ``base == p ** k`` for a prime ``p``, rounding the float root."""
        p = int(round(base ** (1.0 / k)))
        if p >= 2 and p ** k == base and self.is_prime(p):
            return p
        return None

    def pkk_representations(self, n: int) -> List[Tuple[int, int]]:
        """Every ``(p, k)`` with even ``k`` such that ``n == p ** k + k``."""
        results = []
        for k in range(2, PKK_MAX_K + 1, 2):
            if k >= n:
                break
            base = n - k
            if base < 2:
                continue
            p = self._prime_root(base, k)
            if p is not None:
                results.append((p, k))
        return results

    def pk_fixed_offsets(self, n: int) -> Dict[int, Tuple[int, int]]:
        """For each fixed ``e``, the first ``(p, k)`` with ``n == p ** k + e``."""
        matches: Dict[int, Tuple[int, int]] = {}
        for e in FIXED_OFFSETS:
            base = n - e
            if base < 2:
                continue
            for k in range(2, FIXED_E_MAX_K + 1):
                p = int(round(base ** (1.0 / k)))
                if p < 2:
                    break
                if p ** k == base and self.is_prime(p):
                    matches[e] = (p, k)
                    break
        return matches

    def pk_e_below_k_squared(self, n: int) -> Tuple[int, int, int] | None:
        """First ``(p, k, e)`` with ``n == p ** k + e``, even ``2 <= e <= k*k``.

        Scans ``k`` ascending, then ``e`` ascending. For a fixed ``k`` the
        only bases that can qualify lie in ``[n - k*k, n - 2]``, so the roots
        in that window are visited from the largest down, which is the same
        as visiting ``e`` from the smallest up.
        """
        if n < 4:
            return None
        for k in range(2, PKEK2_MAX_K + 1):
            low = max(n - k * k, 2)
            p = integer_root(n - 2, k)
            while p >= 2:
                power = p ** k
                if power < low:
                    break
                e = n - power
                if e % 2 == 0 and self.is_prime(p):
                    return p, k, e
                p -= 1
        return None

    def pk_e_below_sqrt_p(self, n: int) -> Tuple[int, int, int] | None:
        """First ``(p, k, e)`` with ``n == p ** k + e``, even ``e`` and ``e < sqrt(p)``.

        Scans ``k`` ascending and prime bases ascending. Only the largest
        base with ``p ** k < n`` can leave a remainder below ``sqrt(p)``:
        any smaller base leaves at least ``2p + 1``.
        """
        if n < 3:
            return None
        for k in range(2, PKESQRT_MAX_K + 1):
            p = integer_root(n - 1, k)
            if p < 2:
                break
            if p >= PKESQRT_BASE_LIMIT or not self.is_prime(p):
                continue
            e = n - p ** k
            if e > 0 and e % 2 == 0 and e * e < p:
                return p, k, e
        return None

    # -- combined ----------------------------------------------------------

    def classify(self, n: int) -> List[PrimeTag]:
        """Special-prime tags for ``n`` in their canonical order."""
        tags: List[PrimeTag] = []
        if self.is_mersenne(n):
            tags.append(PrimeTag(TagKind.MERSENNE))
        if self.is_fermat(n):
            tags.append(PrimeTag(TagKind.FERMAT))
        if self.is_sophie_germain(n):
            tags.append(PrimeTag(TagKind.GERMAIN))
        if self.is_palindrome_prime(n):
            tags.append(PrimeTag(TagKind.PALINDROME))
        for p, k in self.pkk_representations(n):
            tags.append(PrimeTag(TagKind.PKK, (p, k)))
        for e, (p, k) in self.pk_fixed_offsets(n).items():
            tags.append(PrimeTag(TagKind.PK_FIXED, (e, p, k)))
        found = self.pk_e_below_k_squared(n)
        if found is not None:
            tags.append(PrimeTag(TagKind.PKEK2, found))
        found = self.pk_e_below_sqrt_p(n)
        if found is not None:
            tags.append(PrimeTag(TagKind.PKESQRT, found))
        return tags
