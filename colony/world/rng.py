"""Domain-separated deterministic RNG using xxhash.

The outcome of tick T depends only on the world seed and the state at T-1.

Formula: RNG_Value = Hash(WorldSeed, Domain, Subject, Tick)
"""

from __future__ import annotations

import struct

import xxhash

from colony.core.enums import Domain


class DeterministicRNG:
    """Stateless domain-separated pseudo-random number generator.

    Each call is a pure function of (seed, domain, subject, tick). Subjects
    are world object ids, hashed down to 64 bits first.
    """

    __slots__ = ("_seed",)

    _MAX_UINT64 = (1 << 64) - 1

    def __init__(self, seed: int) -> None:
        self._seed = seed

    @staticmethod
    def _subject_key(subject: str | int) -> int:
        if isinstance(subject, int):
            return subject
        return xxhash.xxh64(subject.encode("utf-8")).intdigest() >> 1

    def _hash(self, domain: Domain, subject: str | int, tick: int) -> int:
        payload = struct.pack("<qiQq", self._seed, domain.value, self._subject_key(subject), tick)
        return xxhash.xxh64(payload).intdigest()

    def next_float(self, domain: Domain, subject: str | int, tick: int) -> float:
        """Return a deterministic float in [0.0, 1.0)."""
        return self._hash(domain, subject, tick) / (self._MAX_UINT64 + 1)

    def next_int(self, domain: Domain, subject: str | int, tick: int, low: int, high: int) -> int:
        """Return a deterministic integer in [low, high] inclusive."""
        f = self.next_float(domain, subject, tick)
        return low + int(f * (high - low + 1))

    def next_bool(self, domain: Domain, subject: str | int, tick: int, probability: float = 0.5) -> bool:
        return self.next_float(domain, subject, tick) < probability
