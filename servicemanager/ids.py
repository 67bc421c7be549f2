"""Opaque id allocation for folders and services."""

from __future__ import annotations

import secrets
import string
from typing import Iterable, Optional, Set

ALPHABET = string.digits + string.ascii_lowercase


class IdAllocator:
    """
    Issues short base-36 tokens (9 chars by default).

    Draws are collision-checked against every id this allocator has issued
    and against any ids the caller passes as taken. An allocator that lives
    only for one event (as in the Reflex state, which rebuilds its controller
    per event) has no history, so there uniqueness comes from ``taken``
    alone: callers must pass every id already in the collection.
    """

    def __init__(self, length: int = 9, max_attempts: int = 100):
        if length < 1:
            raise ValueError("length must be >= 1")
        self._length = length
        self._max_attempts = max_attempts
        self._issued: Set[str] = set()

    def allocate(self, taken: Optional[Iterable[str]] = None) -> str:
        """Return a fresh id not in *taken* and never issued before."""
        blocked = set(taken) if taken else set()
        for _ in range(self._max_attempts):
            candidate = "".join(secrets.choice(ALPHABET) for _ in range(self._length))
            if candidate not in self._issued and candidate not in blocked:
                self._issued.add(candidate)
                return candidate
        raise RuntimeError(
            f"Could not allocate a unique id after {self._max_attempts} attempts"
        )

    def reserve(self, ids: Iterable[str]) -> None:
        """Mark externally created ids so they are never issued."""
        self._issued.update(ids)

    @property
    def issued_count(self) -> int:
        return len(self._issued)
