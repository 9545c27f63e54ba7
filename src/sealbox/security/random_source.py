"""Random byte sources used for salts and nonces.

The orchestrator only depends on the ``RandomSource`` protocol so a different
CSPRNG (or a deterministic one in tests) can be injected.
"""
from __future__ import annotations

import os
from typing import Optional, Protocol


class RandomSource(Protocol):
    def token_bytes(self, length: int) -> bytes:
        ...


class SystemRandomSource:
    """Operating-system CSPRNG (``os.urandom``)."""

    def token_bytes(self, length: int) -> bytes:
        return os.urandom(length)


_system_source = SystemRandomSource()


def get_random_source(source: Optional[RandomSource] = None) -> RandomSource:
    """Return ``source`` or the process-wide system source."""
    return source if source is not None else _system_source
