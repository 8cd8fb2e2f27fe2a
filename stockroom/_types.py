"""
Core types for stockroom.

Re-exports from kungfu/combinators + shared aliases.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

from kungfu import Result, Ok, Error, LazyCoroResult

from combinators import LCR, NoError

# ═══════════════════════════════════════════════════════════════════════════════
# Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type Lazy[T, E] = LazyCoroResult[T, E]
"""Lazy async computation that may fail."""

type Clock = Callable[[], datetime]
"""Source of timezone-aware UTC timestamps."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


__all__ = (
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    "LCR",
    "NoError",
    "Lazy",
    "Clock",
    "utcnow",
)
