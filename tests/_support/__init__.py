"""
Test support utilities for callbatch tests.

Helpers that don't fit as pytest fixtures but are useful across multiple
test files.
"""

from __future__ import annotations

from typing import Any


def word(value: int) -> bytes:
    """Encode ``value`` as a 32-byte big-endian word."""
    return value.to_bytes(32, "big")


def flags(outcomes: list[Any]) -> list[bool]:
    """Success flags of a list of outcomes, in order."""
    return [outcome.success for outcome in outcomes]


def assert_outcomes(outcomes: list[Any], expected: list[bool]) -> None:
    """
    Assert success flags match ``expected`` index by index.

    Args:
        outcomes: CallOutcome or SimulatedOutcome list
        expected: Expected success flag per index
    """
    actual = flags(outcomes)
    assert len(actual) == len(expected), f"expected {len(expected)} outcome(s), got {len(actual)}"
    assert actual == expected, f"Outcome flags mismatch:\n  Expected: {expected}\n  Actual:   {actual}"
