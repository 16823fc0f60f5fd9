"""
Result aggregation under a failure policy.

Manifesto:
    - **Index alignment:** Outcomes land in a pre-sized slot list, so the
      response mirrors the request whatever order calls were run in
    - **One policy per batch:** Abort-on-failure, collect-all or per-item;
      the aggregator alone decides whether a failed call aborts
    - **Nothing partial escapes:** An abort raises ``PerCallFailure(index)``
      and the collected outcomes are dropped with the aggregator

Architecture:
    ::

        FailurePolicy         failed call at i
        ─────────────         ────────────────────────────────
        ABORT_ON_FAILURE  →   raise PerCallFailure(i)
        COLLECT_ALL       →   keep outcome (success=False)
        PER_ITEM          →   raise if item i requires success,
                              else keep outcome

Examples:
    >>> aggregator = ResultAggregator(FailurePolicy.COLLECT_ALL, size=2)
    >>> aggregator.record(1, CallOutcome(False, b""))
    >>> aggregator.record(0, CallOutcome(True, b"ok"))
    >>> [o.success for o in aggregator.outcomes()]
    [True, False]

Tags:
    aggregation, failure-policy, batching, callbatch

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from enum import Enum
from typing import Generic, Protocol, TypeVar

from callbatch.core.errors import CallBatchError, PerCallFailure, SimulationReport
from callbatch.core.types import CallOutcome, SimulatedOutcome


class _Outcome(Protocol):
    @property
    def success(self) -> bool: ...

    @property
    def return_data(self) -> bytes: ...


O = TypeVar("O", bound=_Outcome)


class FailurePolicy(str, Enum):
    ABORT_ON_FAILURE = "abort_on_failure"
    COLLECT_ALL = "collect_all"
    PER_ITEM = "per_item"

    @classmethod
    def from_flag(cls, require_success: bool) -> FailurePolicy:
        """Batch-level ``requireSuccess`` flag to policy."""
        return cls.ABORT_ON_FAILURE if require_success else cls.COLLECT_ALL


class ResultAggregator(Generic[O]):
    """Collects per-call outcomes for one batch."""

    def __init__(self, policy: FailurePolicy, size: int) -> None:
        self._policy = policy
        self._slots: list[O | None] = [None] * size

    @property
    def policy(self) -> FailurePolicy:
        return self._policy

    def __len__(self) -> int:
        return len(self._slots)

    def demands_success(self, require_success: bool | None = None) -> bool:
        match self._policy:
            case FailurePolicy.ABORT_ON_FAILURE:
                return True
            case FailurePolicy.COLLECT_ALL:
                return False
            case FailurePolicy.PER_ITEM:
                if require_success is None:
                    raise CallBatchError("PER_ITEM policy needs require_success for every item")
                return require_success

    def record(self, index: int, outcome: O, *, require_success: bool | None = None) -> None:
        """Store the outcome of item ``index`` or abort the batch."""
        if self._slots[index] is not None:
            raise CallBatchError(f"Outcome for index {index} recorded twice")
        if not outcome.success and self.demands_success(require_success):
            raise PerCallFailure(index)
        self._slots[index] = outcome

    def outcomes(self) -> list[O]:
        missing = [i for i, slot in enumerate(self._slots) if slot is None]
        if missing:
            raise CallBatchError(f"No outcome recorded for index(es) {missing}")
        return list(self._slots)  # type: ignore[arg-type]

    def return_data(self) -> list[bytes]:
        return [outcome.return_data for outcome in self.outcomes()]

    def call_outcomes(self) -> list[CallOutcome]:
        return [CallOutcome(o.success, o.return_data) for o in self.outcomes()]

    def failed(self) -> int:
        return sum(1 for slot in self._slots if slot is not None and not slot.success)

    def report(self) -> SimulationReport:
        """Package simulated outcomes as the failure that carries them."""
        outcomes = self.outcomes()
        if not all(isinstance(o, SimulatedOutcome) for o in outcomes):
            raise CallBatchError("Only simulated outcomes can be reported")
        return SimulationReport(outcomes)  # type: ignore[arg-type]
