"""
Operation dispatcher.

Maps a decoded request to its batch strategy and drives the executor over
the request's items, strictly one call at a time and in input order. Every
call at index ``i`` observes the effects of calls ``< i`` in the same batch.

Manifesto:
    - **Exhaustive match:** ``dispatch`` pattern-matches the request union;
      ``assert_never`` makes a forgotten kind a type error
    - **Policies live in the aggregator:** The dispatcher only picks the
      policy for the kind and feeds outcomes in
    - **Simulate never persists:** Calls run with full mutating semantics
      inside a snapshot that is always reverted; the outcomes leave through
      ``SimulationReport`` (or are returned by ``dry_run``)

Architecture:
    ::

        Request ──► dispatch ──► match kind
                                   │
          StaticCall ──────────────┼─► invoke_read_only ×N ─► ABORT_ON_FAILURE
          StaticCallStrict ────────┼─► invoke_read_only ×N ─► flag → policy
          StaticCallStrictPerItem ─┼─► invoke_read_only ×N ─► PER_ITEM
          CodeLength / Balances ───┼─► introspect ×N
          AddressesData ───────────┼─► introspect ×N
          ChainData ───────────────┼─► chain_facts
          Simulate ────────────────┴─► snapshot, invoke ×N, revert
                                        └─► raise SimulationReport

Examples:
    >>> from callbatch.host.memory import InMemoryHost
    >>> from callbatch.core.types import Address, BalancesRequest
    >>> host = InMemoryHost()
    >>> host.set_balance(Address(b"\\x01" * 20), 5)
    >>> dispatcher = OperationDispatcher(CallExecutor(host, Address.zero()))
    >>> dispatcher.dispatch(BalancesRequest([Address(b"\\x01" * 20), Address.zero()]))
    [5, 0]

Tags:
    dispatcher, batching, simulation, callbatch

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import assert_never

from callbatch.core.errors import PerCallFailure
from callbatch.core.types import (
    Address,
    AddressData,
    AddressesDataRequest,
    AggregateRequest,
    BalancesRequest,
    BatchResponse,
    CallOutcome,
    CallSpec,
    ChainDataRequest,
    CodeLengthsRequest,
    ConditionalStaticCallSpec,
    Request,
    SimulateRequest,
    SimulatedOutcome,
    StaticCallSpec,
    TryAggregatePerItemRequest,
    TryAggregateRequest,
)
from callbatch.execution.aggregator import FailurePolicy, ResultAggregator
from callbatch.execution.executor import CallExecutor
from callbatch.logging import get_logger, log_step

log = get_logger(__name__)


def _size(request: Request) -> int:
    items = getattr(request, "calls", None) or getattr(request, "addresses", None) or ()
    return len(items)


class OperationDispatcher:
    """Runs one typed request through the executor."""

    def __init__(self, executor: CallExecutor) -> None:
        self._executor = executor

    @property
    def executor(self) -> CallExecutor:
        return self._executor

    def dispatch(self, request: Request) -> BatchResponse:
        """
        Execute ``request`` and return its index-aligned response.

        Raises:
            PerCallFailure: A call violated the active strict policy
            SimulationReport: Always, for ``SimulateRequest``
            BudgetExhausted: The host's resource budget ran out
        """
        kind = request.kind.name.lower()
        with log_step("batch.dispatch", kind=kind, size=_size(request)):
            match request:
                case AggregateRequest(calls=calls):
                    return self._read_only(calls, FailurePolicy.ABORT_ON_FAILURE).return_data()
                case TryAggregateRequest(require_success=require_success, calls=calls):
                    return self._read_only(calls, FailurePolicy.from_flag(require_success)).call_outcomes()
                case TryAggregatePerItemRequest(calls=calls):
                    return self._read_only(calls, FailurePolicy.PER_ITEM).call_outcomes()
                case CodeLengthsRequest(addresses=addresses):
                    return [data.code_length for data in self._introspect(addresses)]
                case BalancesRequest(addresses=addresses):
                    return [data.balance for data in self._introspect(addresses)]
                case AddressesDataRequest(addresses=addresses):
                    return self._introspect(addresses)
                case ChainDataRequest():
                    return self._executor.chain_facts()
                case SimulateRequest(calls=calls):
                    report = self._simulate(calls).report()
                case _:
                    assert_never(request)
        raise report

    def dry_run(self, calls: Sequence[CallSpec]) -> list[SimulatedOutcome]:
        """Simulate ``calls`` and return the outcomes instead of raising them."""
        with log_step("batch.dry_run", size=len(calls)):
            return self._simulate(calls).outcomes()

    # ── Strategies ───────────────────────────────────────────────────────

    def _read_only(
        self,
        calls: Sequence[StaticCallSpec | ConditionalStaticCallSpec],
        policy: FailurePolicy,
    ) -> ResultAggregator[CallOutcome]:
        aggregator: ResultAggregator[CallOutcome] = ResultAggregator(policy, len(calls))
        for index, spec in enumerate(calls):
            outcome = self._executor.invoke_read_only(spec.target, spec.data)
            require_success = getattr(spec, "require_success", None)
            try:
                aggregator.record(index, outcome, require_success=require_success)
            except PerCallFailure as failure:
                failure.with_context(target=str(spec.target))
                log.info("batch.aborted", policy=policy.value, **failure.to_dict())
                raise
        log.debug("batch.collected", policy=policy.value, failed=aggregator.failed())
        return aggregator

    def _introspect(self, addresses: Sequence[Address]) -> list[AddressData]:
        return [self._executor.introspect(address) for address in addresses]

    def _simulate(self, calls: Sequence[CallSpec]) -> ResultAggregator[SimulatedOutcome]:
        host = self._executor.host
        aggregator: ResultAggregator[SimulatedOutcome] = ResultAggregator(FailurePolicy.COLLECT_ALL, len(calls))
        snapshot = host.snapshot()
        try:
            for index, spec in enumerate(calls):
                aggregator.record(index, self._executor.invoke(spec.target, spec.data, spec.value))
        finally:
            host.revert_to(snapshot)
        log.debug(
            "batch.simulated",
            failed=aggregator.failed(),
            cost_used=sum(o.cost_used for o in aggregator.outcomes()),
        )
        return aggregator
