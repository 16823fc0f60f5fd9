"""Call executor.

The three primitives the dispatcher drives, each wrapping one host
interaction on behalf of a single executing account:

- ``invoke``: may transfer value and mutate state; reports the cost used
- ``invoke_read_only``: static call, mutation is rejected by the host
- ``introspect``: code length and balance, no invocation

All three return rather than raise on callee failure. Whether a failed call
becomes a batch failure is the aggregator's decision, not the executor's.
"""

from __future__ import annotations

from callbatch.core.types import Address, AddressData, CallOutcome, ChainFacts, SimulatedOutcome
from callbatch.host.protocol import Host


class CallExecutor:
    """Runs calls against ``host`` as ``caller``."""

    def __init__(self, host: Host, caller: Address) -> None:
        self._host = host
        self._caller = Address(caller)

    @property
    def host(self) -> Host:
        return self._host

    @property
    def caller(self) -> Address:
        return self._caller

    def invoke(self, target: Address, data: bytes, value: int = 0) -> SimulatedOutcome:
        before = self._host.gas_used
        result = self._host.call(self._caller, target, data, value, static=False)
        return SimulatedOutcome(
            success=result.success,
            return_data=result.return_data,
            cost_used=self._host.gas_used - before,
        )

    def invoke_read_only(self, target: Address, data: bytes) -> CallOutcome:
        return self._host.call(self._caller, target, data, 0, static=True)

    def introspect(self, target: Address) -> AddressData:
        return AddressData(
            balance=self._host.balance(target),
            code_length=self._host.code_length(target),
        )

    def chain_facts(self) -> ChainFacts:
        return self._host.chain_facts()
