"""Host environment interface.

The batching core never touches state directly. Everything it needs from the
environment it runs in goes through ``Host``:

- invocation primitive (value-transferring or static)
- introspection queries (code size, balance, chain facts)
- resource accounting, scoped to one top-level execution
- snapshots for rollback-on-failure

Manifesto:
    Abort must be all-or-nothing for a whole batch. A host that gives free
    rollback (a blockchain node) can implement the snapshot methods trivially;
    any other host layers an undo log underneath ``call`` (see
    ``callbatch.host.journal``).

Tags:
    host, protocol, environment, callbatch

Doc-Types:
    api-reference
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol, runtime_checkable

from callbatch.core.types import Address, CallOutcome, ChainFacts


@runtime_checkable
class Host(Protocol):
    """Environment the executor runs against."""

    def call(
        self,
        caller: Address,
        target: Address,
        data: bytes,
        value: int = 0,
        *,
        static: bool = False,
    ) -> CallOutcome:
        """Invoke ``target``. Never raises for callee failure.

        Raises ``BudgetExhausted`` when the resource budget runs out; that is
        the only exception allowed to escape a call.
        """
        ...

    def code_length(self, address: Address) -> int: ...

    def balance(self, address: Address) -> int: ...

    def chain_facts(self) -> ChainFacts: ...

    @property
    def gas_used(self) -> int: ...

    @property
    def gas_limit(self) -> int: ...

    def snapshot(self) -> int: ...

    def revert_to(self, snapshot: int) -> None: ...

    def commit(self, snapshot: int) -> None: ...

    def execution(self) -> AbstractContextManager[int]:
        """Scope of one top-level execution.

        Entering the outermost scope resets resource accounting; nested scopes
        share it. State changes made inside commit on normal exit and revert
        if the block raises.
        """
        ...
