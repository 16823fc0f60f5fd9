"""
In-memory reference host.

``InMemoryHost`` implements the ``Host`` protocol for environments without
built-in rollback: accounts live in a dict, contract code is a Python handler,
and every mutation is journaled so calls and batches can be undone.

Manifesto:
    - **Calls return, never throw:** A reverting, faulting or crashing callee
      yields ``success=False``; only ``BudgetExhausted`` escapes
    - **Per-call isolation:** A failed call's own effects are undone before
      it returns, earlier calls in the batch keep theirs
    - **Static means static:** Storage writes and value transfers inside a
      static frame (at any depth) are rejected by the host itself
    - **Metered:** Every call, byte, transfer and storage access is charged
      against the budget of the current ``execution()``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                         InMemoryHost                          │
        ├──────────────────────────────────────────────────────────────┤
        │  accounts: Address → Account(balance, code, handler, storage) │
        │  journal:  undo log (snapshot / revert_to / commit)          │
        │  frames:   active call stack (depth, static inheritance)     │
        │  meter:    gas_used / gas_limit                              │
        ├──────────────────────────────────────────────────────────────┤
        │  call(caller, target, data, value, static)                   │
        │    1. charge base + calldata + transfer cost                 │
        │    2. snapshot                                               │
        │    3. push Frame, transfer value, run handler(frame, data)   │
        │    4. Revert / CallFault / handler crash → revert, fail      │
        │    5. pop Frame                                              │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> host = InMemoryHost()
    >>> echo = host.deploy(Address(b"\\x01" * 20), lambda frame, data: data)
    >>> host.call(Address.zero(), echo, b"hi")
    CallOutcome(success=True, return_data=b'hi')

    A handler fails by raising ``Revert``:

    >>> def guard(frame, data):
    ...     raise Revert(b"denied")
    >>> target = host.deploy(Address(b"\\x02" * 20), guard)
    >>> host.call(Address.zero(), target, b"")
    CallOutcome(success=False, return_data=b'denied')

Tags:
    host, in-memory, journal, metering, callbatch

Doc-Types:
    - API Reference
    - Host Implementation Guide
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from callbatch.core.errors import BudgetExhausted, ConfigError
from callbatch.core.settings import CallBatchSettings, get_settings
from callbatch.core.types import Address, CallOutcome, ChainFacts
from callbatch.host.journal import Journal
from callbatch.logging import get_logger

log = get_logger(__name__)

CALL_BASE_COST = 2_600
CALLDATA_BYTE_COST = 16
VALUE_TRANSFER_COST = 9_000
STORAGE_READ_COST = 2_100
STORAGE_WRITE_COST = 20_000
MAX_CALL_DEPTH = 64


class Revert(Exception):
    """Raised by a handler to fail its call with ``data`` as return data."""

    def __init__(self, data: bytes = b""):
        self.data = bytes(data)
        super().__init__(f"reverted with {len(self.data)} byte(s)")


class CallFault(Exception):
    """Host-detected failure of a single call (returns empty data)."""


class StaticViolation(CallFault):
    pass


class InsufficientBalance(CallFault):
    pass


class CallDepthExceeded(CallFault):
    pass


Handler = Callable[["Frame", bytes], "bytes | None"]


@dataclass
class Account:
    balance: int = 0
    code: bytes = b""
    handler: Handler | None = None
    storage: dict[Hashable, int] = field(default_factory=dict)


@dataclass(frozen=True)
class Frame:
    """What a handler sees of the call it is serving."""

    host: InMemoryHost
    caller: Address
    address: Address
    value: int
    static: bool
    depth: int

    def load(self, key: Hashable) -> int:
        return self.host._load(self.address, key)

    def store(self, key: Hashable, value: int) -> None:
        self.host._store(self, key, value)

    def consume(self, cost: int) -> None:
        self.host.charge(cost)

    def balance(self, address: Address | None = None) -> int:
        return self.host.balance(address or self.address)

    def call(self, target: Address, data: bytes = b"", value: int = 0, *, static: bool = False) -> CallOutcome:
        """Nested call made by this frame's contract."""
        return self.host.call(self.address, target, data, value, static=static)


class InMemoryHost:
    """Journaled, metered host with Python handlers as contract code."""

    def __init__(
        self,
        *,
        chain_facts: ChainFacts | None = None,
        gas_limit: int = 30_000_000,
        max_depth: int = MAX_CALL_DEPTH,
    ) -> None:
        if gas_limit <= 0:
            raise ConfigError(f"gas_limit must be > 0, got {gas_limit}")
        if max_depth <= 0:
            raise ConfigError(f"max_depth must be > 0, got {max_depth}")
        self._accounts: dict[Address, Account] = {}
        self._journal = Journal()
        self._frames: list[Frame] = []
        self._chain_facts = chain_facts or ChainFacts(gas_limit=gas_limit)
        self._gas_limit = gas_limit
        self._gas_used = 0
        self._max_depth = max_depth

    @classmethod
    def from_settings(cls, settings: CallBatchSettings | None = None) -> InMemoryHost:
        settings = settings or get_settings()
        return cls(
            chain_facts=ChainFacts(chain_id=settings.chain_id, gas_limit=settings.gas_limit),
            gas_limit=settings.gas_limit,
        )

    # ── Setup (not journaled) ────────────────────────────────────────────

    def deploy(
        self,
        address: Address | str,
        handler: Handler,
        *,
        code: bytes | None = None,
        balance: int = 0,
    ) -> Address:
        """Install ``handler`` as the code of ``address``.

        ``code`` sets the reported code bytes; it defaults to the handler's
        qualified name so contract accounts always have a non-zero length.
        """
        address = Address.parse(address)
        if code is None:
            code = getattr(handler, "__qualname__", type(handler).__qualname__).encode("utf-8")
        self._accounts[address] = Account(balance=balance, code=code, handler=handler)
        log.debug("host.deployed", address=str(address), code_length=len(code))
        return address

    def set_balance(self, address: Address | str, amount: int) -> None:
        address = Address.parse(address)
        self._accounts.setdefault(address, Account()).balance = amount

    def account(self, address: Address) -> Account | None:
        return self._accounts.get(address)

    def storage_at(self, address: Address, key: Hashable) -> int:
        account = self._accounts.get(address)
        return account.storage.get(key, 0) if account else 0

    def set_chain_facts(self, facts: ChainFacts) -> None:
        self._chain_facts = facts

    # ── Resource accounting ──────────────────────────────────────────────

    @property
    def gas_used(self) -> int:
        return self._gas_used

    @property
    def gas_limit(self) -> int:
        return self._gas_limit

    def charge(self, cost: int) -> None:
        if cost < 0:
            raise ValueError(f"cost must be >= 0, got {cost}")
        if self._gas_used + cost > self._gas_limit:
            raise BudgetExhausted(self._gas_used + cost, self._gas_limit)
        self._gas_used += cost

    def reset_meter(self, gas_limit: int | None = None) -> None:
        self._gas_used = 0
        if gas_limit is not None:
            self._gas_limit = gas_limit

    # ── Snapshots ────────────────────────────────────────────────────────

    def snapshot(self) -> int:
        return self._journal.snapshot()

    def revert_to(self, snapshot: int) -> None:
        self._journal.revert_to(snapshot)

    def commit(self, snapshot: int) -> None:
        self._journal.commit(snapshot)

    @contextmanager
    def execution(self) -> Iterator[int]:
        """One top-level execution: fresh budget, all-or-nothing state.

        The outermost scope starts the meter at zero. A scope opened while a
        call is in flight or another execution is open (an aggregator served
        through ``call``) shares the enclosing budget.
        """
        if not self._frames and self._journal.open_scopes == 0:
            self.reset_meter()
        with self._journal.scope() as snapshot:
            yield snapshot

    # ── Introspection ────────────────────────────────────────────────────

    def code_length(self, address: Address) -> int:
        account = self._accounts.get(address)
        return len(account.code) if account else 0

    def balance(self, address: Address) -> int:
        account = self._accounts.get(address)
        return account.balance if account else 0

    def chain_facts(self) -> ChainFacts:
        return self._chain_facts

    # ── Invocation ───────────────────────────────────────────────────────

    def call(
        self,
        caller: Address,
        target: Address,
        data: bytes = b"",
        value: int = 0,
        *,
        static: bool = False,
    ) -> CallOutcome:
        parent = self._frames[-1] if self._frames else None
        static = static or (parent is not None and parent.static)
        depth = len(self._frames)

        self.charge(CALL_BASE_COST + CALLDATA_BYTE_COST * len(data) + (VALUE_TRANSFER_COST if value else 0))

        snapshot = self._journal.snapshot()
        frame = Frame(self, Address(caller), Address(target), value, static, depth)
        self._frames.append(frame)
        try:
            if depth >= self._max_depth:
                raise CallDepthExceeded(f"call depth {depth} reached limit {self._max_depth}")
            if value:
                if static:
                    raise StaticViolation("value transfer in static context")
                self._transfer(frame.caller, frame.address, value)
            account = self._accounts.get(frame.address)
            output = b""
            if account is not None and account.handler is not None:
                output = account.handler(frame, bytes(data)) or b""
        except Revert as r:
            self._journal.revert_to(snapshot)
            log.debug("host.call_reverted", target=str(frame.address), depth=depth, data_length=len(r.data))
            return CallOutcome(False, r.data)
        except BudgetExhausted:
            self._journal.revert_to(snapshot)
            raise
        except CallFault as fault:
            self._journal.revert_to(snapshot)
            log.debug(
                "host.call_fault",
                target=str(frame.address),
                depth=depth,
                error_type=type(fault).__name__,
                error_message=str(fault),
            )
            return CallOutcome(False, b"")
        except Exception as e:
            # Handler code is untrusted; a crash is a failed call, not a host error.
            self._journal.revert_to(snapshot)
            log.error(
                "host.handler_error",
                target=str(frame.address),
                depth=depth,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return CallOutcome(False, b"")
        finally:
            self._frames.pop()
        return CallOutcome(True, bytes(output))

    # ── Journaled mutations ──────────────────────────────────────────────

    def _ensure_account(self, address: Address) -> Account:
        account = self._accounts.get(address)
        if account is None:
            account = self._accounts[address] = Account()
            self._journal.record(lambda: self._accounts.pop(address, None))
        return account

    def _set_balance(self, account: Account, amount: int) -> None:
        old = account.balance
        account.balance = amount
        self._journal.record(lambda: setattr(account, "balance", old))

    def _transfer(self, sender: Address, recipient: Address, value: int) -> None:
        if value < 0:
            raise CallFault(f"negative value {value}")
        source = self._accounts.get(sender)
        if source is None or source.balance < value:
            raise InsufficientBalance(f"{sender} cannot transfer {value}")
        self._set_balance(source, source.balance - value)
        destination = self._ensure_account(recipient)
        self._set_balance(destination, destination.balance + value)

    def _load(self, address: Address, key: Hashable) -> int:
        self.charge(STORAGE_READ_COST)
        return self.storage_at(address, key)

    def _store(self, frame: Frame, key: Hashable, value: int) -> None:
        if frame.static:
            raise StaticViolation(f"storage write to {frame.address} in static context")
        self.charge(STORAGE_WRITE_COST)
        account = self._ensure_account(frame.address)
        storage = account.storage
        if key in storage:
            old = storage[key]
            self._journal.record(lambda: storage.__setitem__(key, old))
        else:
            self._journal.record(lambda: storage.pop(key, None))
        storage[key] = value
