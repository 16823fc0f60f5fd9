"""
Data model for batched calls.

Every request that crosses the wire is one of eight operation kinds. Each kind
fixes the shape of its payload, so the request side is modelled as a closed
union of frozen dataclasses rather than a class hierarchy: the dispatcher
pattern-matches over the union and a type checker flags any kind it forgets.

Manifesto:
    - **One discriminant, one shape:** ``OperationKind`` fully determines the
      payload layout; a request object never admits two interpretations
    - **Immutable values:** Specs and outcomes are frozen, slotted dataclasses
      created per invocation and thrown away afterwards
    - **Index alignment:** Responses are plain lists whose position ``i``
      answers request item ``i``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        Request (union)                        │
        ├──────────────────────────────────────────────────────────────┤
        │  AggregateRequest            StaticCallSpec[]                │
        │  TryAggregateRequest         bool + StaticCallSpec[]         │
        │  TryAggregatePerItemRequest  ConditionalStaticCallSpec[]     │
        │  CodeLengthsRequest          Address[]                       │
        │  SimulateRequest             CallSpec[]                      │
        │  BalancesRequest             Address[]                       │
        │  AddressesDataRequest        Address[]                       │
        │  ChainDataRequest            (no items)                      │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> target = Address.parse("0x" + "11" * 20)
    >>> request = TryAggregateRequest(False, [StaticCallSpec(target, b"\\x01")])
    >>> request.kind
    <OperationKind.STATIC_CALL_STRICT: 1>
    >>> len(request.calls)
    1

Tags:
    data-model, sum-type, batching, callbatch

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar, Union

from callbatch.core.errors import AddressError

ADDRESS_LENGTH = 20
HASH_LENGTH = 32


class Address(bytes):
    """A 20-byte account address.

    Behaves as ``bytes`` everywhere (hashing, comparison, concatenation) but
    refuses to exist with the wrong length and renders as ``0x``-prefixed hex.
    """

    def __new__(cls, value: bytes | bytearray | memoryview) -> Address:
        raw = bytes(value)
        if len(raw) != ADDRESS_LENGTH:
            raise AddressError(
                f"Address must be {ADDRESS_LENGTH} bytes, got {len(raw)}",
                value=raw.hex(),
            )
        return super().__new__(cls, raw)

    @classmethod
    def parse(cls, value: str | bytes | Address) -> Address:
        """Build an address from ``0x`` hex text or raw bytes."""
        if isinstance(value, Address):
            return value
        if isinstance(value, str):
            text = value[2:] if value[:2].lower() == "0x" else value
            try:
                raw = bytes.fromhex(text)
            except ValueError as e:
                raise AddressError(f"Address is not valid hex: {value!r}", value=value, cause=e) from e
            return cls(raw)
        return cls(value)

    @classmethod
    def zero(cls) -> Address:
        return cls(bytes(ADDRESS_LENGTH))

    def __str__(self) -> str:
        return "0x" + self.hex()

    def __repr__(self) -> str:
        return f"Address('{self}')"


class OperationKind(IntEnum):
    """Closed set of request discriminants (the first envelope byte)."""

    STATIC_CALL = 0
    STATIC_CALL_STRICT = 1
    STATIC_CALL_STRICT_PER_ITEM = 2
    CODE_LENGTH = 3
    SIMULATE = 4
    BALANCES = 5
    ADDRESSES_DATA = 6
    CHAIN_DATA = 7


# =============================================================================
# CALL SPECS
# =============================================================================


@dataclass(frozen=True, slots=True)
class StaticCallSpec:
    """A read-only call: target plus call data."""

    target: Address
    data: bytes = b""


@dataclass(frozen=True, slots=True)
class ConditionalStaticCallSpec:
    """A read-only call that carries its own failure policy."""

    target: Address
    data: bytes = b""
    require_success: bool = True


@dataclass(frozen=True, slots=True)
class CallSpec:
    """A mutating call that may transfer ``value`` to the target."""

    target: Address
    data: bytes = b""
    value: int = 0


# =============================================================================
# OUTCOMES
# =============================================================================


@dataclass(frozen=True, slots=True)
class CallOutcome:
    success: bool
    return_data: bytes = b""


@dataclass(frozen=True, slots=True)
class SimulatedOutcome:
    """Outcome of a simulated call, including the resources it consumed."""

    success: bool
    return_data: bytes
    cost_used: int


@dataclass(frozen=True, slots=True)
class AddressData:
    balance: int
    code_length: int


@dataclass(frozen=True, slots=True)
class ChainFacts:
    """Environment facts reported by a ``ChainData`` request.

    Attributes:
        chain_id: Identifier of the environment
        block_number: Current height
        block_hash: Hash of the previous block (32 bytes)
        base_fee: Fee basis per resource unit
        proposer: Address credited with the current block
        timestamp: Current block time (seconds)
        randomness: Randomness seed of the current block (32 bytes)
        gas_limit: Resource limit of the current block
        gas_price: Unit price paid by the current execution
    """

    chain_id: int = 1
    block_number: int = 0
    block_hash: bytes = bytes(HASH_LENGTH)
    base_fee: int = 0
    proposer: Address = field(default_factory=Address.zero)
    timestamp: int = 0
    randomness: bytes = bytes(HASH_LENGTH)
    gas_limit: int = 30_000_000
    gas_price: int = 0


# =============================================================================
# REQUESTS
# =============================================================================


def _freeze(items: Iterable) -> tuple:
    return tuple(items)


@dataclass(frozen=True, slots=True)
class AggregateRequest:
    """Every call must succeed; the first failure aborts the batch."""

    kind: ClassVar[OperationKind] = OperationKind.STATIC_CALL

    calls: tuple[StaticCallSpec, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "calls", _freeze(self.calls))


@dataclass(frozen=True, slots=True)
class TryAggregateRequest:
    """Batch-level flag switches between abort-on-failure and collect-all."""

    kind: ClassVar[OperationKind] = OperationKind.STATIC_CALL_STRICT

    require_success: bool
    calls: tuple[StaticCallSpec, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "calls", _freeze(self.calls))


@dataclass(frozen=True, slots=True)
class TryAggregatePerItemRequest:
    """Each item decides whether its own failure aborts the batch."""

    kind: ClassVar[OperationKind] = OperationKind.STATIC_CALL_STRICT_PER_ITEM

    calls: tuple[ConditionalStaticCallSpec, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "calls", _freeze(self.calls))


@dataclass(frozen=True, slots=True)
class CodeLengthsRequest:
    kind: ClassVar[OperationKind] = OperationKind.CODE_LENGTH

    addresses: tuple[Address, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "addresses", _freeze(self.addresses))


@dataclass(frozen=True, slots=True)
class SimulateRequest:
    """Mutating calls whose effects are always discarded."""

    kind: ClassVar[OperationKind] = OperationKind.SIMULATE

    calls: tuple[CallSpec, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "calls", _freeze(self.calls))


@dataclass(frozen=True, slots=True)
class BalancesRequest:
    kind: ClassVar[OperationKind] = OperationKind.BALANCES

    addresses: tuple[Address, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "addresses", _freeze(self.addresses))


@dataclass(frozen=True, slots=True)
class AddressesDataRequest:
    kind: ClassVar[OperationKind] = OperationKind.ADDRESSES_DATA

    addresses: tuple[Address, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "addresses", _freeze(self.addresses))


@dataclass(frozen=True, slots=True)
class ChainDataRequest:
    kind: ClassVar[OperationKind] = OperationKind.CHAIN_DATA


Request = Union[
    AggregateRequest,
    TryAggregateRequest,
    TryAggregatePerItemRequest,
    CodeLengthsRequest,
    SimulateRequest,
    BalancesRequest,
    AddressesDataRequest,
    ChainDataRequest,
]

# Success responses; Simulate never produces one.
BatchResponse = Union[
    list[bytes],
    list[CallOutcome],
    list[int],
    list[AddressData],
    ChainFacts,
]


__all__ = [
    "ADDRESS_LENGTH",
    "HASH_LENGTH",
    "Address",
    "OperationKind",
    # Specs
    "StaticCallSpec",
    "ConditionalStaticCallSpec",
    "CallSpec",
    # Outcomes
    "CallOutcome",
    "SimulatedOutcome",
    "AddressData",
    "ChainFacts",
    # Requests
    "AggregateRequest",
    "TryAggregateRequest",
    "TryAggregatePerItemRequest",
    "CodeLengthsRequest",
    "SimulateRequest",
    "BalancesRequest",
    "AddressesDataRequest",
    "ChainDataRequest",
    "Request",
    "BatchResponse",
]
