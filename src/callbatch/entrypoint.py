"""
Persistent-entrypoint aggregator service.

The long-lived counterpart of the deployless shell: instead of one tagged
envelope it exposes one named entrypoint per operation kind, addressed on the
wire by a 4-byte selector (``sha256(signature)[:4]``). Calls whose selector is
not recognized are relayed verbatim to a configurable fallback aggregator and
its outcome is returned unchanged.

Manifesto:
    - **Same core, different front door:** Entrypoints build the same typed
      requests the deployless codec produces and run them through the same
      dispatcher
    - **No value at the door:** Native value sent to the service itself is
      rejected with ``ValueRejected``
    - **Fallback is configured, never assumed:** Without a fallback address,
      unrecognized calls fail with ``FallbackUnavailable``

Architecture:
    ::

        handle(calldata, value)
            │
            ├── value > 0 ──────────────► ValueRejected(value)
            │
            ├── selector known ─────────► decode_payload(kind, rest)
            │                               → dispatch in host.execution()
            │                               → encode_response_body
            │
            └── selector unknown ───────► host.call(fallback, calldata)
                                            → outcome relayed as-is

Examples:
    >>> from callbatch.host.memory import InMemoryHost
    >>> from callbatch.core.types import Address
    >>> host = InMemoryHost()
    >>> service = AggregatorService(host, Address(b"\\xaa" * 20))
    >>> service.code_lengths([Address.zero()])
    [0]
    >>> service.handle(b"", value=1).success
    False

Tags:
    entrypoint, selector, fallback, relay, callbatch

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence

from callbatch.codec.failures import SELECTOR_SIZE, selector_for
from callbatch.codec.requests import decode_payload
from callbatch.codec.responses import encode_response_body
from callbatch.core.errors import (
    BatchFailure,
    BudgetExhausted,
    ConfigError,
    FallbackUnavailable,
    ValueRejected,
)
from callbatch.core.settings import CallBatchSettings, get_settings
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
    ChainFacts,
    CodeLengthsRequest,
    ConditionalStaticCallSpec,
    OperationKind,
    Request,
    SimulateRequest,
    SimulatedOutcome,
    StaticCallSpec,
    TryAggregatePerItemRequest,
    TryAggregateRequest,
)
from callbatch.execution.dispatcher import OperationDispatcher
from callbatch.execution.executor import CallExecutor
from callbatch.host.memory import Frame, Revert
from callbatch.host.protocol import Host
from callbatch.logging import get_logger, push_context

log = get_logger(__name__)

ENTRYPOINT_SIGNATURES: dict[str, OperationKind] = {
    "aggregate((address,bytes)[])": OperationKind.STATIC_CALL,
    "tryAggregate(bool,(address,bytes)[])": OperationKind.STATIC_CALL_STRICT,
    "tryAggregate((address,bytes,bool)[])": OperationKind.STATIC_CALL_STRICT_PER_ITEM,
    "getCodeLengths(address[])": OperationKind.CODE_LENGTH,
    "simulate((address,bytes,uint256)[])": OperationKind.SIMULATE,
    "getBalances(address[])": OperationKind.BALANCES,
    "getAddressesData(address[])": OperationKind.ADDRESSES_DATA,
    "getChainData()": OperationKind.CHAIN_DATA,
}

ENTRYPOINT_SELECTORS: dict[bytes, OperationKind] = {
    selector_for(signature): kind for signature, kind in ENTRYPOINT_SIGNATURES.items()
}

KIND_SELECTORS: dict[OperationKind, bytes] = {kind: selector for selector, kind in ENTRYPOINT_SELECTORS.items()}

KIND_ENTRYPOINTS: dict[OperationKind, str] = {
    kind: signature.partition("(")[0] for signature, kind in ENTRYPOINT_SIGNATURES.items()
}


def entrypoint_selector(kind: OperationKind) -> bytes:
    return KIND_SELECTORS[kind]


class AggregatorService:
    """Long-lived aggregator bound to one host address."""

    def __init__(
        self,
        host: Host,
        address: Address,
        *,
        fallback: Address | None = None,
        settings: CallBatchSettings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._host = host
        self._address = Address(address)
        self._fallback = fallback or settings.fallback_address
        if self._fallback == self._address:
            raise ConfigError(f"Fallback aggregator {self._address} is the service itself")
        self._dispatcher = OperationDispatcher(CallExecutor(host, self._address))

    @property
    def address(self) -> Address:
        return self._address

    @property
    def fallback(self) -> Address | None:
        return self._fallback

    # ── Named entrypoints ────────────────────────────────────────────────

    def aggregate(self, calls: Iterable[StaticCallSpec]) -> list[bytes]:
        return self._run(AggregateRequest(calls))

    def try_aggregate(self, calls: Iterable[StaticCallSpec], require_success: bool) -> list[CallOutcome]:
        return self._run(TryAggregateRequest(require_success, calls))

    def try_aggregate_per_item(self, calls: Iterable[ConditionalStaticCallSpec]) -> list[CallOutcome]:
        return self._run(TryAggregatePerItemRequest(calls))

    def code_lengths(self, addresses: Iterable[Address]) -> list[int]:
        return self._run(CodeLengthsRequest(addresses))

    def balances(self, addresses: Iterable[Address]) -> list[int]:
        return self._run(BalancesRequest(addresses))

    def addresses_data(self, addresses: Iterable[Address]) -> list[AddressData]:
        return self._run(AddressesDataRequest(addresses))

    def chain_data(self) -> ChainFacts:
        return self._run(ChainDataRequest())

    def simulate(self, calls: Iterable[CallSpec]) -> list[SimulatedOutcome]:
        """Always raises ``SimulationReport``; the return type is never reached."""
        return self._run(SimulateRequest(calls))

    # ── Raw calldata ─────────────────────────────────────────────────────

    def handle(self, calldata: bytes, value: int = 0) -> CallOutcome:
        """Serve raw calldata; failures come back as ``success=False`` payloads."""
        try:
            return self._handle(bytes(calldata), value)
        except BatchFailure as failure:
            return CallOutcome(False, failure.payload)

    def __call__(self, frame: Frame, data: bytes) -> bytes:
        """Serve a call from inside an ``InMemoryHost``."""
        try:
            outcome = self._handle(data, frame.value)
        except BudgetExhausted:
            raise
        except BatchFailure as failure:
            raise Revert(failure.payload) from failure
        if not outcome.success:
            raise Revert(outcome.return_data)
        return outcome.return_data

    def _handle(self, calldata: bytes, value: int) -> CallOutcome:
        if value:
            raise ValueRejected(value)
        kind = ENTRYPOINT_SELECTORS.get(calldata[:SELECTOR_SIZE]) if len(calldata) >= SELECTOR_SIZE else None
        if kind is None:
            return self._relay(calldata)
        request = decode_payload(kind, calldata[SELECTOR_SIZE:])
        return CallOutcome(True, encode_response_body(kind, self._run(request)))

    def _relay(self, calldata: bytes) -> CallOutcome:
        if self._fallback is None:
            raise FallbackUnavailable()
        log.debug("entrypoint.relay", fallback=str(self._fallback), calldata_length=len(calldata))
        with self._host.execution():
            return self._host.call(self._address, self._fallback, calldata, 0)

    def _run(self, request: Request) -> BatchResponse:
        entrypoint = KIND_ENTRYPOINTS[request.kind]
        token = push_context(
            batch_id=uuid.uuid4().hex[:12],
            mode="entrypoint",
            kind=request.kind.name.lower(),
            entrypoint=entrypoint,
        )
        try:
            with self._host.execution():
                return self._dispatcher.dispatch(request)
        except BatchFailure as failure:
            failure.with_context(entrypoint=entrypoint)
            raise
        finally:
            token.restore()


def entrypoint_calldata(kind: OperationKind, payload: bytes) -> bytes:
    """Selector of ``kind`` followed by an encoded request payload."""
    return entrypoint_selector(kind) + payload


def selectors_table() -> Sequence[tuple[str, str, OperationKind]]:
    return [(f"0x{selector_for(sig).hex()}", sig, kind) for sig, kind in ENTRYPOINT_SIGNATURES.items()]
