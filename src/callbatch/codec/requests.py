"""
Request codec.

Turns a tagged byte envelope into exactly one typed request and back.

Manifesto:
    - **Tag first:** The discriminant is validated before a single payload
      byte is read; an unknown tag fails with ``InvalidTag`` and nothing
      downstream runs
    - **Atomic decode:** A request object exists only if the whole payload
      parsed and no bytes were left over
    - **One shape per tag:** ``decode_payload`` is a single ``match`` over
      ``OperationKind``

Examples:
    >>> from callbatch.core.types import Address, CodeLengthsRequest
    >>> request = CodeLengthsRequest([Address.zero()])
    >>> decode_request(encode_request(request)) == request
    True
    >>> decode_request(bytes([99]))
    Traceback (most recent call last):
    ...
    callbatch.core.errors.InvalidTag: Invalid operation tag: 99

Tags:
    codec, envelope, discriminant, callbatch

Doc-Types:
    - API Reference
    - Wire Format Reference
"""

from __future__ import annotations

from typing import assert_never

from callbatch.codec.wire import Reader, Writer, slice_bytes
from callbatch.core.errors import InvalidTag, MalformedPayload
from callbatch.core.types import (
    AddressesDataRequest,
    AggregateRequest,
    BalancesRequest,
    CallSpec,
    ChainDataRequest,
    CodeLengthsRequest,
    ConditionalStaticCallSpec,
    OperationKind,
    Request,
    SimulateRequest,
    StaticCallSpec,
    TryAggregatePerItemRequest,
    TryAggregateRequest,
)


def parse_kind(tag: int) -> OperationKind:
    """Validate a discriminant against the closed set of kinds."""
    try:
        return OperationKind(tag)
    except ValueError:
        raise InvalidTag(tag) from None


# ── Item readers / writers ───────────────────────────────────────────────


def _read_static_call(reader: Reader) -> StaticCallSpec:
    return StaticCallSpec(target=reader.address(), data=reader.bytes_())


def _read_conditional_call(reader: Reader) -> ConditionalStaticCallSpec:
    return ConditionalStaticCallSpec(
        target=reader.address(),
        data=reader.bytes_(),
        require_success=reader.bool_(),
    )


def _read_call(reader: Reader) -> CallSpec:
    return CallSpec(target=reader.address(), data=reader.bytes_(), value=reader.uint256())


def _read_address(reader: Reader):
    return reader.address()


def _write_static_call(writer: Writer, spec: StaticCallSpec) -> None:
    writer.address(spec.target).bytes_(spec.data)


def _write_conditional_call(writer: Writer, spec: ConditionalStaticCallSpec) -> None:
    writer.address(spec.target).bytes_(spec.data).bool_(spec.require_success)


def _write_call(writer: Writer, spec: CallSpec) -> None:
    writer.address(spec.target).bytes_(spec.data).uint256(spec.value)


# ── Decode ───────────────────────────────────────────────────────────────


def decode_request(envelope: bytes) -> Request:
    """Decode ``[u8 discriminant][payload]`` into a typed request."""
    if not envelope:
        raise MalformedPayload("empty envelope")
    kind = parse_kind(envelope[0])
    return decode_payload(kind, slice_bytes(envelope, 1, len(envelope) - 1))


def decode_payload(kind: OperationKind, payload: bytes) -> Request:
    """Decode the payload shape fixed by ``kind``."""
    reader = Reader(payload)
    request: Request
    match kind:
        case OperationKind.STATIC_CALL:
            request = AggregateRequest(reader.list_(_read_static_call))
        case OperationKind.STATIC_CALL_STRICT:
            require_success = reader.bool_()
            request = TryAggregateRequest(require_success, reader.list_(_read_static_call))
        case OperationKind.STATIC_CALL_STRICT_PER_ITEM:
            request = TryAggregatePerItemRequest(reader.list_(_read_conditional_call))
        case OperationKind.CODE_LENGTH:
            request = CodeLengthsRequest(reader.list_(_read_address))
        case OperationKind.SIMULATE:
            request = SimulateRequest(reader.list_(_read_call))
        case OperationKind.BALANCES:
            request = BalancesRequest(reader.list_(_read_address))
        case OperationKind.ADDRESSES_DATA:
            request = AddressesDataRequest(reader.list_(_read_address))
        case OperationKind.CHAIN_DATA:
            request = ChainDataRequest()
        case _:
            assert_never(kind)
    reader.finish()
    return request


# ── Encode ───────────────────────────────────────────────────────────────


def encode_request(request: Request) -> bytes:
    """Encode a typed request as a tagged envelope."""
    return bytes([request.kind]) + encode_payload(request)


def encode_payload(request: Request) -> bytes:
    writer = Writer()
    match request:
        case AggregateRequest(calls=calls):
            writer.list_(calls, _write_static_call)
        case TryAggregateRequest(require_success=require_success, calls=calls):
            writer.bool_(require_success).list_(calls, _write_static_call)
        case TryAggregatePerItemRequest(calls=calls):
            writer.list_(calls, _write_conditional_call)
        case CodeLengthsRequest(addresses=addresses) | BalancesRequest(addresses=addresses) | AddressesDataRequest(
            addresses=addresses
        ):
            writer.list_(addresses, Writer.address)
        case SimulateRequest(calls=calls):
            writer.list_(calls, _write_call)
        case ChainDataRequest():
            pass
        case _:
            assert_never(request)
    return writer.getvalue()


__all__ = [
    "parse_kind",
    "decode_request",
    "decode_payload",
    "encode_request",
    "encode_payload",
]
