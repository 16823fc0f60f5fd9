"""
Response encoder.

A success response repeats the request discriminant and is followed by the
result body of that kind. The persistent entrypoints, whose selector already
names the kind, use the untagged body alone.

``Simulate`` has no success response: its outcomes always travel as a
``SimulationReport`` failure payload (see ``callbatch.codec.failures``).
"""

from __future__ import annotations

from typing import assert_never

from callbatch.codec.requests import parse_kind
from callbatch.codec.wire import Reader, Writer, slice_bytes
from callbatch.core.errors import EncodeError, MalformedPayload
from callbatch.core.types import (
    AddressData,
    BatchResponse,
    CallOutcome,
    ChainFacts,
    OperationKind,
)


def _write_outcome(writer: Writer, outcome: CallOutcome) -> None:
    writer.bool_(outcome.success).bytes_(outcome.return_data)


def _read_outcome(reader: Reader) -> CallOutcome:
    return CallOutcome(success=reader.bool_(), return_data=reader.bytes_())


def _write_address_data(writer: Writer, data: AddressData) -> None:
    writer.uint256(data.balance).uint256(data.code_length)


def _read_address_data(reader: Reader) -> AddressData:
    return AddressData(balance=reader.uint256(), code_length=reader.uint256())


def _write_chain_facts(writer: Writer, facts: ChainFacts) -> None:
    (
        writer.uint256(facts.chain_id)
        .uint256(facts.block_number)
        .bytes32(facts.block_hash)
        .uint256(facts.base_fee)
        .address(facts.proposer)
        .uint256(facts.timestamp)
        .bytes32(facts.randomness)
        .uint256(facts.gas_limit)
        .uint256(facts.gas_price)
    )


def _read_chain_facts(reader: Reader) -> ChainFacts:
    return ChainFacts(
        chain_id=reader.uint256(),
        block_number=reader.uint256(),
        block_hash=reader.bytes32(),
        base_fee=reader.uint256(),
        proposer=reader.address(),
        timestamp=reader.uint256(),
        randomness=reader.bytes32(),
        gas_limit=reader.uint256(),
        gas_price=reader.uint256(),
    )


def encode_response_body(kind: OperationKind, result: BatchResponse) -> bytes:
    """Encode the result body of ``kind`` without the discriminant."""
    writer = Writer()
    match kind:
        case OperationKind.STATIC_CALL:
            writer.list_(result, Writer.bytes_)
        case OperationKind.STATIC_CALL_STRICT | OperationKind.STATIC_CALL_STRICT_PER_ITEM:
            writer.list_(result, _write_outcome)
        case OperationKind.CODE_LENGTH | OperationKind.BALANCES:
            writer.list_(result, Writer.uint256)
        case OperationKind.ADDRESSES_DATA:
            writer.list_(result, _write_address_data)
        case OperationKind.CHAIN_DATA:
            _write_chain_facts(writer, result)
        case OperationKind.SIMULATE:
            raise EncodeError("Simulate results are reported as a failure payload, not a response")
        case _:
            assert_never(kind)
    return writer.getvalue()


def decode_response_body(kind: OperationKind, body: bytes) -> BatchResponse:
    reader = Reader(body)
    result: BatchResponse
    match kind:
        case OperationKind.STATIC_CALL:
            result = reader.list_(Reader.bytes_)
        case OperationKind.STATIC_CALL_STRICT | OperationKind.STATIC_CALL_STRICT_PER_ITEM:
            result = reader.list_(_read_outcome)
        case OperationKind.CODE_LENGTH | OperationKind.BALANCES:
            result = reader.list_(Reader.uint256)
        case OperationKind.ADDRESSES_DATA:
            result = reader.list_(_read_address_data)
        case OperationKind.CHAIN_DATA:
            result = _read_chain_facts(reader)
        case OperationKind.SIMULATE:
            raise MalformedPayload("Simulate has no success response")
        case _:
            assert_never(kind)
    reader.finish()
    return result


def encode_response(kind: OperationKind, result: BatchResponse) -> bytes:
    """Encode a tagged success response."""
    return bytes([kind]) + encode_response_body(kind, result)


def decode_response(buffer: bytes) -> tuple[OperationKind, BatchResponse]:
    """Decode a tagged success response into ``(kind, result)``."""
    if not buffer:
        raise MalformedPayload("empty response")
    kind = parse_kind(buffer[0])
    return kind, decode_response_body(kind, slice_bytes(buffer, 1, len(buffer) - 1))


__all__ = [
    "encode_response",
    "decode_response",
    "encode_response_body",
    "decode_response_body",
]
