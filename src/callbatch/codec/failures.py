"""
Failure payload codec.

A failure payload is ``[4-byte selector][body]``. The selector is the first
four bytes of ``sha256(signature)``, the same scheme the persistent
entrypoints use for their own selectors.

Examples:
    >>> from callbatch.core.errors import PerCallFailure
    >>> payload = encode_failure(PerCallFailure(1))
    >>> payload[:4] == selector_for("PerCallFailure(uint256)")
    True
    >>> decode_failure(payload).index
    1
"""

from __future__ import annotations

import hashlib

from callbatch.codec.wire import Reader, Writer, slice_bytes
from callbatch.core.errors import (
    FAILURE_TYPES,
    BatchFailure,
    BudgetExhausted,
    FallbackUnavailable,
    InvalidTag,
    MalformedPayload,
    PerCallFailure,
    SimulationReport,
    ValueRejected,
)
from callbatch.core.types import SimulatedOutcome

SELECTOR_SIZE = 4


def selector_for(signature: str) -> bytes:
    """First four bytes of the SHA-256 digest of ``signature``."""
    return hashlib.sha256(signature.encode("ascii")).digest()[:SELECTOR_SIZE]


FAILURE_SELECTORS: dict[bytes, type[BatchFailure]] = {
    selector_for(cls.signature): cls for cls in FAILURE_TYPES
}


def _write_simulated(writer: Writer, outcome: SimulatedOutcome) -> None:
    writer.bool_(outcome.success).bytes_(outcome.return_data).uint256(outcome.cost_used)


def _read_simulated(reader: Reader) -> SimulatedOutcome:
    return SimulatedOutcome(
        success=reader.bool_(),
        return_data=reader.bytes_(),
        cost_used=reader.uint256(),
    )


def encode_failure(failure: BatchFailure) -> bytes:
    writer = Writer().raw(selector_for(failure.signature))
    match failure:
        case InvalidTag(value=value) | ValueRejected(value=value):
            writer.uint256(value)
        case PerCallFailure(index=index):
            writer.uint256(index)
        case SimulationReport(outcomes=outcomes):
            writer.list_(outcomes, _write_simulated)
        case BudgetExhausted(used=used, limit=limit):
            writer.uint256(used).uint256(limit)
        case MalformedPayload(reason=reason):
            writer.bytes_(reason.encode("utf-8"))
        case FallbackUnavailable():
            pass
        case _:
            raise TypeError(f"No wire encoding for {type(failure).__name__}")
    return writer.getvalue()


def decode_failure(payload: bytes) -> BatchFailure:
    """Rebuild the failure a payload describes."""
    selector = slice_bytes(payload, 0, SELECTOR_SIZE)
    cls = FAILURE_SELECTORS.get(selector)
    if cls is None:
        raise MalformedPayload(f"unknown failure selector 0x{selector.hex()}")
    reader = Reader(slice_bytes(payload, SELECTOR_SIZE, len(payload) - SELECTOR_SIZE))
    failure: BatchFailure
    if cls is InvalidTag:
        failure = InvalidTag(reader.uint256())
    elif cls is ValueRejected:
        failure = ValueRejected(reader.uint256())
    elif cls is PerCallFailure:
        failure = PerCallFailure(reader.uint256())
    elif cls is SimulationReport:
        failure = SimulationReport(reader.list_(_read_simulated))
    elif cls is BudgetExhausted:
        failure = BudgetExhausted(reader.uint256(), reader.uint256())
    elif cls is MalformedPayload:
        raw = reader.bytes_()
        try:
            failure = MalformedPayload(raw.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise MalformedPayload("failure reason is not valid utf-8") from e
    else:
        failure = FallbackUnavailable()
    reader.finish()
    return failure


__all__ = ["SELECTOR_SIZE", "FAILURE_SELECTORS", "selector_for", "encode_failure", "decode_failure"]
