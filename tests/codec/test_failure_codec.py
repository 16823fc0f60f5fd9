"""Tests for failure payload encoding."""

import hashlib

import pytest

from callbatch.codec.failures import FAILURE_SELECTORS, SELECTOR_SIZE, decode_failure, encode_failure, selector_for
from callbatch.core.errors import (
    FAILURE_TYPES,
    BudgetExhausted,
    FallbackUnavailable,
    InvalidTag,
    MalformedPayload,
    PerCallFailure,
    SimulationReport,
    ValueRejected,
)
from callbatch.core.types import SimulatedOutcome


class TestSelectors:
    def test_selector_for(self):
        assert selector_for("InvalidTag(uint256)") == hashlib.sha256(b"InvalidTag(uint256)").digest()[:4]
        assert len(selector_for("anything()")) == SELECTOR_SIZE

    def test_every_failure_has_a_selector(self):
        assert set(FAILURE_SELECTORS.values()) == set(FAILURE_TYPES)


class TestEncodeFailure:
    def test_per_call_failure_carries_index_only(self):
        payload = encode_failure(PerCallFailure(3))
        assert payload == selector_for(PerCallFailure.signature) + (3).to_bytes(32, "big")

    def test_fallback_unavailable_has_empty_body(self):
        assert encode_failure(FallbackUnavailable()) == selector_for("FallbackUnavailable()")

    def test_simulation_report_layout(self):
        payload = encode_failure(SimulationReport([SimulatedOutcome(True, b"r", 7)]))
        body = payload[SELECTOR_SIZE:]
        assert body == b"\x00\x00\x00\x01" + b"\x01" + b"\x00\x00\x00\x01r" + (7).to_bytes(32, "big")


class TestDecodeFailure:
    def test_invalid_tag(self):
        failure = decode_failure(InvalidTag(99).payload)
        assert isinstance(failure, InvalidTag)
        assert failure.value == 99

    def test_value_rejected(self):
        failure = decode_failure(ValueRejected(10**18).payload)
        assert isinstance(failure, ValueRejected)
        assert failure.value == 10**18

    def test_per_call_failure(self):
        failure = decode_failure(PerCallFailure(2).payload)
        assert isinstance(failure, PerCallFailure)
        assert failure.index == 2

    def test_budget_exhausted(self):
        failure = decode_failure(BudgetExhausted(31, 30).payload)
        assert isinstance(failure, BudgetExhausted)
        assert (failure.used, failure.limit) == (31, 30)

    def test_malformed_payload_reason(self):
        failure = decode_failure(MalformedPayload("3 trailing byte(s)").payload)
        assert isinstance(failure, MalformedPayload)
        assert failure.reason == "3 trailing byte(s)"

    def test_simulation_report(self):
        outcomes = [SimulatedOutcome(True, b"\x01", 24_700), SimulatedOutcome(False, b"denied", 2_600)]
        failure = decode_failure(SimulationReport(outcomes).payload)
        assert isinstance(failure, SimulationReport)
        assert failure.outcomes == outcomes

    def test_fallback_unavailable(self):
        assert isinstance(decode_failure(FallbackUnavailable().payload), FallbackUnavailable)

    def test_unknown_selector(self):
        with pytest.raises(MalformedPayload) as exc_info:
            decode_failure(b"\xde\xad\xbe\xef")
        assert "deadbeef" in exc_info.value.reason

    def test_short_payload(self):
        with pytest.raises(MalformedPayload):
            decode_failure(b"\x01\x02")

    def test_trailing_bytes(self):
        with pytest.raises(MalformedPayload):
            decode_failure(PerCallFailure(1).payload + b"\x00")

    def test_reason_must_be_utf8(self):
        payload = selector_for(MalformedPayload.signature) + b"\x00\x00\x00\x01\xff"
        with pytest.raises(MalformedPayload) as exc_info:
            decode_failure(payload)
        assert "utf-8" in exc_info.value.reason
