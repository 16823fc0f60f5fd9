"""Tests for the tagged response codec."""

import pytest

from callbatch.codec.responses import (
    decode_response,
    decode_response_body,
    encode_response,
    encode_response_body,
)
from callbatch.core.errors import EncodeError, InvalidTag, MalformedPayload
from callbatch.core.types import Address, AddressData, CallOutcome, ChainFacts, OperationKind


class TestEncodeResponse:
    def test_response_repeats_discriminant(self):
        buffer = encode_response(OperationKind.BALANCES, [5])
        assert buffer[0] == OperationKind.BALANCES
        assert buffer[1:] == b"\x00\x00\x00\x01" + (5).to_bytes(32, "big")

    def test_static_call_body_is_list_of_bytes(self):
        body = encode_response_body(OperationKind.STATIC_CALL, [b"ab", b""])
        assert body == b"\x00\x00\x00\x02" + b"\x00\x00\x00\x02ab" + b"\x00\x00\x00\x00"

    def test_outcome_body(self):
        body = encode_response_body(OperationKind.STATIC_CALL_STRICT, [CallOutcome(False, b"x")])
        assert body == b"\x00\x00\x00\x01" + b"\x00" + b"\x00\x00\x00\x01x"

    def test_chain_facts_body_size(self):
        body = encode_response_body(OperationKind.CHAIN_DATA, ChainFacts())
        assert len(body) == 8 * 32 + 20

    def test_simulate_has_no_success_response(self):
        with pytest.raises(EncodeError):
            encode_response(OperationKind.SIMULATE, [])


class TestDecodeResponse:
    @pytest.mark.parametrize(
        "kind, result",
        [
            (OperationKind.STATIC_CALL, [b"\x01", b""]),
            (OperationKind.STATIC_CALL_STRICT, [CallOutcome(True, b"ok"), CallOutcome(False, b"")]),
            (OperationKind.STATIC_CALL_STRICT_PER_ITEM, []),
            (OperationKind.CODE_LENGTH, [0, 12]),
            (OperationKind.BALANCES, [2**200]),
            (OperationKind.ADDRESSES_DATA, [AddressData(balance=3, code_length=4)]),
            (
                OperationKind.CHAIN_DATA,
                ChainFacts(chain_id=10, block_number=5, proposer=Address(b"\x01" * 20), timestamp=1_700_000_000),
            ),
        ],
        ids=lambda v: v.name if isinstance(v, OperationKind) else None,
    )
    def test_decodes_what_was_encoded(self, kind, result):
        assert decode_response(encode_response(kind, result)) == (kind, result)

    def test_empty_response(self):
        with pytest.raises(MalformedPayload):
            decode_response(b"")

    def test_unknown_tag(self):
        with pytest.raises(InvalidTag):
            decode_response(b"\x09")

    def test_trailing_bytes(self):
        with pytest.raises(MalformedPayload):
            decode_response(encode_response(OperationKind.CODE_LENGTH, [1]) + b"\x00")

    def test_simulate_body(self):
        with pytest.raises(MalformedPayload):
            decode_response_body(OperationKind.SIMULATE, b"")
