"""Tests for the wire primitives (Writer / Reader)."""

import pytest

from callbatch.codec.wire import UINT256_MAX, Reader, Writer, slice_bytes
from callbatch.core.errors import EncodeError, MalformedPayload
from callbatch.core.types import Address


class TestSliceBytes:
    def test_in_bounds(self):
        assert slice_bytes(b"abcdef", 2, 3) == b"cde"

    def test_zero_length_at_end(self):
        assert slice_bytes(b"abc", 3, 0) == b""

    @pytest.mark.parametrize("offset, length", [(0, 4), (2, 2), (-1, 1), (0, -1)])
    def test_out_of_bounds(self, offset, length):
        with pytest.raises(MalformedPayload):
            slice_bytes(b"abc", offset, length)


class TestWriter:
    def test_layout_is_big_endian(self):
        out = Writer().u8(7).u32(258).uint256(1).getvalue()
        assert out == b"\x07" + b"\x00\x00\x01\x02" + b"\x00" * 31 + b"\x01"

    def test_bytes_are_length_prefixed(self):
        assert Writer().bytes_(b"hi").getvalue() == b"\x00\x00\x00\x02hi"

    def test_list_is_count_prefixed(self):
        out = Writer().list_([1, 2], Writer.u8).getvalue()
        assert out == b"\x00\x00\x00\x02\x01\x02"

    def test_bool(self):
        assert Writer().bool_(True).bool_(False).getvalue() == b"\x01\x00"

    def test_address(self):
        assert Writer().address(Address(b"\x09" * 20)).getvalue() == b"\x09" * 20

    @pytest.mark.parametrize("value", [-1, UINT256_MAX + 1, True])
    def test_uint256_range(self, value):
        with pytest.raises(EncodeError):
            Writer().uint256(value)

    def test_uint256_max(self):
        assert Writer().uint256(UINT256_MAX).getvalue() == b"\xff" * 32

    def test_u8_range(self):
        with pytest.raises(EncodeError):
            Writer().u8(256)

    def test_bytes32_length(self):
        with pytest.raises(EncodeError):
            Writer().bytes32(b"\x00" * 31)


class TestReader:
    def test_reads_in_order(self):
        buffer = Writer().u8(1).u32(2).uint256(3).bytes_(b"xy").bool_(True).getvalue()
        reader = Reader(buffer)
        assert reader.u8() == 1
        assert reader.u32() == 2
        assert reader.uint256() == 3
        assert reader.bytes_() == b"xy"
        assert reader.bool_() is True
        reader.finish()

    def test_bool_is_strict(self):
        with pytest.raises(MalformedPayload) as exc_info:
            Reader(b"\x02").bool_()
        assert "0 or 1" in exc_info.value.reason

    def test_truncated_integer(self):
        with pytest.raises(MalformedPayload):
            Reader(b"\x00" * 31).uint256()

    def test_bytes_length_beyond_buffer(self):
        with pytest.raises(MalformedPayload):
            Reader(b"\x00\x00\x00\x05abc").bytes_()

    def test_list_count_beyond_buffer(self):
        # Claims a billion items with nothing behind the prefix.
        with pytest.raises(MalformedPayload):
            Reader(b"\x3b\x9a\xca\x00").list_(Reader.u8)

    def test_finish_rejects_trailing_bytes(self):
        reader = Reader(b"\x01\x02")
        reader.u8()
        with pytest.raises(MalformedPayload) as exc_info:
            reader.finish()
        assert "trailing" in exc_info.value.reason

    def test_remaining(self):
        reader = Reader(b"\x00" * 5)
        reader.u32()
        assert reader.remaining == 1

    def test_address(self):
        assert Reader(b"\x07" * 20).address() == Address(b"\x07" * 20)
