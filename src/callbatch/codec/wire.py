"""
Wire primitives.

Frame layout is fixed per primitive, all integers big-endian:

- u8      : 1 byte (discriminant only)
- u32     : 4 bytes (every length and count prefix)
- uint256 : 32 bytes (amounts, lengths, indices, costs)
- address : 20 raw bytes
- bytes32 : 32 raw bytes
- bool    : 1 byte, 0x00 or 0x01 only
- bytes   : [u32 len][raw]
- list<T> : [u32 count][item0][item1]...

``Reader`` never returns a partially decoded value: every read goes through
``slice_bytes`` and any shortfall raises ``MalformedPayload``.
"""

from __future__ import annotations

import struct
from collections.abc import Callable, Iterable
from typing import TypeVar

from callbatch.core.errors import EncodeError, MalformedPayload
from callbatch.core.types import ADDRESS_LENGTH, HASH_LENGTH, Address

T = TypeVar("T")

UINT256_MAX = 2**256 - 1
UINT256_SIZE = 32

_U8 = struct.Struct(">B")
_U32 = struct.Struct(">I")
U32_MAX = 2**32 - 1


def slice_bytes(buffer: bytes, offset: int, length: int) -> bytes:
    """Return ``length`` bytes of ``buffer`` starting at ``offset``."""
    if offset < 0 or length < 0 or offset + length > len(buffer):
        raise MalformedPayload(
            f"need {length} byte(s) at offset {offset}, buffer has {len(buffer)}"
        )
    return bytes(buffer[offset : offset + length])


class Writer:
    """Append-only encoder for the primitives above."""

    def __init__(self) -> None:
        self._parts: list[bytes] = []

    def raw(self, data: bytes) -> Writer:
        self._parts.append(bytes(data))
        return self

    def u8(self, value: int) -> Writer:
        if not 0 <= value <= 0xFF:
            raise EncodeError(f"u8 out of range: {value}")
        return self.raw(_U8.pack(value))

    def u32(self, value: int) -> Writer:
        if not 0 <= value <= U32_MAX:
            raise EncodeError(f"u32 out of range: {value}")
        return self.raw(_U32.pack(value))

    def uint256(self, value: int) -> Writer:
        if isinstance(value, bool) or not 0 <= value <= UINT256_MAX:
            raise EncodeError(f"uint256 out of range: {value!r}")
        return self.raw(value.to_bytes(UINT256_SIZE, "big"))

    def address(self, value: Address) -> Writer:
        return self.raw(Address(value))

    def bytes32(self, value: bytes) -> Writer:
        if len(value) != HASH_LENGTH:
            raise EncodeError(f"bytes32 must be {HASH_LENGTH} bytes, got {len(value)}")
        return self.raw(value)

    def bool_(self, value: bool) -> Writer:
        return self.raw(b"\x01" if value else b"\x00")

    def bytes_(self, value: bytes) -> Writer:
        self.u32(len(value))
        return self.raw(value)

    def list_(self, items: Iterable[T], write_item: Callable[[Writer, T], object]) -> Writer:
        items = list(items)
        self.u32(len(items))
        for item in items:
            write_item(self, item)
        return self

    def getvalue(self) -> bytes:
        return b"".join(self._parts)


class Reader:
    """Strict decoder over an immutable buffer."""

    def __init__(self, buffer: bytes) -> None:
        self._buffer = bytes(buffer)
        self._offset = 0

    @property
    def remaining(self) -> int:
        return len(self._buffer) - self._offset

    def take(self, length: int) -> bytes:
        chunk = slice_bytes(self._buffer, self._offset, length)
        self._offset += length
        return chunk

    def u8(self) -> int:
        return _U8.unpack(self.take(1))[0]

    def u32(self) -> int:
        return _U32.unpack(self.take(4))[0]

    def uint256(self) -> int:
        return int.from_bytes(self.take(UINT256_SIZE), "big")

    def address(self) -> Address:
        return Address(self.take(ADDRESS_LENGTH))

    def bytes32(self) -> bytes:
        return self.take(HASH_LENGTH)

    def bool_(self) -> bool:
        flag = self.u8()
        if flag > 1:
            raise MalformedPayload(f"bool must be 0 or 1, got {flag}")
        return flag == 1

    def bytes_(self) -> bytes:
        return self.take(self.u32())

    def list_(self, read_item: Callable[[Reader], T]) -> list[T]:
        count = self.u32()
        # Every item occupies at least one byte.
        if count > self.remaining:
            raise MalformedPayload(f"list of {count} item(s) exceeds {self.remaining} remaining byte(s)")
        return [read_item(self) for _ in range(count)]

    def finish(self) -> None:
        if self.remaining:
            raise MalformedPayload(f"{self.remaining} trailing byte(s)")


__all__ = ["UINT256_MAX", "slice_bytes", "Writer", "Reader"]
