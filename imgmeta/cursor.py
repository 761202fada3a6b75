# cursor.py

from __future__ import annotations

import struct
from typing import Optional, Union

from imgmeta.model import BufferOverrunError

Buffer = Union[bytes, bytearray]

_U16 = struct.Struct(">H")
_U32 = struct.Struct(">I")


class ByteCursor:
    # Позиция чтения в неизменяемом буфере.
    # Любое чтение сначала проверяет границы, поэтому выйти за конец буфера нельзя
    __slots__ = ("data", "position", "_view")

    def __init__(self, data: Buffer, position: int = 0) -> None:
        if position < 0:
            raise ValueError(f"cursor position must not be negative: {position}")
        if isinstance(data, memoryview):
            data = data.tobytes()
        self.data = data
        self.position = position
        self._view = memoryview(data)

    def __len__(self) -> int:
        return len(self.data)

    @property
    def remaining(self) -> int:
        return max(0, len(self.data) - self.position)

    def has(self, n: int) -> bool:
        return n >= 0 and self.position + n <= len(self.data)

    def _require(self, n: int) -> None:
        if not self.has(n):
            raise BufferOverrunError(self.position, n, self.remaining)

    def peek_u8(self, offset: int = 0) -> Optional[int]:
        idx = self.position + offset
        if 0 <= idx < len(self.data):
            return self.data[idx]
        return None

    def read_u16(self) -> int:
        self._require(2)
        value = _U16.unpack_from(self.data, self.position)[0]
        self.position += 2
        return value

    def read_u32(self) -> int:
        self._require(4)
        value = _U32.unpack_from(self.data, self.position)[0]
        self.position += 4
        return value

    def view(self, n: int) -> memoryview:
        # Срез без копирования
        self._require(n)
        out = self._view[self.position:self.position + n]
        self.position += n
        return out

    def read_bytes(self, n: int) -> bytes:
        return bytes(self.view(n))

    def find(self, byte: int, start: Optional[int] = None) -> int:
        begin = self.position if start is None else start
        return self.data.find(bytes((byte,)), begin)

    def seek(self, position: int) -> None:
        # Разрешена позиция ровно на конце буфера (исчерпанные данные)
        if position < 0 or position > len(self.data):
            raise BufferOverrunError(position, 0, len(self.data))
        self.position = position


__all__ = ["ByteCursor", "Buffer"]
