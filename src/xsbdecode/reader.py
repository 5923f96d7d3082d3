from __future__ import annotations

import struct


class XsbFormatError(ValueError):
    def __init__(self, reason: str, offset: int | None = None) -> None:
        self.reason = reason
        self.offset = offset
        if offset is None:
            super().__init__(reason)
        else:
            super().__init__(f"{reason} (offset 0x{offset:X})")


_U8 = struct.Struct("<B")
_S8 = struct.Struct("<b")
_U16 = struct.Struct("<H")
_S16 = struct.Struct("<h")
_U32 = struct.Struct("<I")
_F32 = struct.Struct("<f")


class BinaryReader:
    """Random-access reader over an immutable buffer.

    Every seek and read is checked against the buffer size and raises
    XsbFormatError instead of returning short data.
    """

    def __init__(self, data: bytes) -> None:
        self._buf = memoryview(bytes(data))
        self._pos = 0

    def tell(self) -> int:
        return self._pos

    def remaining(self) -> int:
        return len(self._buf) - self._pos

    def seek(self, offset: int) -> None:
        if offset < 0 or offset > len(self._buf):
            raise XsbFormatError("Seek outside of buffer", offset)
        self._pos = offset

    def skip(self, size: int) -> None:
        if size <= 0:
            return
        self.read(size)

    def read(self, size: int) -> bytes:
        end = self._pos + size
        if size < 0 or end > len(self._buf):
            raise XsbFormatError(f"Unexpected end of data reading {size} bytes", self._pos)
        data = bytes(self._buf[self._pos : end])
        self._pos = end
        return data

    def _unpack(self, fmt: struct.Struct):
        return fmt.unpack(self.read(fmt.size))[0]

    def read_u8(self) -> int:
        return self._unpack(_U8)

    def read_s8(self) -> int:
        return self._unpack(_S8)

    def read_u16(self) -> int:
        return self._unpack(_U16)

    def read_s16(self) -> int:
        return self._unpack(_S16)

    def read_u24(self) -> int:
        data = self.read(3)
        return data[0] | (data[1] << 8) | (data[2] << 16)

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_f32(self) -> float:
        return float(self._unpack(_F32))

    def read_tag(self) -> bytes:
        # Tags are compared as raw big-endian bytes.
        return self.read(4)

    def read_string_fixed(self, size: int) -> str:
        data = self.read(size)
        end = data.find(b"\0")
        if end != -1:
            data = data[:end]
        return data.decode("ascii", errors="replace")

    def read_string(self) -> str:
        """Read an ASCII string ended by a NUL byte or the end of the buffer."""
        data = bytearray()
        while self._pos < len(self._buf):
            byte = self._buf[self._pos]
            self._pos += 1
            if byte == 0:
                break
            data.append(byte)
        return data.decode("ascii", errors="replace")
