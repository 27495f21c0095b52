"""MSB-first bit packing shared by the image encoders."""

from __future__ import annotations


class BitWriter:
    """Accumulates single bits into bytes, most significant bit first.

    Every eighth bit completes a byte. Bits written after the last complete
    byte stay pending until more bits arrive or :meth:`pad` is called.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._accumulator = 0
        self._pending = 0

    def write_bit(self, bit: bool) -> None:
        """Append one bit; the first bit of a byte lands in bit 7."""
        self._accumulator = (self._accumulator << 1) | (1 if bit else 0)
        self._pending += 1
        if self._pending == 8:
            self._buffer.append(self._accumulator)
            self._accumulator = 0
            self._pending = 0

    def pad(self) -> None:
        """Fill the current byte with zero bits up to the byte boundary."""
        while self._pending:
            self.write_bit(False)

    def write_bytes(self, data: bytes) -> None:
        """Append raw bytes. The writer must be byte aligned."""
        if self._pending:
            raise ValueError(f"Cannot write raw bytes with {self._pending} pending bits")
        self._buffer.extend(data)

    @property
    def bit_length(self) -> int:
        return len(self._buffer) * 8 + self._pending

    def getvalue(self) -> bytes:
        """Return the completed bytes. Pending bits are not included."""
        return bytes(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)
