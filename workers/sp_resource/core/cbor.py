"""
CBOR primitives — a bounded-buffer encoder and a cursor-style reader.

Only the subset of RFC 8949 the security-profile payload needs is
*produced* (unsigned ints, text strings, definite arrays and maps), but
the reader can step over any well-formed item so that unknown keys in a
map never desynchronize the cursor.

Encoder contract:
  - Writes into a fixed-capacity buffer.
  - When an item does not fit, nothing more is written but the encoder
    keeps counting, so ``bytes_needed`` is the exact overflow.
  - Definite container lengths are checked on close.

Reader contract:
  - Every read leaves the cursor on the next item.
  - ``skip_value`` consumes one complete item including all nested
    content, iteratively with an explicit stack.
"""
import struct
from typing import List, Optional, Tuple

from sp_resource.core.errors import (
    DecodeFailure,
    EncodeFailure,
    EncodeOverflow,
    InvalidArgument,
)

# ── Major types ──────────────────────────────────────────────────────────────

MAJOR_UINT = 0
MAJOR_NEGINT = 1
MAJOR_BYTES = 2
MAJOR_TEXT = 3
MAJOR_ARRAY = 4
MAJOR_MAP = 5
MAJOR_TAG = 6
MAJOR_SIMPLE = 7

MAJOR_NAMES = {
    MAJOR_UINT: "unsigned integer",
    MAJOR_NEGINT: "negative integer",
    MAJOR_BYTES: "byte string",
    MAJOR_TEXT: "text string",
    MAJOR_ARRAY: "array",
    MAJOR_MAP: "map",
    MAJOR_TAG: "tag",
    MAJOR_SIMPLE: "simple/float",
}

_AI_1BYTE = 24
_AI_2BYTE = 25
_AI_4BYTE = 26
_AI_8BYTE = 27
_AI_INDEFINITE = 31

BREAK = 0xFF

# Majors for which additional info 31 (indefinite length) is legal.
_INDEFINITE_OK = {MAJOR_BYTES, MAJOR_TEXT, MAJOR_ARRAY, MAJOR_MAP, MAJOR_SIMPLE}

UINT64_MAX = 0xFFFFFFFFFFFFFFFF


# ── Encoder ──────────────────────────────────────────────────────────────────

class CborEncoder:
    """Definite-length CBOR encoder over a buffer of fixed capacity."""

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise InvalidArgument(f"CBOR buffer capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._buf = bytearray(capacity)
        self._offset = 0
        # Items still owed by each open container, innermost last.
        self._open: List[int] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def overflowed(self) -> bool:
        return self._offset > self._capacity

    @property
    def bytes_needed(self) -> int:
        """Additional bytes required beyond capacity (0 if it all fit)."""
        return max(0, self._offset - self._capacity)

    def _append(self, data: bytes) -> None:
        end = self._offset + len(data)
        if end <= self._capacity:
            self._buf[self._offset:end] = data
        self._offset = end

    def _count_item(self) -> None:
        if not self._open:
            return
        if self._open[-1] == 0:
            raise EncodeFailure("too many items for CBOR container")
        self._open[-1] -= 1

    def _head(self, major: int, value: int) -> None:
        if value < 0:
            raise EncodeFailure(f"negative CBOR argument {value}")
        ib = major << 5
        if value < _AI_1BYTE:
            self._append(bytes((ib | value,)))
        elif value <= 0xFF:
            self._append(struct.pack(">BB", ib | _AI_1BYTE, value))
        elif value <= 0xFFFF:
            self._append(struct.pack(">BH", ib | _AI_2BYTE, value))
        elif value <= 0xFFFFFFFF:
            self._append(struct.pack(">BI", ib | _AI_4BYTE, value))
        elif value <= UINT64_MAX:
            self._append(struct.pack(">BQ", ib | _AI_8BYTE, value))
        else:
            raise EncodeFailure(f"CBOR argument {value} exceeds 64 bits")

    def encode_uint(self, value: int) -> None:
        self._count_item()
        self._head(MAJOR_UINT, value)

    def encode_text_string(self, text: str) -> None:
        data = text.encode("utf-8")
        self._count_item()
        self._head(MAJOR_TEXT, len(data))
        self._append(data)

    def create_array(self, length: int) -> None:
        self._count_item()
        self._head(MAJOR_ARRAY, length)
        self._open.append(length)

    def create_map(self, length: int) -> None:
        self._count_item()
        self._head(MAJOR_MAP, length)
        self._open.append(2 * length)

    def close_container(self) -> None:
        if not self._open:
            raise EncodeFailure("no open CBOR container to close")
        if self._open[-1] != 0:
            raise EncodeFailure(
                f"CBOR container closed with {self._open[-1]} items missing"
            )
        self._open.pop()

    def getvalue(self) -> bytes:
        """Exact encoded bytes.

        Raises EncodeOverflow if the buffer was too small, EncodeFailure if
        a container is still open.
        """
        if self.overflowed:
            raise EncodeOverflow(self.bytes_needed, self._capacity)
        if self._open:
            raise EncodeFailure(f"{len(self._open)} CBOR container(s) left open")
        return bytes(self._buf[:self._offset])


# ── Reader ───────────────────────────────────────────────────────────────────

class CborReader:
    """Forward-only cursor over a CBOR byte string."""

    def __init__(self, data: bytes):
        self._data = bytes(data)
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    @property
    def at_end(self) -> bool:
        return self._pos >= len(self._data)

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def _take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise DecodeFailure(
                f"truncated CBOR: need {n} bytes at offset {self._pos}, "
                f"have {len(self._data) - self._pos}"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def peek_major(self) -> int:
        if self.at_end:
            raise DecodeFailure(f"unexpected end of CBOR at offset {self._pos}")
        return self._data[self._pos] >> 5

    def peek_is_break(self) -> bool:
        if self.at_end:
            raise DecodeFailure(f"unexpected end of CBOR at offset {self._pos}")
        return self._data[self._pos] == BREAK

    def _read_head(self) -> Tuple[int, Optional[int]]:
        """Read an initial byte plus argument.  Argument is None for AI 31."""
        ib = self._take(1)[0]
        major, ai = ib >> 5, ib & 0x1F
        if ai < _AI_1BYTE:
            return major, ai
        if ai == _AI_1BYTE:
            return major, self._take(1)[0]
        if ai == _AI_2BYTE:
            return major, struct.unpack(">H", self._take(2))[0]
        if ai == _AI_4BYTE:
            return major, struct.unpack(">I", self._take(4))[0]
        if ai == _AI_8BYTE:
            return major, struct.unpack(">Q", self._take(8))[0]
        if ai == _AI_INDEFINITE and major in _INDEFINITE_OK:
            return major, None
        raise DecodeFailure(
            f"invalid additional info {ai} for {MAJOR_NAMES[major]} "
            f"at offset {self._pos - 1}"
        )

    def _expect(self, expected: int) -> Optional[int]:
        at = self._pos
        major, arg = self._read_head()
        if major != expected:
            raise DecodeFailure(
                f"expected {MAJOR_NAMES[expected]} at offset {at}, "
                f"found {MAJOR_NAMES[major]}"
            )
        return arg

    def _read_chunks(self, major: int) -> bytes:
        """Concatenate the chunks of an indefinite byte/text string."""
        parts: List[bytes] = []
        while not self.peek_is_break():
            chunk_major, length = self._read_head()
            if chunk_major != major or length is None:
                raise DecodeFailure(
                    f"invalid chunk in indefinite {MAJOR_NAMES[major]}"
                )
            parts.append(self._take(length))
        self._pos += 1
        return b"".join(parts)

    def read_uint(self) -> int:
        arg = self._expect(MAJOR_UINT)
        return arg

    def read_text(self) -> str:
        length = self._expect(MAJOR_TEXT)
        raw = self._read_chunks(MAJOR_TEXT) if length is None else self._take(length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeFailure(f"invalid UTF-8 in text string: {e}") from e

    def read_array_header(self) -> Optional[int]:
        """Enter an array.  Returns its length, or None if indefinite."""
        return self._expect(MAJOR_ARRAY)

    def read_map_header(self) -> Optional[int]:
        """Enter a map.  Returns its pair count, or None if indefinite."""
        return self._expect(MAJOR_MAP)

    def read_break(self) -> None:
        if not self.peek_is_break():
            raise DecodeFailure(f"expected break at offset {self._pos}")
        self._pos += 1

    def skip_value(self) -> None:
        """Consume exactly one complete data item, whatever its shape."""
        # Items still to consume per nesting level; None = until break.
        pending: List[Optional[int]] = [1]
        while pending:
            top = pending[-1]
            if top is None:
                if self.peek_is_break():
                    self._pos += 1
                    pending.pop()
                    continue
            elif top == 0:
                pending.pop()
                continue
            else:
                pending[-1] = top - 1

            major, arg = self._read_head()
            if major in (MAJOR_UINT, MAJOR_NEGINT):
                continue
            if major in (MAJOR_BYTES, MAJOR_TEXT):
                if arg is None:
                    self._read_chunks(major)
                else:
                    self._take(arg)
            elif major == MAJOR_ARRAY:
                pending.append(arg)
            elif major == MAJOR_MAP:
                pending.append(None if arg is None else 2 * arg)
            elif major == MAJOR_TAG:
                pending.append(1)
            elif arg is None:
                # A break where no indefinite container is open.
                raise DecodeFailure(f"unexpected break at offset {self._pos - 1}")
