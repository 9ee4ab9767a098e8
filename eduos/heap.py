"""Best-fit allocator over a flat byte arena using boundary-tag blocks.

Every block is laid out as a one-byte state, a four-byte big-endian payload
size, the payload itself and a four-byte tail that points back at the start
of the block.
"""

from __future__ import annotations

from collections.abc import Iterator

FREE = 0
ALLOCATED = 1
STATE_SIZE = 1
HEADER_SIZE = 5  # state byte + size
TAIL_SIZE = 4  # pointer to the start of the block
METADATA_SIZE = HEADER_SIZE + TAIL_SIZE


class AllocationError(Exception):
    """Raised when a request cannot be met or an address is not a live block."""


class Heap:
    """A fixed-size arena that hands out payload addresses by best fit."""

    def __init__(self, size: int) -> None:
        if size <= METADATA_SIZE:
            raise ValueError(f"heap must be larger than {METADATA_SIZE} bytes")
        self._memory = bytearray(size)
        self._write_head(0, FREE, size - METADATA_SIZE)
        self._write_tail(size - TAIL_SIZE, 0)

    def __len__(self) -> int:
        return len(self._memory)

    def read(self, addr: int) -> int:
        """Return the byte stored at ``addr``."""
        self._check_addr(addr)
        return self._memory[addr]

    def write(self, addr: int, value: int) -> None:
        """Store the byte ``value`` at ``addr``."""
        self._check_addr(addr)
        if not 0 <= value <= 0xFF:
            raise ValueError(f"byte value out of range: {value}")
        self._memory[addr] = value

    def alloc(self, size: int) -> int:
        """Reserve ``size`` bytes and return the address of the payload."""
        if size < 0:
            raise ValueError("size must not be negative")
        if size > len(self) - METADATA_SIZE:
            raise AllocationError(f"cannot allocate {size} bytes")

        candidates = [
            (block_size, addr)
            for addr, state, block_size in self._blocks()
            if state == FREE and block_size >= size
        ]
        if not candidates:
            raise AllocationError(f"no free block holds {size} bytes")
        best_size, best_addr = min(candidates)

        unused = best_size - size
        if unused > METADATA_SIZE:
            self._write_head(best_addr, ALLOCATED, size)
            self._write_tail(best_addr + HEADER_SIZE + size, best_addr)
            rest_addr = best_addr + METADATA_SIZE + size
            self._write_head(rest_addr, FREE, unused - METADATA_SIZE)
            self._write_tail(rest_addr + unused - TAIL_SIZE, rest_addr)
        else:
            # Too little is left over for a block of its own: hand out all of it.
            self._write_head(best_addr, ALLOCATED, best_size)
            self._write_tail(best_addr + HEADER_SIZE + best_size, best_addr)
        return best_addr + HEADER_SIZE

    def free(self, addr: int) -> None:
        """Release the block whose payload starts at ``addr``, merging neighbours."""
        if not self._is_block_payload(addr):
            raise AllocationError(f"{addr} is not the start of a block")

        start = addr - HEADER_SIZE
        if self._memory[start] != ALLOCATED:
            raise AllocationError(f"block at {addr} is not allocated")
        self._memory[start] = FREE

        size = self._read4(start + STATE_SIZE)
        tail_addr = start + HEADER_SIZE + size
        next_addr = start + size + METADATA_SIZE

        if next_addr < len(self) - 1 - METADATA_SIZE and self._memory[next_addr] == FREE:
            next_size = self._read4(next_addr + STATE_SIZE)
            size += next_size + METADATA_SIZE
            tail_addr = next_addr + HEADER_SIZE + next_size
            self._write_head(start, FREE, size)
            self._write_tail(tail_addr, start)

        if addr - METADATA_SIZE > 0:
            prev_addr = self._read4(start - TAIL_SIZE)
            if self._memory[prev_addr] == FREE:
                prev_size = self._read4(prev_addr + STATE_SIZE)
                self._write_head(prev_addr, FREE, prev_size + size + METADATA_SIZE)
                self._write_tail(tail_addr, prev_addr)

    def _blocks(self) -> Iterator[tuple[int, int, int]]:
        """Yield ``(address, state, size)`` for each block the allocator can see."""
        limit = len(self) - 1 - METADATA_SIZE
        loc = 0
        while loc <= limit:
            state = self._memory[loc]
            size = self._read4(loc + STATE_SIZE)
            if state == FREE and size == 0:
                return
            yield loc, state, size
            loc += METADATA_SIZE + size

    def _is_block_payload(self, addr: int) -> bool:
        if not 0 <= addr < len(self):
            return False
        start = 0
        while start + HEADER_SIZE < addr:
            start += self._read4(start + STATE_SIZE) + METADATA_SIZE
        return start + HEADER_SIZE == addr

    def _check_addr(self, addr: int) -> None:
        if not 0 <= addr < len(self):
            raise IndexError(f"address {addr} outside heap of {len(self)} bytes")

    def _read4(self, addr: int) -> int:
        return int.from_bytes(self._memory[addr:addr + 4], "big")

    def _write4(self, addr: int, value: int) -> None:
        self._memory[addr:addr + 4] = (value & 0xFFFFFFFF).to_bytes(4, "big")

    def _write_head(self, addr: int, state: int, size: int) -> None:
        self._memory[addr] = state
        self._write4(addr + STATE_SIZE, size)

    def _write_tail(self, addr: int, head_addr: int) -> None:
        self._write4(addr, head_addr)