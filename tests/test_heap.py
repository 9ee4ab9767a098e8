import pytest

from eduos.heap import (
    ALLOCATED,
    FREE,
    HEADER_SIZE,
    METADATA_SIZE,
    AllocationError,
    Heap,
)


def _read4(heap, addr):
    return int.from_bytes(bytes(heap.read(addr + i) for i in range(4)), "big")


def _layout(heap):
    """Walk every block and check its tail; return (start, state, size) triples."""
    blocks = []
    pos = 0
    while pos < len(heap):
        state = heap.read(pos)
        size = _read4(heap, pos + 1)
        assert _read4(heap, pos + HEADER_SIZE + size) == pos
        blocks.append((pos, state, size))
        pos += size + METADATA_SIZE
    assert pos == len(heap)
    return blocks


def test_fresh_heap_is_one_free_block():
    heap = Heap(100)
    assert len(heap) == 100
    assert _layout(heap) == [(0, FREE, 100 - METADATA_SIZE)]


def test_too_small_heap_rejected():
    with pytest.raises(ValueError):
        Heap(METADATA_SIZE)


def test_first_allocation_starts_after_header():
    heap = Heap(100)
    assert heap.alloc(10) == HEADER_SIZE
    layout = _layout(heap)
    assert layout[0] == (0, ALLOCATED, 10)
    assert layout[1][1] == FREE


def test_whole_heap_allocation():
    heap = Heap(64)
    addr = heap.alloc(64 - METADATA_SIZE)
    assert addr == HEADER_SIZE
    with pytest.raises(AllocationError):
        heap.alloc(1)


def test_too_large_request_fails():
    heap = Heap(64)
    with pytest.raises(AllocationError):
        heap.alloc(64 - METADATA_SIZE + 1)


def test_negative_request_rejected():
    heap = Heap(64)
    with pytest.raises(ValueError):
        heap.alloc(-1)


def test_small_leftover_is_absorbed():
    heap = Heap(64)
    heap.alloc(64 - METADATA_SIZE - METADATA_SIZE)
    layout = _layout(heap)
    assert layout == [(0, ALLOCATED, 64 - METADATA_SIZE)]


def test_allocations_do_not_overlap():
    heap = Heap(300)
    sizes = [7, 13, 1, 40, 22]
    addrs = [heap.alloc(s) for s in sizes]
    spans = sorted((a, a + s) for a, s in zip(addrs, sizes))
    for (_, end), (start, _) in zip(spans, spans[1:]):
        assert end + METADATA_SIZE <= start
    assert all(end <= len(heap) for _, end in spans)


def test_exhaustion_keeps_layout_consistent():
    heap = Heap(128)
    addrs = []
    with pytest.raises(AllocationError):
        while True:
            addrs.append(heap.alloc(8))
    assert len(addrs) > 1
    assert all(state == ALLOCATED for _, state, _ in _layout(heap))


def test_free_then_alloc_reuses_block():
    heap = Heap(200)
    a = heap.alloc(30)
    heap.alloc(30)
    heap.free(a)
    assert heap.alloc(30) == a


def test_freeing_everything_restores_single_block():
    heap = Heap(100)
    a = heap.alloc(10)
    b = heap.alloc(10)
    heap.free(a)
    heap.free(b)
    assert _layout(heap) == [(0, FREE, 100 - METADATA_SIZE)]


def test_free_in_reverse_order_restores_single_block():
    heap = Heap(150)
    addrs = [heap.alloc(12) for _ in range(4)]
    for addr in reversed(addrs):
        heap.free(addr)
    assert _layout(heap) == [(0, FREE, 150 - METADATA_SIZE)]


def test_adjacent_free_blocks_coalesce():
    heap = Heap(200)
    a = heap.alloc(20)
    b = heap.alloc(20)
    heap.alloc(20)
    heap.free(a)
    heap.free(b)
    assert heap.alloc(40) == a


def test_best_fit_prefers_smallest_block():
    heap = Heap(200)
    a = heap.alloc(50)
    heap.alloc(5)
    b = heap.alloc(20)
    heap.alloc(5)
    heap.free(a)
    heap.free(b)
    assert heap.alloc(20) == b
    assert heap.alloc(30) == a


def test_double_free_fails():
    heap = Heap(100)
    a = heap.alloc(10)
    heap.alloc(10)
    heap.free(a)
    with pytest.raises(AllocationError):
        heap.free(a)


def test_free_of_interior_address_fails():
    heap = Heap(100)
    a = heap.alloc(10)
    with pytest.raises(AllocationError):
        heap.free(a + 1)
    assert _layout(heap)[0] == (0, ALLOCATED, 10)


@pytest.mark.parametrize("addr", [-1, 0, 1000])
def test_free_of_foreign_address_fails(addr):
    heap = Heap(100)
    heap.alloc(10)
    with pytest.raises(AllocationError):
        heap.free(addr)


def test_read_write_round_trip():
    heap = Heap(64)
    addr = heap.alloc(4)
    for offset, value in enumerate(b"\x00\x7f\x80\xff"):
        heap.write(addr + offset, value)
    assert bytes(heap.read(addr + i) for i in range(4)) == b"\x00\x7f\x80\xff"


def test_payload_survives_neighbour_free():
    heap = Heap(100)
    a = heap.alloc(4)
    b = heap.alloc(4)
    heap.write(b, 42)
    heap.free(a)
    assert heap.read(b) == 42


@pytest.mark.parametrize("addr", [-1, 64])
def test_access_outside_heap(addr):
    heap = Heap(64)
    with pytest.raises(IndexError):
        heap.read(addr)
    with pytest.raises(IndexError):
        heap.write(addr, 0)


def test_write_rejects_non_byte():
    heap = Heap(64)
    with pytest.raises(ValueError):
        heap.write(20, 256)