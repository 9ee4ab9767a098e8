# eduos

Small, readable models of classic operating-system building blocks:

- `eduos.heap`: a best-fit heap allocator over a flat byte arena, with
  boundary-tag headers and tails and merging of free neighbours.
- `eduos.filesystem`: a flat, single-directory file system stored in
  fixed-size sectors on an in-memory disk, with linked lists of free, file
  and data sectors.
- `eduos.pingpong`: a stream copier that reads and writes on two threads,
  handing over two alternating buffers.

No third-party libraries are needed.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Heap

```python
from eduos.heap import Heap, AllocationError

heap = Heap(256)             # arena of 256 bytes
addr = heap.alloc(16)        # first usable byte of the new block
heap.write(addr, 42)
assert heap.read(addr) == 42
heap.free(addr)

try:
    heap.alloc(10_000)
except AllocationError:
    print("does not fit")
```

Each block carries a 5-byte header (state byte and big-endian size) and a
4-byte tail pointing back at the header. `alloc` picks the smallest free
block that fits and splits off the rest when a separate block fits in it.
`free` raises `AllocationError` for an address that is not the payload of an
allocated block. `read` and `write` raise `IndexError` outside the arena and
`write` raises `ValueError` for values outside 0..255. `len(heap)` gives the
arena size in bytes.

## File system

```python
from eduos.filesystem import Disk, FileSystem, FileSystemError

disk = Disk(64, 128)                   # 64 sectors of 128 bytes
fs = FileSystem(disk, 16)              # name field of 16 bytes: names up to 15
fs.format()

with fs.create("/notes") as handle:
    handle.write(b"hello world")

with fs.open("/notes") as handle:
    handle.seek(6)
    print(handle.read(5))              # b'world'

print(fs.stat("/notes").size)          # 11
fs.rename("/notes", "/memo")
fs.unlink("/memo")
```

`Disk(sector_count, sector_size=128)` and `FileSystem(disk, max_filename=32)`
have these defaults. Paths are names in the root directory such as
`"/notes"`. `create` truncates an existing file. `stat` returns a `Stat` with
`size`, `nlink` (always 1) and `type` (`StatType.FILE`). `FileHandle.seek`
accepts only positions inside the file. `FileHandle.write` grows the file as
needed; when the disk runs out of sectors it writes what fits and returns the
number of bytes written.

Operations that fail (a missing file, a bad path, renaming onto an existing
name, a seek outside the file, no free sector for a new file) raise
`FileSystemError`. Using a closed handle raises `ValueError`.

### What the file system does not do

- There are no directories: every file lives in the root, and there is no
  way to create, list or remove directories.
- There are no hard links or symbolic links.
- The disk lives only in memory; nothing is saved to or loaded from a file.

## Stream copying

`copy_stream(source, sink, chunk_size=65536)` copies a binary stream to
another using a reader thread and a writer thread that alternate between two
buffers, and returns the number of bytes written. The same thing is available
from the command line, copying standard input to standard output:

```
eduos-pingpong < input.bin > output.bin
eduos-pingpong --chunk-size 4096 < input.bin > output.bin
```