"""A flat, single-directory file system stored in fixed-size disk sectors.

Sector 0 holds the file-system metadata. Every file owns one file sector,
which stores its name, size, links and the first bytes of its contents, and
a chain of data sectors for the rest. Unused sectors form a linked free list.
All integers on disk are 32-bit little-endian.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import Enum

ADDR_SIZE = 4
METADATA_SECTOR = 0
PATHSEP = "/"

_META = struct.Struct("<4I")
_FILE_HEADER = struct.Struct("<4I")
_ADDR = struct.Struct("<I")


class FileSystemError(Exception):
    """Raised when a file-system operation cannot be carried out."""


class StatType(Enum):
    FILE = "file"
    DIR = "dir"
    SYMLINK = "symlink"


@dataclass(frozen=True)
class Stat:
    size: int
    nlink: int
    type: StatType


class Disk:
    """An in-memory disk image addressed by sector."""

    def __init__(self, sector_count: int, sector_size: int = 128) -> None:
        if sector_count < 2:
            raise ValueError("a disk needs at least two sectors")
        if sector_size <= ADDR_SIZE:
            raise ValueError(f"sector size must exceed {ADDR_SIZE} bytes")
        self.sector_count = sector_count
        self.sector_size = sector_size
        self._image = bytearray(sector_count * sector_size)

    def __len__(self) -> int:
        return self.sector_count

    def read_sector(self, index: int) -> bytes:
        """Return a copy of sector ``index``."""
        start = self._offset(index)
        return bytes(self._image[start:start + self.sector_size])

    def write_sector(self, index: int, data: bytes) -> None:
        """Replace sector ``index`` with ``data``, which must fill it exactly."""
        if len(data) != self.sector_size:
            raise ValueError(
                f"sector data must be {self.sector_size} bytes, got {len(data)}"
            )
        start = self._offset(index)
        self._image[start:start + self.sector_size] = data

    def _offset(self, index: int) -> int:
        if not 0 <= index < self.sector_count:
            raise IndexError(f"sector {index} outside disk of {self.sector_count}")
        return index * self.sector_size


@dataclass
class _Metadata:
    first_free: int = 0
    last_free: int = 0
    first_file: int = 0
    last_file: int = 0


@dataclass
class _FileSector:
    name: str
    size: int = 0
    next_file: int = 0
    first_data: int = 0
    last_data: int = 0
    data: bytearray = field(default_factory=bytearray)


@dataclass
class _DataSector:
    next: int = 0
    data: bytearray = field(default_factory=bytearray)


class FileSystem:
    """Files in a single root directory on top of a :class:`Disk`."""

    def __init__(self, disk: Disk, max_filename: int = 32) -> None:
        if max_filename < 2:
            raise ValueError("max_filename must allow at least one character")
        head_capacity = disk.sector_size - max_filename - _FILE_HEADER.size
        if head_capacity <= 0:
            raise ValueError("sector too small for a file sector")
        self.disk = disk
        self.max_filename = max_filename
        self._head_capacity = head_capacity
        self._data_capacity = disk.sector_size - ADDR_SIZE

    def format(self) -> None:
        """Erase everything and link all sectors but the first into the free list."""
        count = len(self.disk)
        for index in range(1, count):
            following = index + 1 if index < count - 1 else 0
            self._write_free(index, following)
        self._write_meta(_Metadata(first_free=1, last_free=count - 1))

    def create(self, path: str) -> FileHandle:
        """Create ``path``, or truncate it if it exists, and open it at position 0."""
        self._check_path(path)
        found = self._find(path)
        if found is not None:
            addr, _, sector = found
            for data_addr in list(self._chain(sector.first_data)):
                self._release(data_addr)
            sector.first_data = sector.last_data = sector.size = 0
            self._write_file(addr, sector)
            return FileHandle(self, addr)

        addr = self._allocate()
        if addr is None:
            raise FileSystemError("no free sector for a new file")
        self._write_file(addr, _FileSector(name=path))
        meta = self._read_meta()
        if meta.first_file == 0:
            meta.first_file = addr
        else:
            last = self._read_file(meta.last_file)
            last.next_file = addr
            self._write_file(meta.last_file, last)
        meta.last_file = addr
        self._write_meta(meta)
        return FileHandle(self, addr)

    def open(self, path: str) -> FileHandle:
        """Open an existing file at position 0."""
        found = self._find(path)
        if found is None:
            raise FileSystemError(f"no such file: {path}")
        return FileHandle(self, found[0])

    def unlink(self, path: str) -> None:
        """Remove ``path`` and return all its sectors to the free list."""
        found = self._find(path)
        if found is None:
            raise FileSystemError(f"no such file: {path}")
        addr, prev, sector = found
        meta = self._read_meta()
        if prev == 0:
            meta.first_file = sector.next_file
        else:
            prev_sector = self._read_file(prev)
            prev_sector.next_file = sector.next_file
            self._write_file(prev, prev_sector)
        if meta.last_file == addr:
            meta.last_file = prev
        self._write_meta(meta)
        for data_addr in list(self._chain(sector.first_data)):
            self._release(data_addr)
        self._release(addr)

    def rename(self, oldpath: str, newpath: str) -> None:
        """Give the file at ``oldpath`` the name ``newpath``."""
        found = self._find(oldpath)
        if found is None:
            raise FileSystemError(f"no such file: {oldpath}")
        self._check_path(newpath)
        if newpath != oldpath and self._find(newpath) is not None:
            raise FileSystemError(f"file exists: {newpath}")
        addr, _, sector = found
        sector.name = newpath
        self._write_file(addr, sector)

    def stat(self, path: str) -> Stat:
        """Describe the file at ``path``."""
        found = self._find(path)
        if found is None:
            raise FileSystemError(f"no such file: {path}")
        return Stat(size=found[2].size, nlink=1, type=StatType.FILE)

    # -- lookup -----------------------------------------------------------

    def _check_path(self, path: str) -> None:
        if not path.startswith(PATHSEP) or path.count(PATHSEP) != 1:
            raise FileSystemError(f"not a path in the root directory: {path!r}")
        encoded = path.encode()
        if len(encoded) > self.max_filename - 1 or b"\0" in encoded:
            raise FileSystemError(f"invalid file name: {path!r}")

    def _find(self, path: str) -> tuple[int, int, _FileSector] | None:
        prev = 0
        addr = self._read_meta().first_file
        while addr:
            sector = self._read_file(addr)
            if sector.name == path:
                return addr, prev, sector
            prev, addr = addr, sector.next_file
        return None

    def _chain(self, first: int):
        addr = first
        while addr:
            yield addr
            addr = self._read_data(addr).next

    # -- free list --------------------------------------------------------

    def _allocate(self) -> int | None:
        meta = self._read_meta()
        addr = meta.first_free
        if addr == 0:
            return None
        (meta.first_free,) = _ADDR.unpack_from(self.disk.read_sector(addr))
        if meta.first_free == 0:
            meta.last_free = 0
        self._write_meta(meta)
        return addr

    def _release(self, addr: int) -> None:
        meta = self._read_meta()
        self._write_free(addr, meta.first_free)
        meta.first_free = addr
        if meta.last_free == 0:
            meta.last_free = addr
        self._write_meta(meta)

    # -- sector encoding --------------------------------------------------

    def _read_meta(self) -> _Metadata:
        return _Metadata(*_META.unpack_from(self.disk.read_sector(METADATA_SECTOR)))

    def _write_meta(self, meta: _Metadata) -> None:
        raw = _META.pack(meta.first_free, meta.last_free, meta.first_file, meta.last_file)
        self.disk.write_sector(METADATA_SECTOR, raw.ljust(self.disk.sector_size, b"\0"))

    def _write_free(self, addr: int, following: int) -> None:
        self.disk.write_sector(addr, _ADDR.pack(following).ljust(self.disk.sector_size, b"\0"))

    def _read_file(self, addr: int) -> _FileSector:
        raw = self.disk.read_sector(addr)
        name = raw[:self.max_filename].split(b"\0", 1)[0].decode(errors="replace")
        size, next_file, first, last = _FILE_HEADER.unpack_from(raw, self.max_filename)
        data = bytearray(raw[self.max_filename + _FILE_HEADER.size:])
        return _FileSector(name, size, next_file, first, last, data)

    def _write_file(self, addr: int, sector: _FileSector) -> None:
        name = sector.name.encode().ljust(self.max_filename, b"\0")
        header = _FILE_HEADER.pack(
            sector.size, sector.next_file, sector.first_data, sector.last_data
        )
        data = bytes(sector.data).ljust(self._head_capacity, b"\0")
        self.disk.write_sector(addr, name + header + data)

    def _read_data(self, addr: int) -> _DataSector:
        raw = self.disk.read_sector(addr)
        (following,) = _ADDR.unpack_from(raw)
        return _DataSector(following, bytearray(raw[ADDR_SIZE:]))

    def _write_data(self, addr: int, sector: _DataSector) -> None:
        raw = _ADDR.pack(sector.next) + bytes(sector.data).ljust(self._data_capacity, b"\0")
        self.disk.write_sector(addr, raw)


class FileHandle:
    """An open file with its own position."""

    def __init__(self, fs: FileSystem, addr: int) -> None:
        self._fs = fs
        self._addr = addr
        self._pos = 0
        self._closed = False

    def __enter__(self) -> FileHandle:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._closed = True

    def tell(self) -> int:
        self._check_open()
        return self._pos

    def seek(self, pos: int) -> None:
        """Move to byte ``pos``, which must lie inside the file."""
        self._check_open()
        size = self._fs._read_file(self._addr).size
        if not 0 <= pos < size:
            raise FileSystemError(f"position {pos} outside file of {size} bytes")
        self._pos = pos

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes from the current position."""
        self._check_open()
        if size < 0:
            raise ValueError("size must not be negative")
        fs = self._fs
        sector = fs._read_file(self._addr)
        end = min(sector.size, self._pos + size)
        if self._pos >= end:
            return b""
        out = bytearray()
        pos = self._pos
        head = fs._head_capacity
        if pos < head:
            take = min(end, head) - pos
            out += sector.data[pos:pos + take]
            pos += take
        if pos < end:
            index = (pos - head) // fs._data_capacity
            for i, addr in enumerate(fs._chain(sector.first_data)):
                if i < index:
                    continue
                data = fs._read_data(addr).data
                offset = (pos - head) % fs._data_capacity
                take = min(end - pos, fs._data_capacity - offset)
                out += data[offset:offset + take]
                pos += take
                if pos >= end:
                    break
        self._pos = pos
        return bytes(out)

    def write(self, data: bytes) -> int:
        """Write ``data`` at the current position, growing the file as needed.

        When the disk runs out of sectors only part is written; the number of
        bytes written is returned.
        """
        self._check_open()
        fs = self._fs
        sector = fs._read_file(self._addr)
        pos = self._pos
        head = fs._head_capacity
        written = 0
        if pos < head and data:
            take = min(len(data), head - pos)
            sector.data[pos:pos + take] = data[:take]
            written = take
            pos += take
        if written < len(data):
            chain = list(fs._chain(sector.first_data))
            index = (pos - head) // fs._data_capacity
            while written < len(data):
                if index < len(chain):
                    addr = chain[index]
                    block = fs._read_data(addr)
                else:
                    addr = fs._allocate()
                    if addr is None:
                        break
                    if chain:
                        prev = fs._read_data(chain[-1])
                        prev.next = addr
                        fs._write_data(chain[-1], prev)
                    else:
                        sector.first_data = addr
                    sector.last_data = addr
                    chain.append(addr)
                    block = _DataSector(0, bytearray(fs._data_capacity))
                offset = (pos - head) % fs._data_capacity
                take = min(len(data) - written, fs._data_capacity - offset)
                block.data[offset:offset + take] = data[written:written + take]
                fs._write_data(addr, block)
                written += take
                pos += take
                index += 1
        sector.size = max(sector.size, pos)
        fs._write_file(self._addr, sector)
        self._pos = pos
        return written

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed file")