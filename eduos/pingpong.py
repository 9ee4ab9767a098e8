"""Copy a byte stream through two alternating buffers on two threads.

One thread fills a buffer while the other drains the previously filled one,
so reading and writing overlap.
"""

from __future__ import annotations

import argparse
import sys
import threading
from itertools import cycle
from typing import BinaryIO

BUFFER_SIZE = 64 * 1024


class _Slot:
    """One buffer: ``None`` while free to fill, otherwise the bytes it holds."""

    def __init__(self) -> None:
        self.cond = threading.Condition()
        self.data: bytes | None = None


class _PingPongCopier:
    def __init__(self, source: BinaryIO, sink: BinaryIO, chunk_size: int) -> None:
        self._source = source
        self._sink = sink
        self._chunk_size = chunk_size
        self._slots = (_Slot(), _Slot())
        self._aborted = False
        self._errors: list[BaseException] = []
        self._written = 0

    def run(self) -> int:
        threads = [
            threading.Thread(target=self._guarded, args=(self._read_loop,)),
            threading.Thread(target=self._guarded, args=(self._write_loop,)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        if self._errors:
            raise self._errors[0]
        return self._written

    def _guarded(self, loop) -> None:
        try:
            loop()
        except BaseException as exc:  # handed back to the caller of run()
            self._errors.append(exc)
            self._abort()

    def _abort(self) -> None:
        self._aborted = True
        for slot in self._slots:
            with slot.cond:
                slot.cond.notify_all()

    def _read_loop(self) -> None:
        read = getattr(self._source, "read1", self._source.read)
        for slot in cycle(self._slots):
            with slot.cond:
                slot.cond.wait_for(lambda s=slot: s.data is None or self._aborted)
                if self._aborted:
                    return
                chunk = bytes(read(self._chunk_size) or b"")
                slot.data = chunk
                slot.cond.notify()
            if not chunk:
                return

    def _write_loop(self) -> None:
        for slot in cycle(self._slots):
            with slot.cond:
                slot.cond.wait_for(lambda s=slot: s.data is not None or self._aborted)
                if self._aborted or not slot.data:
                    return
                self._write_all(slot.data)
                slot.data = None
                slot.cond.notify()

    def _write_all(self, chunk: bytes) -> None:
        view = memoryview(chunk)
        while view:
            count = self._sink.write(view)
            if count is None:
                count = len(view)
            self._written += count
            view = view[count:]


def copy_stream(source: BinaryIO, sink: BinaryIO, chunk_size: int = BUFFER_SIZE) -> int:
    """Copy ``source`` to ``sink`` until end of input; return the bytes written."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    return _PingPongCopier(source, sink, chunk_size).run()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Copy standard input to standard output with double buffering."
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=BUFFER_SIZE,
        help="size of each of the two buffers in bytes",
    )
    args = parser.parse_args(argv)
    if args.chunk_size <= 0:
        parser.error("--chunk-size must be positive")
    copy_stream(sys.stdin.buffer, sys.stdout.buffer, args.chunk_size)
    sys.stdout.buffer.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())