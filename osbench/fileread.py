"""Timed sequential, random and cached reads of whole files."""

from __future__ import annotations

import argparse
import functools
import os
import random
import sys
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from osbench.sizes import MB, parse_size
from osbench.timing import Timespec, monotonic_now

BLOCK_SIZE = 4096
REPETITIONS = 10
CACHE_WARMUPS = 2
FILE_PREFIX = "random"

SEQUENTIAL_SIZES = (
    "4K", "8K", "16K", "32K", "64K", "128K", "256K", "512K",
    "1M", "2M", "4M", "8M", "16M", "32M", "64M", "128M", "256M", "512M",
    "1G",
)
RANDOM_SIZES = SEQUENTIAL_SIZES[1:]


@dataclass(frozen=True)
class ReadResult:
    """Outcome of one timed read of a file."""

    size: int
    bytes_read: int
    start: Timespec
    end: Timespec

    @property
    def elapsed(self) -> Timespec:
        return self.end - self.start


def random_block_offset(value: int, size: int, block_size: int = BLOCK_SIZE) -> int:
    """Map a random number to a block-rounded offset below ``size - block_size``."""
    span = size - block_size
    if span <= 0:
        raise ValueError(
            f"size {size} must be larger than the block size {block_size}"
        )
    if value < 0:
        raise ValueError(f"random value must not be negative, got {value}")
    return (value - value % block_size) % span


def _drop_cache(fd: int) -> None:
    """Ask the kernel to forget cached pages of the file, where supported."""
    advise = getattr(os, "posix_fadvise", None)
    flag = getattr(os, "POSIX_FADV_DONTNEED", None)
    if advise is not None and flag is not None:
        try:
            advise(fd, 0, 0, flag)
        except OSError:
            pass


@contextmanager
def _open_for_reading(path: str | os.PathLike[str], uncached: bool) -> Iterator[BinaryIO]:
    with open(path, "rb", buffering=0) as handle:
        if uncached:
            _drop_cache(handle.fileno())
        yield handle


def _read_block(handle: BinaryIO, path: str | os.PathLike[str], size: int, total: int) -> int:
    data = handle.read(BLOCK_SIZE)
    if not data:
        raise EOFError(f"{path}: file ended after {total} bytes, {size} needed")
    return len(data)


def _timed_sequential(path: str | os.PathLike[str], size: int, uncached: bool) -> ReadResult:
    with _open_for_reading(path, uncached) as handle:
        start = monotonic_now()
        total = 0
        while total < size:
            total += _read_block(handle, path, size, total)
        end = monotonic_now()
    return ReadResult(size, total, start, end)


def read_sequential(path: str | os.PathLike[str], size: int) -> ReadResult:
    """Read ``size`` bytes from the start of the file, block by block, bypassing the cache."""
    return _timed_sequential(path, size, uncached=True)


def read_random(
    path: str | os.PathLike[str], size: int, rng: random.Random | None = None
) -> ReadResult:
    """Read ``size`` bytes as blocks taken from random offsets of the file."""
    rng = rng or random.Random()
    if size <= BLOCK_SIZE:
        raise ValueError(f"size {size} must be larger than the block size {BLOCK_SIZE}")
    with _open_for_reading(path, uncached=True) as handle:
        start = monotonic_now()
        total = 0
        while total < size:
            handle.seek(random_block_offset(rng.getrandbits(31), size))
            total += _read_block(handle, path, size, total)
        end = monotonic_now()
    return ReadResult(size, total, start, end)


def read_and_average(
    path: str | os.PathLike[str],
    size: int,
    reader: Callable[[str | os.PathLike[str], int], ReadResult] = read_sequential,
    repetitions: int = REPETITIONS,
) -> int:
    """Time ``repetitions`` reads, print each one, and return the average in ns."""
    if repetitions < 1:
        raise ValueError(f"repetitions must be at least 1, got {repetitions}")
    total = Timespec()
    for _ in range(repetitions):
        result = reader(path, size)
        elapsed = result.elapsed
        print(f"INSTANT start time: {result.start}, end time: {result.end}")
        print(
            f"INSTANT size: {size}, time: {elapsed}, "
            f"time in ns: {elapsed.total_ns()}"
        )
        total = total + elapsed
    average = total.total_ns() // repetitions
    print(f"size: {size}, average time in ns: {average}")
    return average


def measure_cache_read(path: str | os.PathLike[str], size_mb: int) -> list[ReadResult]:
    """Read the first ``size_mb`` megabytes through the page cache after warming it up."""
    size = size_mb * MB
    results = []
    for round_number in range(CACHE_WARMUPS + REPETITIONS):
        result = _timed_sequential(path, size, uncached=False)
        print(
            f"INSTANT diff: {result.elapsed}, start time: {result.start}, "
            f"end time: {result.end}"
        )
        if round_number >= CACHE_WARMUPS:
            results.append(result)
    return results


def _size_of(label: str) -> int:
    return parse_size(label[:-1], label[-1])


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Time file reads of growing sizes.")
    commands = parser.add_subparsers(dest="command", required=True)

    seq = commands.add_parser("seq", help="sequential reads of random<size> files")
    seq.add_argument("--directory", default=".")

    rand = commands.add_parser("rand", help="random block reads of random<size> files")
    rand.add_argument("--directory", default=".")
    rand.add_argument("--seed", type=int, default=1)

    cache = commands.add_parser("cache", help="cached reads of the first SIZE_MB megabytes")
    cache.add_argument("size_mb", type=int)
    cache.add_argument("--file", default=f"./{FILE_PREFIX}1G")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        if args.command == "cache":
            print(args.size_mb)
            measure_cache_read(args.file, args.size_mb)
            return 0
        if args.command == "seq":
            labels = SEQUENTIAL_SIZES
            reader = read_sequential
        else:
            labels = RANDOM_SIZES
            reader = functools.partial(read_random, rng=random.Random(args.seed))
        directory = Path(args.directory)
        for label in labels:
            read_and_average(directory / f"{FILE_PREFIX}{label}", _size_of(label), reader)
    except (OSError, EOFError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())