"""Concurrent file reads by several processes at once."""

from __future__ import annotations

import argparse
import multiprocessing
import os
import sys
from collections.abc import Iterator, Sequence
from pathlib import Path

from osbench.fileread import ReadResult, read_sequential
from osbench.sizes import MB
from osbench.timing import Timespec

FILE_PREFIX = "random8M_"
DEFAULT_SIZE = 8 * MB
DEFAULT_MAX_PROCESSES = 16
DEFAULT_TRIES = 10


def read_file_timed(path: str | os.PathLike[str], size: int) -> ReadResult:
    """Read ``size`` bytes of the file from its start, bypassing the cache."""
    return read_sequential(path, size)


def _reader(index: int, path: str, size: int, queue) -> None:
    elapsed_ns = None
    try:
        print(f"start reading child pid: {os.getpid()}, filename: {path}", flush=True)
        try:
            result = read_file_timed(path, size)
        except (OSError, EOFError) as exc:
            print(f"Error: {exc}", file=sys.stderr, flush=True)
            sys.exit(1)
        print(
            f"INSTANT diff: {result.elapsed}, start time: {result.start}, "
            f"end time: {result.end}",
            flush=True,
        )
        elapsed_ns = result.elapsed.total_ns()
    finally:
        queue.put((index, elapsed_ns))


def _process_counts(max_processes: int) -> Iterator[int]:
    count = 1
    while count <= max_processes:
        yield count
        count *= 2


def _run_round(directory: Path, processes: int, size: int) -> list[Timespec | None]:
    context = multiprocessing.get_context()
    queue = context.Queue()
    workers = [
        context.Process(
            target=_reader,
            args=(index, str(directory / f"{FILE_PREFIX}{index}"), size, queue),
        )
        for index in range(processes)
    ]
    for worker in workers:
        worker.start()
    received = dict(queue.get() for _ in workers)
    for worker in workers:
        worker.join()
        print(f"end reading child_pid: {worker.pid}, status: {worker.exitcode}")
    return [
        None if received.get(index) is None else Timespec.from_ns(received[index])
        for index in range(processes)
    ]


def run_contention(
    directory: str | os.PathLike[str],
    max_processes: int = DEFAULT_MAX_PROCESSES,
    tries: int = DEFAULT_TRIES,
    size: int = DEFAULT_SIZE,
) -> dict[int, list[list[Timespec | None]]]:
    """Read ``random8M_<i>`` files with 1, 2, 4, ... processes at once.

    Returns, for each process count, one list per try holding each
    process's elapsed time, or None where that process failed.
    """
    if max_processes < 1:
        raise ValueError(f"max_processes must be at least 1, got {max_processes}")
    if tries < 0:
        raise ValueError(f"tries must not be negative, got {tries}")
    directory = Path(directory)
    results: dict[int, list[list[Timespec | None]]] = {}
    for processes in _process_counts(max_processes):
        rounds = results.setdefault(processes, [])
        for attempt in range(tries):
            print(
                f"========START: num_of_processes : {processes} "
                f"try: {attempt}========",
                flush=True,
            )
            rounds.append(_run_round(directory, processes, size))
            print(
                f"========END: num_of_processes : {processes} "
                f"try: {attempt}========\n",
                flush=True,
            )
    return results


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Time concurrent reads of random8M_<i> files."
    )
    parser.add_argument("--directory", default=".")
    parser.add_argument("--max-processes", type=int, default=DEFAULT_MAX_PROCESSES)
    parser.add_argument("--tries", type=int, default=DEFAULT_TRIES)
    parser.add_argument("--size-mb", type=int, default=DEFAULT_SIZE // MB)
    args = parser.parse_args(argv)
    try:
        run_contention(args.directory, args.max_processes, args.tries, args.size_mb * MB)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())