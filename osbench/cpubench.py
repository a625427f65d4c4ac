"""CPU-side operating-system costs: pipes, system calls, process and thread work."""

from __future__ import annotations

import argparse
import multiprocessing
import os
import struct
import sys
import threading
import time
from collections.abc import Sequence
from multiprocessing.connection import Connection

from osbench.stats import RunningStats

PIPE_ITERATIONS = 100
PROCESS_ITERATIONS = 100
THREAD_ITERATIONS = 100_000
CONTEXT_SWITCH_ITERATIONS = 1000

_MESSAGE = struct.pack("i", 1)


def _check_iterations(iterations: int) -> None:
    if iterations < 1:
        raise ValueError(f"iterations must be at least 1, got {iterations}")


def _shrink_pipe(*fds: int) -> None:
    """Make the pipe as small as the kernel allows, where that can be set."""
    import fcntl  # POSIX only; pipes work without it

    flag = getattr(fcntl, "F_SETPIPE_SZ", None)
    if flag is None:
        return
    for fd in fds:
        try:
            fcntl.fcntl(fd, flag, len(_MESSAGE))
        except OSError:
            pass


def _open_pipe() -> tuple[int, int]:
    read_fd, write_fd = os.pipe()
    try:
        _shrink_pipe(read_fd, write_fd)
    except ImportError:
        pass
    return read_fd, write_fd


def _read_exact(fd: int, count: int) -> bytes:
    parts = []
    remaining = count
    while remaining:
        data = os.read(fd, remaining)
        if not data:
            raise EOFError(f"pipe closed with {remaining} of {count} bytes missing")
        parts.append(data)
        remaining -= len(data)
    return b"".join(parts)


def _report_arrival(conn: Connection) -> None:
    conn.send(time.monotonic_ns())
    conn.close()


def _send_message(conn: Connection) -> None:
    conn.send_bytes(_MESSAGE)
    conn.close()


def _finish_child(process: multiprocessing.Process) -> None:
    process.join()
    if process.exitcode != 0:
        raise ChildProcessError(f"child {process.pid} exited with status {process.exitcode}")


def pipe_round_trip(iterations: int = PIPE_ITERATIONS) -> RunningStats:
    """Time writing a small message into a pipe and reading it back, in ns."""
    _check_iterations(iterations)
    stats = RunningStats()
    read_fd, write_fd = _open_pipe()
    try:
        for _ in range(iterations):
            start = time.perf_counter_ns()
            os.write(write_fd, _MESSAGE)
            _read_exact(read_fd, len(_MESSAGE))
            stats.add(time.perf_counter_ns() - start)
    finally:
        os.close(read_fd)
        os.close(write_fd)
    print(f"average of pipe write overhead : {stats.mean:f}")
    return stats


def syscall_time() -> int:
    """Time one getpid system call, in ns."""
    start = time.perf_counter_ns()
    os.getpid()
    elapsed = time.perf_counter_ns() - start
    print(f"1th system call creation : {elapsed:f}")
    return elapsed


def process_creation(iterations: int = PROCESS_ITERATIONS) -> RunningStats:
    """Time from creating a process until it runs, in ns, once per iteration."""
    _check_iterations(iterations)
    stats = RunningStats()
    for attempt in range(1, iterations + 1):
        receiver, sender = multiprocessing.Pipe(duplex=False)
        process = multiprocessing.Process(target=_report_arrival, args=(sender,))
        try:
            start = time.monotonic_ns()
            process.start()
            sender.close()
            arrived = receiver.recv()
        finally:
            receiver.close()
            sender.close()
            _finish_child(process)
        elapsed = arrived - start
        print(f"{attempt}th process creation : {elapsed:f}")
        stats.add(elapsed)
    return stats


def thread_creation(iterations: int = THREAD_ITERATIONS) -> RunningStats:
    """Time from creating a thread until it runs, in ns, once per iteration."""
    _check_iterations(iterations)
    stats = RunningStats()
    for _ in range(iterations):
        arrived: list[int] = []
        start = time.perf_counter_ns()
        worker = threading.Thread(target=lambda: arrived.append(time.perf_counter_ns()))
        worker.start()
        worker.join()
        stats.add(arrived[0] - start)
        time.sleep(1e-6)
    print(f"thread creation : {stats}")
    return stats


def process_context_switch(iterations: int = CONTEXT_SWITCH_ITERATIONS) -> RunningStats:
    """Estimate a process switch as half the time a parent waits on its child's write."""
    _check_iterations(iterations)
    stats = RunningStats()
    for _ in range(iterations):
        receiver, sender = multiprocessing.Pipe(duplex=False)
        process = multiprocessing.Process(target=_send_message, args=(sender,))
        try:
            process.start()
            sender.close()
            start = time.perf_counter_ns()
            receiver.recv_bytes()
            end = time.perf_counter_ns()
        finally:
            receiver.close()
            sender.close()
            _finish_child(process)
        stats.add((end - start) // 2)
    std = stats.std() if stats.count >= 2 else float("nan")
    print(f"average: {stats.mean:f} , stddev: {std:f}")
    return stats


def thread_context_switch(iterations: int = CONTEXT_SWITCH_ITERATIONS) -> RunningStats:
    """Estimate a thread switch as half the time the main thread waits on a worker's write."""
    _check_iterations(iterations)
    stats = RunningStats()

    def writer(fd: int) -> None:
        os.write(fd, _MESSAGE)
        time.sleep(0)

    for _ in range(iterations):
        read_fd, write_fd = _open_pipe()
        try:
            worker = threading.Thread(target=writer, args=(write_fd,))
            worker.start()
            start = time.perf_counter_ns()
            _read_exact(read_fd, len(_MESSAGE))
            end = time.perf_counter_ns()
            worker.join()
        finally:
            os.close(read_fd)
            os.close(write_fd)
        stats.add((end - start) // 2)
    std = stats.std() if stats.count >= 2 else float("nan")
    print(f"average: {stats.mean:f} , stddev: {std:f}")
    return stats


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Measure CPU-side operating-system costs.")
    commands = parser.add_subparsers(dest="command", required=True)
    defaults = {
        "pipe": PIPE_ITERATIONS,
        "process": PROCESS_ITERATIONS,
        "thread": THREAD_ITERATIONS,
        "process-switch": CONTEXT_SWITCH_ITERATIONS,
        "thread-switch": CONTEXT_SWITCH_ITERATIONS,
    }
    commands.add_parser("syscall")
    for name, default in defaults.items():
        sub = commands.add_parser(name)
        sub.add_argument("--iterations", type=int, default=default)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    runners = {
        "pipe": pipe_round_trip,
        "process": process_creation,
        "thread": thread_creation,
        "process-switch": process_context_switch,
        "thread-switch": thread_context_switch,
    }
    try:
        if args.command == "syscall":
            syscall_time()
        else:
            runners[args.command](args.iterations)
    except (OSError, EOFError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())