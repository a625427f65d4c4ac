"""Client-side TCP benchmarks: round trip, bandwidth, connection setup and teardown."""

from __future__ import annotations

import argparse
import socket
import sys
import time
from collections.abc import Sequence

from osbench.sizes import MB
from osbench.stats import RunningStats

ROUND_TRIP_PORT = 5374
BANDWIDTH_PORT = 5001
SEND_COUNT = 100
MESSAGE_SIZE = 34
HEADER_OVERHEAD = 66
BANDWIDTH_MESSAGE_SIZE = 50 * MB
REMOTE_HOST = "192.168.0.9"
LOCAL_HOST = "localhost"


def _check_count(count: int) -> None:
    if count < 1:
        raise ValueError(f"count must be at least 1, got {count}")


def _elapsed_ms(start_ns: int, end_ns: int) -> float:
    return (end_ns - start_ns) / 1_000_000


def _summary(stats: RunningStats) -> str:
    std = stats.std() if stats.count >= 2 else float("nan")
    return (
        f"average = {stats.mean:f}ms, std = {std:f}, "
        f"min = {stats.minimum:f}ms, max = {stats.maximum:f}ms"
    )


def measure_round_trip(
    host: str, port: int = ROUND_TRIP_PORT, count: int = SEND_COUNT
) -> RunningStats:
    """Time sending a small message and reading the reply, one connection each."""
    _check_count(count)
    message = b"a" * MESSAGE_SIZE
    stats = RunningStats()
    print("Responding...")
    for _ in range(count):
        with socket.create_connection((host, port)) as sock:
            start = time.perf_counter_ns()
            sock.sendall(message)
            reply = sock.recv(MESSAGE_SIZE)
            end = time.perf_counter_ns()
            if not reply:
                raise ConnectionError("ERROR reading from socket: connection closed")
            if len(reply) != MESSAGE_SIZE:
                print(f"Unsuccess receive! {len(reply)} bytes")
            stats.add(_elapsed_ms(start, end))
    print(
        f"[packet size : {MESSAGE_SIZE + HEADER_OVERHEAD}, {host}] {_summary(stats)}"
    )
    return stats


def measure_bandwidth(
    host: str,
    port: int = BANDWIDTH_PORT,
    count: int = SEND_COUNT,
    message_size: int = BANDWIDTH_MESSAGE_SIZE,
) -> RunningStats:
    """Time writing ``message_size`` bytes over a fresh connection, ``count`` times."""
    _check_count(count)
    if message_size < 1:
        raise ValueError(f"message_size must be at least 1, got {message_size}")
    payload = b"a" * (message_size - 1) + b"\0"
    stats = RunningStats()
    print("Responding...")
    for attempt in range(1, count + 1):
        with socket.create_connection((host, port)) as sock:
            start = time.perf_counter_ns()
            sock.sendall(payload)
            end = time.perf_counter_ns()
        elapsed = _elapsed_ms(start, end)
        print(f"[{attempt}] Total Bytes Sent = {len(payload)} and time = {elapsed:f}ms")
        stats.add(elapsed)
    print(f"[{host}] {_summary(stats)}")
    return stats


def measure_setup(
    host: str, port: int = ROUND_TRIP_PORT, count: int = SEND_COUNT
) -> RunningStats:
    """Time creating a socket and connecting it."""
    _check_count(count)
    stats = RunningStats()
    print("Responding...")
    for _ in range(count):
        start = time.perf_counter_ns()
        sock = socket.create_connection((host, port))
        end = time.perf_counter_ns()
        sock.close()
        stats.add(_elapsed_ms(start, end))
    print(f"[{host}] {_summary(stats)}")
    return stats


def measure_teardown(
    host: str, port: int = ROUND_TRIP_PORT, count: int = SEND_COUNT
) -> RunningStats:
    """Time closing an established connection."""
    _check_count(count)
    stats = RunningStats()
    print("Responding...")
    for _ in range(count):
        sock = socket.create_connection((host, port))
        start = time.perf_counter_ns()
        sock.close()
        end = time.perf_counter_ns()
        stats.add(_elapsed_ms(start, end))
    print(f"[{host}] {_summary(stats)}")
    return stats


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Measure TCP costs against a server.")
    commands = parser.add_subparsers(dest="command", required=True)

    specs = {
        "roundtrip": (ROUND_TRIP_PORT, [REMOTE_HOST, LOCAL_HOST]),
        "bandwidth": (BANDWIDTH_PORT, [REMOTE_HOST, LOCAL_HOST]),
        "setup": (ROUND_TRIP_PORT, [LOCAL_HOST, REMOTE_HOST]),
        "teardown": (ROUND_TRIP_PORT, [LOCAL_HOST, REMOTE_HOST]),
    }
    for name, (port, hosts) in specs.items():
        sub = commands.add_parser(name)
        sub.add_argument("hosts", nargs="*", default=hosts)
        sub.add_argument("--port", type=int, default=port)
        sub.add_argument("--count", type=int, default=SEND_COUNT)
        if name == "bandwidth":
            sub.add_argument(
                "--size-mb", type=int, default=BANDWIDTH_MESSAGE_SIZE // MB
            )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        for host in args.hosts:
            if args.command == "roundtrip":
                measure_round_trip(host, args.port, args.count)
            elif args.command == "bandwidth":
                measure_bandwidth(host, args.port, args.count, args.size_mb * MB)
            elif args.command == "setup":
                measure_setup(host, args.port, args.count)
            else:
                measure_teardown(host, args.port, args.count)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())