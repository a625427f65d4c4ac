"""Server side of the TCP round-trip and bandwidth benchmarks."""

from __future__ import annotations

import argparse
import socket
import sys
from collections.abc import Sequence

from osbench.sizes import MB

ROUND_TRIP_PORT = 5374
BANDWIDTH_PORT = 5001
SEND_COUNT = 100
MESSAGE_SIZE = 34
BANDWIDTH_MESSAGE_SIZE = 50 * MB
BACKLOG = 5
_RECV_CHUNK = 1 * MB


def _check_count(count: int) -> None:
    if count < 0:
        raise ValueError(f"count must not be negative, got {count}")


def serve_round_trip(sock: socket.socket, count: int = SEND_COUNT) -> int:
    """Answer one full-size message on each of ``count`` connections.

    Returns the number of connections answered.
    """
    _check_count(count)
    reply = b"a" * MESSAGE_SIZE
    print("Starting!", flush=True)
    served = 0
    for _ in range(count):
        conn, _ = sock.accept()
        with conn:
            print("success!", flush=True)
            while True:
                data = conn.recv(MESSAGE_SIZE)
                if not data:
                    raise ConnectionError("ERROR reading from socket: connection closed")
                if len(data) != MESSAGE_SIZE:
                    print(f"Unsuccess receive! {len(data)} bytes", flush=True)
                    continue
                print("Client finished sending", flush=True)
                conn.sendall(reply)
                break
        served += 1
    return served


def serve_bandwidth(
    sock: socket.socket,
    count: int = SEND_COUNT,
    message_size: int = BANDWIDTH_MESSAGE_SIZE,
) -> list[int]:
    """Drain up to ``message_size`` bytes from each of ``count`` connections.

    Returns the number of bytes received on each connection.
    """
    _check_count(count)
    buffer = bytearray(max(1, min(message_size, _RECV_CHUNK)))
    view = memoryview(buffer)
    print("Starting!", flush=True)
    totals = []
    for attempt in range(1, count + 1):
        conn, _ = sock.accept()
        with conn:
            print(f"[{attempt}] Client connected!", flush=True)
            total = 0
            while total < message_size:
                received = conn.recv_into(view)
                if received == 0:
                    print("Client finished sending", flush=True)
                    break
                total += received
                print(f"Received {total}", flush=True)
        totals.append(total)
    return totals


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Serve the TCP benchmarks.")
    commands = parser.add_subparsers(dest="command", required=True)

    round_trip = commands.add_parser("roundtrip")
    round_trip.add_argument("--port", type=int, default=ROUND_TRIP_PORT)
    round_trip.add_argument("--count", type=int, default=SEND_COUNT)

    bandwidth = commands.add_parser("bandwidth")
    bandwidth.add_argument("--port", type=int, default=BANDWIDTH_PORT)
    bandwidth.add_argument("--count", type=int, default=SEND_COUNT)
    bandwidth.add_argument("--size-mb", type=int, default=BANDWIDTH_MESSAGE_SIZE // MB)

    args = parser.parse_args(argv)
    try:
        with socket.create_server(("", args.port), backlog=BACKLOG) as sock:
            if args.command == "roundtrip":
                serve_round_trip(sock, args.count)
            else:
                serve_bandwidth(sock, args.count, args.size_mb * MB)
    except KeyboardInterrupt:
        return 0
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())