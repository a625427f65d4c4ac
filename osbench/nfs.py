"""A block server streaming a file over TCP, and a client that times fetching it."""

from __future__ import annotations

import argparse
import os
import random
import socket
import sys
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import BinaryIO

from osbench.fileread import ReadResult, random_block_offset
from osbench.sizes import parse_size
from osbench.timing import monotonic_now

BLOCK_SIZE = 4096
REQUEST = b"read request\x00"
REQUEST_LIMIT = 100
DEFAULT_PORT = 22000
DEFAULT_HOST = "192.168.1.107"
FILE_PREFIX = "random"
_ACCEPT_POLL_SECONDS = 0.2


def _drop_cache(fd: int) -> None:
    """Ask the kernel to forget cached pages of the file, where supported."""
    advise = getattr(os, "posix_fadvise", None)
    flag = getattr(os, "POSIX_FADV_DONTNEED", None)
    if advise is not None and flag is not None:
        try:
            advise(fd, 0, 0, flag)
        except OSError:
            pass


def _read_file_block(handle: BinaryIO, path: str | os.PathLike[str]) -> bytes:
    parts = []
    remaining = BLOCK_SIZE
    while remaining:
        data = handle.read(remaining)
        if not data:
            raise EOFError(f"{path}: file ended inside a block")
        parts.append(data)
        remaining -= len(data)
    return b"".join(parts)


def _recv_exact(sock: socket.socket, count: int) -> bytes:
    parts = []
    remaining = count
    while remaining:
        data = sock.recv(remaining)
        if not data:
            raise ConnectionError(
                f"connection closed with {remaining} of {count} bytes missing"
            )
        parts.append(data)
        remaining -= len(data)
    return b"".join(parts)


class BlockServer:
    """Serve a file one block per request, in order or from random offsets.

    Each connection gets blocks until ``size`` bytes have been written. In
    random mode every connection draws its offsets from a generator seeded
    with ``seed``.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        size: int,
        host: str = "",
        port: int = DEFAULT_PORT,
        random_offsets: bool = False,
        seed: int | None = 1,
        backlog: int = 10,
    ) -> None:
        if random_offsets and size <= BLOCK_SIZE:
            raise ValueError(
                f"size {size} must be larger than the block size {BLOCK_SIZE}"
            )
        self.path = path
        self.size = size
        self.random_offsets = random_offsets
        self.seed = seed
        self._closed = threading.Event()
        self._sock = socket.create_server((host, port), backlog=backlog)
        self._sock.settimeout(_ACCEPT_POLL_SECONDS)

    @property
    def address(self) -> tuple[str, int]:
        host, port = self._sock.getsockname()[:2]
        return host, port

    def close(self) -> None:
        """Stop accepting connections."""
        self._closed.set()
        self._sock.close()

    def __enter__(self) -> BlockServer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def handle(self, conn: socket.socket) -> int:
        """Answer block requests on ``conn`` and return the bytes written."""
        rng = random.Random(self.seed) if self.random_offsets else None
        total = 0
        with conn, open(self.path, "rb", buffering=0) as handle:
            _drop_cache(handle.fileno())
            while total < self.size:
                if not conn.recv(REQUEST_LIMIT):
                    break
                if rng is not None:
                    handle.seek(random_block_offset(rng.getrandbits(31), self.size))
                block = _read_file_block(handle, self.path)
                conn.sendall(block)
                total += len(block)
        print(f"Block written to socket total:{total}", flush=True)
        return total

    def _serve_connection(self, conn: socket.socket) -> None:
        try:
            self.handle(conn)
        except (OSError, EOFError) as exc:
            print(f"Error: {exc}", file=sys.stderr, flush=True)

    def serve_forever(self) -> None:
        """Accept connections and serve each on its own thread until closed."""
        while not self._closed.is_set():
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                if self._closed.is_set():
                    return
                raise
            conn.settimeout(None)
            threading.Thread(
                target=self._serve_connection, args=(conn,), daemon=True
            ).start()


def fetch_blocks(host: str, port: int, size: int) -> ReadResult:
    """Request ``size // BLOCK_SIZE`` blocks from a block server and time it."""
    iterations = size // BLOCK_SIZE
    total = 0
    with socket.create_connection((host, port)) as sock:
        start = monotonic_now()
        print(f"file_size = {size}, iterations = {iterations}")
        for _ in range(iterations):
            sock.sendall(REQUEST)
            total += len(_recv_exact(sock, BLOCK_SIZE))
        end = monotonic_now()
    result = ReadResult(size, total, start, end)
    print(f"total_bytes_read = {total}")
    print(
        f"INSTANT time_diff: {result.elapsed}, start time: {start}, end time: {end}"
    )
    return result


def client_main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Time fetching a file from a block server.")
    parser.add_argument("amount")
    parser.add_argument("unit")
    parser.add_argument("port", type=int)
    parser.add_argument("--host", default=DEFAULT_HOST)
    args = parser.parse_args(argv)
    try:
        fetch_blocks(args.host, args.port, parse_size(args.amount, args.unit))
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


def server_main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Serve random<amount><unit> block by block.")
    parser.add_argument("amount")
    parser.add_argument("unit")
    parser.add_argument("port", type=int, nargs="?", default=DEFAULT_PORT)
    parser.add_argument("--random", action="store_true", help="serve blocks from random offsets")
    parser.add_argument("--seed", type=int, default=1)
    parser.add_argument("--directory", default=".")
    args = parser.parse_args(argv)

    size = parse_size(args.amount, args.unit)
    path = Path(args.directory) / f"{FILE_PREFIX}{args.amount}{args.unit}"
    print(f"filename: {path} size: {size}", flush=True)
    try:
        with BlockServer(
            path, size, port=args.port, random_offsets=args.random, seed=args.seed
        ) as server:
            server.serve_forever()
    except KeyboardInterrupt:
        return 0
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(client_main())