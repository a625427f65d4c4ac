import socket
import threading

import pytest

from osbench.nfs import (
    BLOCK_SIZE,
    REQUEST,
    BlockServer,
    client_main,
    fetch_blocks,
)

BLOCKS = 8


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "random32K"
    path.write_bytes(b"".join(bytes([k]) * BLOCK_SIZE for k in range(BLOCKS)))
    return path


def _run_handle(server, conn):
    outcome = {}

    def target():
        try:
            outcome["total"] = server.handle(conn)
        except Exception as exc:  # noqa: BLE001
            outcome["error"] = exc

    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    return thread, outcome


def _request_blocks(sock, count):
    blocks = []
    for _ in range(count):
        sock.sendall(REQUEST)
        data = b""
        while len(data) < BLOCK_SIZE:
            chunk = sock.recv(BLOCK_SIZE - len(data))
            assert chunk
            data += chunk
        blocks.append(data)
    return blocks


@pytest.fixture
def running_server(data_file):
    server = BlockServer(data_file, BLOCKS * BLOCK_SIZE, host="127.0.0.1", port=0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.close()
    thread.join(timeout=5)


def test_sequential_handle_streams_file_in_order(data_file):
    with BlockServer(data_file, BLOCKS * BLOCK_SIZE, host="127.0.0.1", port=0) as server:
        server_end, client_end = socket.socketpair()
        client_end.settimeout(5)
        thread, outcome = _run_handle(server, server_end)
        with client_end:
            blocks = _request_blocks(client_end, BLOCKS)
        thread.join(timeout=5)
    assert b"".join(blocks) == data_file.read_bytes()
    assert outcome["total"] == BLOCKS * BLOCK_SIZE


def test_random_handle_serves_aligned_blocks_below_span(data_file):
    size = BLOCKS * BLOCK_SIZE
    with BlockServer(
        data_file, size, host="127.0.0.1", port=0, random_offsets=True, seed=7
    ) as server:
        server_end, client_end = socket.socketpair()
        client_end.settimeout(5)
        thread, outcome = _run_handle(server, server_end)
        with client_end:
            blocks = _request_blocks(client_end, BLOCKS)
        thread.join(timeout=5)
    for block in blocks:
        assert len(set(block)) == 1
        assert block[0] * BLOCK_SIZE < size - BLOCK_SIZE
    assert outcome["total"] == size


def test_random_handle_is_repeatable_for_a_seed(data_file):
    size = BLOCKS * BLOCK_SIZE
    runs = []
    outcomes = []
    with BlockServer(
        data_file, size, host="127.0.0.1", port=0, random_offsets=True, seed=3
    ) as server:
        for _ in range(2):
            server_end, client_end = socket.socketpair()
            client_end.settimeout(5)
            thread, outcome = _run_handle(server, server_end)
            with client_end:
                runs.append(_request_blocks(client_end, BLOCKS))
            thread.join(timeout=5)
            outcomes.append(outcome)
    assert [outcome.get("total") for outcome in outcomes] == [size, size]
    assert runs[0] == runs[1]


def test_handle_stops_when_client_leaves(data_file):
    with BlockServer(data_file, BLOCKS * BLOCK_SIZE, host="127.0.0.1", port=0) as server:
        server_end, client_end = socket.socketpair()
        client_end.settimeout(5)
        thread, outcome = _run_handle(server, server_end)
        with client_end:
            _request_blocks(client_end, 1)
        thread.join(timeout=5)
    assert outcome["total"] == BLOCK_SIZE


def test_handle_missing_file_raises(tmp_path):
    with BlockServer(tmp_path / "absent", 2 * BLOCK_SIZE, host="127.0.0.1", port=0) as server:
        server_end, client_end = socket.socketpair()
        with client_end:
            with pytest.raises(FileNotFoundError):
                server.handle(server_end)


def test_random_mode_rejects_size_of_one_block(data_file):
    with pytest.raises(ValueError):
        BlockServer(data_file, BLOCK_SIZE, host="127.0.0.1", port=0, random_offsets=True)


def test_fetch_blocks_reads_whole_file(running_server):
    host, port = running_server.address
    size = BLOCKS * BLOCK_SIZE
    result = fetch_blocks(host, port, size)
    assert result.bytes_read == size
    assert result.size == size
    assert result.elapsed.total_ns() >= 0


def test_fetch_blocks_reads_only_whole_blocks(running_server):
    host, port = running_server.address
    result = fetch_blocks(host, port, 3 * BLOCK_SIZE + 100)
    assert result.bytes_read == 3 * BLOCK_SIZE


def test_fetch_blocks_smaller_than_a_block_reads_nothing(running_server):
    host, port = running_server.address
    result = fetch_blocks(host, port, BLOCK_SIZE - 1)
    assert result.bytes_read == 0


def test_serve_forever_returns_after_close(data_file):
    server = BlockServer(data_file, BLOCKS * BLOCK_SIZE, host="127.0.0.1", port=0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    server.close()
    thread.join(timeout=5)
    assert not thread.is_alive()


def test_client_main_reports_total(running_server, capsys):
    _, port = running_server.address
    code = client_main(["32", "K", str(port), "--host", "127.0.0.1"])
    out = capsys.readouterr().out
    assert code == 0
    assert f"total_bytes_read = {32 * 1024}" in out
    assert f"iterations = {32 * 1024 // BLOCK_SIZE}" in out


def test_client_main_fails_without_server(capsys):
    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    code = client_main(["8", "K", str(port), "--host", "127.0.0.1"])
    assert code == 1
    assert "Error" in capsys.readouterr().err