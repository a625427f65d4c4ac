import random

import pytest

from osbench.fileread import (
    BLOCK_SIZE,
    ReadResult,
    main,
    measure_cache_read,
    random_block_offset,
    read_and_average,
    read_random,
    read_sequential,
)
from osbench.sizes import MB
from osbench.timing import NS_PER_SEC, Timespec


def _make_file(tmp_path, name, length):
    path = tmp_path / name
    path.write_bytes(bytes(range(256)) * (length // 256) + b"x" * (length % 256))
    return path


def test_offset_zero_value_is_zero():
    assert random_block_offset(0, 4 * BLOCK_SIZE, BLOCK_SIZE) == 0


@pytest.mark.parametrize("value", [1, 4095, 4096, 123457, 2**31 - 1])
def test_offset_aligned_and_in_range(value):
    size = 8 * BLOCK_SIZE
    offset = random_block_offset(value, size, BLOCK_SIZE)
    assert offset % BLOCK_SIZE == 0
    assert 0 <= offset < size - BLOCK_SIZE


def test_offset_rejects_small_size():
    with pytest.raises(ValueError):
        random_block_offset(10, BLOCK_SIZE, BLOCK_SIZE)


def test_offset_rejects_negative_value():
    with pytest.raises(ValueError):
        random_block_offset(-1, 4 * BLOCK_SIZE, BLOCK_SIZE)


def test_read_sequential_reads_exact_blocks(tmp_path):
    path = _make_file(tmp_path, "data", 3 * BLOCK_SIZE)
    result = read_sequential(path, 3 * BLOCK_SIZE)
    assert result.bytes_read == 3 * BLOCK_SIZE
    assert result.size == 3 * BLOCK_SIZE
    assert result.elapsed >= Timespec(0, 0)
    assert result.end >= result.start


def test_read_sequential_rounds_up_to_whole_block(tmp_path):
    path = _make_file(tmp_path, "data", 2 * BLOCK_SIZE)
    result = read_sequential(path, BLOCK_SIZE + 1)
    assert result.bytes_read == 2 * BLOCK_SIZE


def test_read_sequential_short_file_raises(tmp_path):
    path = _make_file(tmp_path, "short", 100)
    with pytest.raises(EOFError):
        read_sequential(path, BLOCK_SIZE)


def test_read_sequential_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_sequential(tmp_path / "absent", BLOCK_SIZE)


def test_read_random_reads_requested_amount(tmp_path):
    size = 4 * BLOCK_SIZE
    path = _make_file(tmp_path, "data", size)
    result = read_random(path, size, random.Random(0))
    assert result.bytes_read == size
    assert result.end >= result.start


def test_read_random_rejects_block_sized_file(tmp_path):
    path = _make_file(tmp_path, "data", BLOCK_SIZE)
    with pytest.raises(ValueError):
        read_random(path, BLOCK_SIZE, random.Random(0))


def test_read_and_average_uses_reader(capsys):
    calls = []

    def reader(path, size):
        calls.append((path, size))
        return ReadResult(size, size, Timespec(5, 0), Timespec(6, 0))

    average = read_and_average("somewhere", BLOCK_SIZE, reader, 4)
    assert average == NS_PER_SEC
    assert calls == [("somewhere", BLOCK_SIZE)] * 4
    out = capsys.readouterr().out
    assert f"size: {BLOCK_SIZE}, average time in ns: {NS_PER_SEC}" in out
    assert out.count("INSTANT size:") == 4


def test_read_and_average_rejects_zero_repetitions():
    with pytest.raises(ValueError):
        read_and_average("somewhere", BLOCK_SIZE, read_sequential, 0)


def test_measure_cache_read_returns_measured_rounds(tmp_path, capsys):
    path = _make_file(tmp_path, "random1G", MB)
    results = measure_cache_read(path, 1)
    assert len(results) == 10
    assert all(result.bytes_read == MB for result in results)
    assert capsys.readouterr().out.count("INSTANT diff:") == 12


def test_main_cache(tmp_path, capsys):
    path = _make_file(tmp_path, "random1G", MB)
    assert main(["cache", "1", "--file", str(path)]) == 0
    assert capsys.readouterr().out.splitlines()[0] == "1"


def test_main_seq_missing_files_fails(tmp_path):
    assert main(["seq", "--directory", str(tmp_path)]) == 1


def test_main_rand_missing_files_fails(tmp_path):
    assert main(["rand", "--directory", str(tmp_path)]) == 1