import pytest

from osbench.contention import FILE_PREFIX, main, read_file_timed, run_contention
from osbench.fileread import BLOCK_SIZE
from osbench.timing import Timespec

SIZE = 2 * BLOCK_SIZE


def _make_files(directory, count, length=SIZE):
    for index in range(count):
        (directory / f"{FILE_PREFIX}{index}").write_bytes(b"z" * length)


def test_read_file_timed_reads_size(tmp_path):
    _make_files(tmp_path, 1)
    result = read_file_timed(tmp_path / f"{FILE_PREFIX}0", SIZE)
    assert result.bytes_read == SIZE
    assert result.end >= result.start


def test_read_file_timed_short_file(tmp_path):
    _make_files(tmp_path, 1, length=10)
    with pytest.raises(EOFError):
        read_file_timed(tmp_path / f"{FILE_PREFIX}0", SIZE)


def test_run_contention_shapes(tmp_path):
    _make_files(tmp_path, 2)
    results = run_contention(tmp_path, 3, 2, SIZE)
    assert sorted(results) == [1, 2]
    assert len(results[1]) == 2
    assert [len(round_) for round_ in results[2]] == [2, 2]
    for rounds in results.values():
        for round_ in rounds:
            assert all(isinstance(t, Timespec) and t >= Timespec() for t in round_)


def test_run_contention_missing_file_gives_none(tmp_path):
    _make_files(tmp_path, 1)
    results = run_contention(tmp_path, 2, 1, SIZE)
    assert results[1][0][0] is not None and results[1][0][0] >= Timespec()
    assert results[2][0][1] is None


def test_run_contention_zero_tries(tmp_path):
    assert run_contention(tmp_path, 4, 0, SIZE) == {1: [], 2: [], 4: []}


def test_run_contention_rejects_no_processes(tmp_path):
    with pytest.raises(ValueError):
        run_contention(tmp_path, 0, 1, SIZE)


def test_main_rejects_bad_process_count(tmp_path):
    assert main(["--directory", str(tmp_path), "--max-processes", "0"]) == 1