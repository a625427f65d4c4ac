# osbench

Small benchmarks for the costs an operating system imposes on a program:
reading files sequentially, at random offsets and through the page cache,
several processes reading at once, fetching file blocks from a server over
TCP, TCP round trips, bandwidth and connection setup/teardown, and pipes,
system calls, process and thread creation and context switching.

Most benchmarks repeat their measurement and print a summary. The network
and CPU benchmarks keep a running mean, minimum, maximum and sample standard
deviation; the file benchmarks print each read and the average time.
Times are taken from Python's monotonic clocks (`time.monotonic_ns` and
`time.perf_counter_ns`) and reported in nanoseconds or milliseconds.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Commands

### `osbench-fileread`

- `osbench-fileread seq [--directory DIR]` — reads `random4K`, `random8K`, …
  up to `random1G` from `DIR` (default `.`) block by block from the start,
  ten times each, and prints the average time in ns. Before each read the
  kernel is asked to drop the file's cached pages, where the platform
  supports it.
- `osbench-fileread rand [--directory DIR] [--seed N]` — the same for
  `random8K` … `random1G`, reading 4 KiB blocks from random block-aligned
  offsets (seeded with `N`, default 1).
- `osbench-fileread cache SIZE_MB [--file PATH]` — reads the first
  `SIZE_MB` megabytes of `PATH` (default `./random1G`) through the page
  cache: two warm-up reads, then ten timed reads.

### `osbench-contention`

`osbench-contention [--directory DIR] [--max-processes N] [--tries T] [--size-mb S]`

With 1, 2, 4, … up to `N` (default 16) processes at once, each process `i`
reads `random8M_<i>` from `DIR`, `S` megabytes (default 8), bypassing the
cache as above. Each count is tried `T` times (default 10).

### `osbench-nfs-server` and `osbench-nfs-client`

- `osbench-nfs-server AMOUNT UNIT [PORT] [--random] [--seed N] [--directory DIR]`
  serves the file `random<AMOUNT><UNIT>` (for example `random8M`) on `PORT`
  (default 22000), one 4 KiB block per request, until `AMOUNT UNIT` bytes
  have been sent on a connection. With `--random` the blocks come from
  random offsets. Each connection is served on its own thread.
- `osbench-nfs-client AMOUNT UNIT PORT [--host HOST]` requests
  `size // 4096` blocks from the server and prints the elapsed time. The
  default host is `192.168.1.107`.

`UNIT` is `K`, `M` or `G`; any other unit means plain bytes.

### `osbench-net-server` and `osbench-net`

Start the server on the target host first:

- `osbench-net-server roundtrip [--port P] [--count C]` — on each of `C`
  connections (default 100, port 5374) waits for a 34-byte message and
  answers with 34 bytes.
- `osbench-net-server bandwidth [--port P] [--count C] [--size-mb S]` — on
  each of `C` connections (port 5001) reads up to `S` megabytes (default 50).

Then run the client:

- `osbench-net roundtrip [HOST ...] [--port P] [--count C]`
- `osbench-net bandwidth [HOST ...] [--port P] [--count C] [--size-mb S]`
- `osbench-net setup [HOST ...] [--port P] [--count C]`
- `osbench-net teardown [HOST ...] [--port P] [--count C]`

Each opens a new connection per measurement and prints the average, standard
deviation, minimum and maximum in milliseconds. Without hosts, `roundtrip`
and `bandwidth` use `192.168.0.9` then `localhost`; `setup` and `teardown`
use `localhost` then `192.168.0.9`. `setup` and `teardown` connect to the
round-trip port and need something listening there.

### `osbench-cpu`

- `osbench-cpu syscall` — one `getpid` call.
- `osbench-cpu pipe [--iterations N]` — write and read back a 4-byte
  message through a pipe (default 100).
- `osbench-cpu process [--iterations N]` — time from starting a process
  until it runs (default 100).
- `osbench-cpu thread [--iterations N]` — time from creating a thread until
  it runs (default 100000).
- `osbench-cpu process-switch [--iterations N]` and
  `osbench-cpu thread-switch [--iterations N]` — half the time spent waiting
  for a child process or worker thread to write a message (default 1000).

All CPU timings are in nanoseconds.

## Library use

- `osbench.stats.RunningStats` — incremental `count`, `mean`, `minimum`,
  `maximum`; `add(value)` and `std()` (sample standard deviation, needs at
  least two values).
- `osbench.timing.Timespec` — seconds/nanoseconds pairs that add and
  subtract, with `total_ns()` and `Timespec.from_ns(ns)`; `monotonic_now()`
  reads the monotonic clock.
- `osbench.sizes.parse_size(amount, unit)` — an amount scaled by `K`, `M` or
  `G`.
- `osbench.fileread` — `read_sequential`, `read_random`, `read_and_average`,
  `measure_cache_read`, `random_block_offset`, returning `ReadResult` values.
- `osbench.contention` — `read_file_timed` and `run_contention`.
- `osbench.nfs` — `BlockServer` (`handle`, `serve_forever`, `close`, usable
  as a context manager) and `fetch_blocks`.
- `osbench.netbench` — `measure_round_trip`, `measure_bandwidth`,
  `measure_setup`, `measure_teardown`.
- `osbench.netserver` — `serve_round_trip` and `serve_bandwidth`, given a
  listening socket.
- `osbench.cpubench` — `pipe_round_trip`, `syscall_time`,
  `process_creation`, `thread_creation`, `process_context_switch`,
  `thread_context_switch`.

```python
from osbench.stats import RunningStats
from osbench.sizes import parse_size

stats = RunningStats()
for sample in (1.0, 2.0, 3.0):
    stats.add(sample)
print(stats.std())  # 1.0

print(parse_size("8", "M"))  # 8388608
```

## What it does not do

- It measures elapsed time only; it does not read CPU cycle counters.
- It has no memory benchmarks (memory latency, read/write bandwidth, page
  faults) and no procedure-call timing.
- The file benchmarks do not create their test files; make them beforehand,
  for example with `dd if=/dev/urandom`.
- The block server is a plain TCP protocol of its own, not a network file
  system.

Results depend heavily on the machine, the file system and the page cache;
run each benchmark several times and compare like with like.