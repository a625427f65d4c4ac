"""Benchmarks for file reads, remote block fetching, TCP sockets, pipes, processes and threads."""

__version__ = "0.1.0"