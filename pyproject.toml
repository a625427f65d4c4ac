[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "osbench"
version = "0.1.0"
description = "Micro-benchmarks for operating-system costs: file reads, contention, remote block fetching, sockets, processes and threads"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "benchmark",
    "operating-system",
    "latency",
    "bandwidth",
    "file-system",
    "context-switch",
    "sockets",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Benchmark",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
osbench-fileread = "osbench.fileread:main"
osbench-contention = "osbench.contention:main"
osbench-nfs-client = "osbench.nfs:client_main"
osbench-nfs-server = "osbench.nfs:server_main"
osbench-net = "osbench.netbench:main"
osbench-net-server = "osbench.netserver:main"
osbench-cpu = "osbench.cpubench:main"

[tool.hatch.build.targets.wheel]
packages = ["osbench"]

[tool.hatch.build.targets.sdist]
include = ["osbench", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
