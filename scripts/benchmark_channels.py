# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "obspec-adaptive",
#     "obstore",
# ]
#
# [tool.uv.sources]
# obspec-adaptive = { path = ".." }
# ///
"""
Benchmark comparing the simple and adaptive read channels on synthetic workloads.

Each workload replays a list of (offset, length) reads against an in-memory
store. A fixed delay is added to every range request to stand in for the
per-request latency of a remote object store, so the timings show the
trade-off between request count and wasted bytes.
"""

from __future__ import annotations

import argparse
import random
import statistics
from collections.abc import Callable
from dataclasses import dataclass
from time import perf_counter, sleep

from obstore.store import MemoryStore

from obspec_adaptive import AccessPattern, ObjectHandle, ReadOptions, open_read_channel
from obspec_adaptive.tracing import RequestTrace, TracingTransport
from obspec_adaptive.transports import ObspecRangeTransport

PATH = "bench.bin"

Workload = list[tuple[int, int]]


class LatencyTransport:
    """Adds a fixed delay to every range that is opened."""

    def __init__(self, transport, latency: float) -> None:
        self._transport = transport
        self._latency = latency

    def open_range(self, obj, start, end):
        sleep(self._latency)
        return self._transport.open_range(obj, start, end)


@dataclass
class BenchmarkResult:
    """Timing and request statistics for one configuration and workload."""

    name: str
    workload: str
    times: list[float]
    requests: int
    bytes_requested: int
    bytes_read: int

    @property
    def mean(self) -> float:
        return statistics.mean(self.times)

    @property
    def std(self) -> float:
        return statistics.stdev(self.times) if len(self.times) > 1 else 0


def sequential_scan(size: int, read_size: int) -> Workload:
    return [(offset, read_size) for offset in range(0, size, read_size)]


def columnar(size: int, read_size: int, rng: random.Random) -> Workload:
    """Footer reads followed by column chunks scattered over the object."""
    reads = [(size - 8, 8), (size - 64 * 1024, 64 * 1024 - 8)]
    for _ in range(32):
        start = rng.randrange(0, size - read_size * 4)
        reads.extend((start + i * read_size, read_size) for i in range(4))
    return reads


def random_reads(size: int, read_size: int, rng: random.Random) -> Workload:
    return [(rng.randrange(0, size - read_size), read_size) for _ in range(128)]


def run_workload(channel, workload: Workload) -> None:
    for offset, length in workload:
        channel.seek(offset)
        channel.read(length)


def run_benchmark(
    name: str,
    options: ReadOptions,
    store: MemoryStore,
    obj: ObjectHandle,
    workload_name: str,
    workload: Workload,
    latency: float,
    iterations: int,
) -> BenchmarkResult:
    times = []
    trace = RequestTrace()
    for _ in range(iterations):
        trace.clear()
        transport = TracingTransport(
            LatencyTransport(ObspecRangeTransport(store), latency), trace
        )
        start = perf_counter()
        with open_read_channel(transport, obj, options) as channel:
            run_workload(channel, workload)
        times.append(perf_counter() - start)

    return BenchmarkResult(
        name=name,
        workload=workload_name,
        times=times,
        requests=trace.total_requests,
        bytes_requested=trace.total_bytes,
        bytes_read=trace.total_bytes_read,
    )


def print_results(results: list[BenchmarkResult]) -> None:
    header = f"{'workload':<12} {'channel':<12} {'time (s)':>16} {'requests':>9} {'MB requested':>13} {'MB read':>9}"
    print(header)
    print("-" * len(header))
    for r in results:
        print(
            f"{r.workload:<12} {r.name:<12} {r.mean:>9.4f} ± {r.std:<5.4f}"
            f"{r.requests:>9} {r.bytes_requested / 1e6:>13.1f} {r.bytes_read / 1e6:>9.1f}"
        )


def main() -> None:
    parser = argparse.ArgumentParser(
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--size-mb", type=int, default=64, help="Object size in MB")
    parser.add_argument(
        "--read-size", type=int, default=64 * 1024, help="Bytes per read call"
    )
    parser.add_argument(
        "--latency-ms", type=float, default=20.0, help="Delay per range request"
    )
    parser.add_argument("--iterations", type=int, default=3)
    parser.add_argument("--seed", type=int, default=0)
    args = parser.parse_args()

    size = args.size_mb * 1024 * 1024
    store = MemoryStore()
    store.put(PATH, random.Random(args.seed).randbytes(size))
    obj = ObjectHandle(path=PATH, size=size)

    rng = random.Random(args.seed)
    workloads: dict[str, Callable[[], Workload]] = {
        "sequential": lambda: sequential_scan(size, args.read_size),
        "columnar": lambda: columnar(size, args.read_size, rng),
        "random": lambda: random_reads(size, args.read_size, rng),
    }
    configurations = {
        "simple": ReadOptions(adaptive_range_read_enabled=False),
        "sequential": ReadOptions(access_pattern=AccessPattern.SEQUENTIAL),
        "random": ReadOptions(access_pattern=AccessPattern.RANDOM),
        "auto": ReadOptions(access_pattern=AccessPattern.AUTO),
    }

    results = []
    for workload_name, make_workload in workloads.items():
        workload = make_workload()
        for name, options in configurations.items():
            results.append(
                run_benchmark(
                    name,
                    options,
                    store,
                    obj,
                    workload_name,
                    workload,
                    args.latency_ms / 1000,
                    args.iterations,
                )
            )

    print_results(results)


if __name__ == "__main__":
    main()
