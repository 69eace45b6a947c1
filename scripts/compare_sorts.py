#!/usr/bin/env python
"""Rank three sorting strategies on the same random inputs."""

import logging

from rank_bench import DEFAULT_BUDGET_NS, Candidate, benchmark, tune

SIZE = 2_000


def make_buffer() -> list[float]:
    return [0.0] * SIZE


def fill(rng, buf: list[float]) -> list[float]:
    for i in range(SIZE):
        buf[i] = rng.random()
    return buf


def builtin_sort(rng, buf):
    return sorted(fill(rng, buf))


def in_place_sort(rng, buf):
    fill(rng, buf).sort()
    return buf[0]


def insertion_sort(rng, buf):
    data = fill(rng, buf)
    for i in range(1, 200):
        key = data[i]
        j = i - 1
        while j >= 0 and data[j] > key:
            data[j + 1] = data[j]
            j -= 1
        data[j + 1] = key
    return data[0]


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    candidates = [
        Candidate("sorted", builtin_sort, setup=make_buffer),
        Candidate("list.sort", in_place_sort, setup=make_buffer),
        Candidate("insertion[:200]", insertion_sort, setup=make_buffer),
    ]
    scratch = make_buffer()
    repeat = tune(lambda rng: builtin_sort(rng, scratch), DEFAULT_BUDGET_NS // 10)

    report = benchmark(candidates, repeat, metadata={"size": SIZE})
    print(f"{report.status.name.lower()} after {report.rounds} rounds (repeat={report.repeat_count})")
    for name in report.ranking:
        r = report[name]
        print(f"  {name:<16} {r.mean_ms:8.4f}ms +/- {r.half_width * 1_000:.4f}ms  n={r.observation_count}")


if __name__ == "__main__":
    main()
