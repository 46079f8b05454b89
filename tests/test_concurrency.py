import threading
import time

import pytest

from chunkwright.core.concurrency import (
    Executor,
    ExecutorConfig,
    map_indexed,
    resolve_batch_executor_config,
)


def test_map_indexed_preserves_input_order() -> None:
    items = list(range(12))

    def slow_square(x):
        time.sleep(0.001 * (12 - x))
        return x * x

    assert map_indexed(items, slow_square, max_workers=4) == [x * x for x in items]


def test_map_indexed_runs_inline_for_single_worker() -> None:
    seen_threads = set()

    def record(x):
        seen_threads.add(threading.get_ident())
        return x

    assert map_indexed([1, 2, 3], record, max_workers=1) == [1, 2, 3]
    assert seen_threads == {threading.get_ident()}


def test_map_indexed_raises_first_error() -> None:
    def fn(x):
        if x == 3:
            raise ValueError("boom")
        return x

    with pytest.raises(ValueError, match="boom"):
        map_indexed(list(range(8)), fn, max_workers=2)


def test_map_unordered_reports_errors_and_continues() -> None:
    executor = Executor(ExecutorConfig(max_workers=2, window=2))
    results = []
    errors = []

    def fn(x):
        if x == 2:
            raise RuntimeError("bad item")
        return x * 10

    executor.map_unordered([1, 2, 3], fn, results.append, on_error=errors.append)

    assert sorted(results) == [10, 30]
    assert len(errors) == 1
    assert isinstance(errors[0], RuntimeError)


def test_map_unordered_bounds_in_flight_tasks() -> None:
    executor = Executor(ExecutorConfig(max_workers=2, window=3))
    results = []
    in_flight = []

    def items():
        for i in range(20):
            in_flight.append(i - len(results))
            yield i

    def fn(x):
        time.sleep(0.001)
        return x

    executor.map_unordered(items(), fn, results.append)

    assert sorted(results) == list(range(20))
    assert max(in_flight) <= 3


def test_executor_rejects_zero_workers() -> None:
    with pytest.raises(ValueError):
        Executor(ExecutorConfig(max_workers=0, window=1)).map_unordered([1], str, print)


def test_resolve_batch_executor_config_caps_workers() -> None:
    cfg = resolve_batch_executor_config(3, max_workers=8)
    assert cfg.max_workers == 3
    assert cfg.window == 12
    assert resolve_batch_executor_config(0).max_workers == 1
    with pytest.raises(ValueError):
        resolve_batch_executor_config(3, max_workers=0)
