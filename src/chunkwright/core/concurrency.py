# concurrency.py
# SPDX-License-Identifier: MIT
"""Bounded thread-pool execution for batch chunking.

Chunking one text shares no mutable state with chunking another, so a
batch can be spread over a thread pool as long as results are written back
by input position.
"""
from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, TypeVar

from .log import get_logger

log = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class ExecutorConfig:
    """Immutable executor settings used to construct worker pools.

    Attributes:
        max_workers (int): Maximum number of worker threads.
        window (int): Maximum number of in-flight tasks allowed
            before backpressure is applied.
    """
    max_workers: int
    window: int


class Executor:
    """Run tasks in a thread pool with bounded submission.

    At most ``cfg.window`` tasks are in flight; results reach the callback
    in completion order, not submission order.
    """

    def __init__(self, cfg: ExecutorConfig) -> None:
        self.cfg = cfg

    def _make_executor(self) -> ThreadPoolExecutor:
        if self.cfg.max_workers < 1:
            raise ValueError("Executor requires max_workers >= 1")
        return ThreadPoolExecutor(max_workers=self.cfg.max_workers, thread_name_prefix="chunkwright")

    def map_unordered(
        self,
        items: Iterable[T],
        fn: Callable[[T], R],
        on_result: Callable[[R], None],
        *,
        fail_fast: bool = False,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        """Submit items to workers and consume results as they complete.

        Args:
            items (Iterable[T]): Items to process.
            fn (Callable[[T], R]): Worker function invoked for each
                item.
            on_result (Callable[[R], None]): Callback invoked for each
                successful result.
            fail_fast (bool): Whether to re-raise the first worker error
                and abort further processing.
            on_error (Callable[[BaseException], None] | None): Optional
                callback invoked when a worker raises an exception.

        Raises:
            Exception: Propagates the first worker error when
                ``fail_fast`` is True.
        """
        window = max(self.cfg.window, self.cfg.max_workers)
        with self._make_executor() as pool:
            pending: list[Future[R]] = []

            def _drain() -> None:
                nonlocal pending
                if not pending:
                    return
                done, still = wait(pending, return_when=FIRST_COMPLETED)
                pending = list(still)
                for fut in done:
                    try:
                        result = fut.result()
                    except Exception as exc:  # noqa: BLE001
                        if on_error:
                            on_error(exc)
                        if fail_fast:
                            for other in pending:
                                other.cancel()
                            raise
                        continue
                    on_result(result)

            for item in items:
                pending.append(pool.submit(fn, item))
                if len(pending) >= window:
                    _drain()

            while pending:
                _drain()


def resolve_batch_executor_config(n_items: int, max_workers: int | None = None) -> ExecutorConfig:
    """Executor settings for a batch of ``n_items`` texts.

    ``max_workers`` defaults to the CPU count and is capped at the number of
    items; the submission window is four tasks per worker.
    """
    if max_workers is not None and max_workers < 1:
        raise ValueError(f"max_workers must be >= 1; got {max_workers!r}.")
    workers = max_workers or (os.cpu_count() or 1)
    workers = max(1, min(workers, max(1, n_items)))
    return ExecutorConfig(max_workers=workers, window=workers * 4)


def map_indexed(
    items: Sequence[T],
    fn: Callable[[T], R],
    *,
    max_workers: int | None = None,
) -> list[R]:
    """Apply ``fn`` to every item, returning results in input order.

    Runs inline when there is one item or one worker; otherwise uses
    :class:`Executor` and stops at the first error, which is re-raised.
    """
    cfg = resolve_batch_executor_config(len(items), max_workers)
    if len(items) <= 1 or cfg.max_workers <= 1:
        return [fn(item) for item in items]

    results: list[Any] = [None] * len(items)

    def _work(pair: tuple[int, T]) -> tuple[int, R]:
        idx, item = pair
        return idx, fn(item)

    def _store(res: tuple[int, R]) -> None:
        idx, value = res
        results[idx] = value

    log.debug("Running %d items on %d worker threads", len(items), cfg.max_workers)
    Executor(cfg).map_unordered(enumerate(items), _work, _store, fail_fast=True)
    return results


__all__ = [
    "Executor",
    "ExecutorConfig",
    "resolve_batch_executor_config",
    "map_indexed",
]
