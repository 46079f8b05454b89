# packer.py
# SPDX-License-Identifier: MIT
"""Token-budget packing over cumulative sums.

All packers here work on token counts only and return index ranges or
merged texts; none of them call a tokenizer themselves.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from collections.abc import Callable, Sequence
from typing import Any

from .log import get_logger

__all__ = [
    "cumulative_counts",
    "bisect_groups",
    "bisect_pack",
    "pack_sentences",
    "group_child_nodes",
]

log = get_logger(__name__)


def cumulative_counts(counts: Sequence[int], join_cost: int = 0) -> list[int]:
    """Prefix sums ``C`` with ``C[0] == 0`` and ``C[i] = C[i-1] + counts[i-1] + join_cost``."""
    cum = [0]
    total = 0
    for count in counts:
        total += count + join_cost
        cum.append(total)
    return cum


def bisect_groups(
    counts: Sequence[int],
    chunk_size: int,
    *,
    join_cost: int = 0,
    inclusive: bool = False,
) -> list[tuple[int, int]]:
    """Greedy left-to-right grouping of ``counts`` under ``chunk_size``.

    Each step binary-searches the prefix sums for the furthest end index
    whose group total stays below ``chunk_size`` (or at most ``chunk_size``
    when ``inclusive`` is set). A group always holds at least one item, so
    an item that alone exceeds the budget becomes its own group.

    Args:
        counts (Sequence[int]): Token count of each item.
        chunk_size (int): Token budget per group.
        join_cost (int): Extra tokens charged per item, for separators
            re-inserted when the group is joined.
        inclusive (bool): Allow groups whose total equals the budget.

    Returns:
        list[tuple[int, int]]: Half-open ``(start, end)`` item ranges that
        cover ``range(len(counts))`` in order.
    """
    n = len(counts)
    cum = cumulative_counts(counts, join_cost)
    search = bisect_right if inclusive else bisect_left
    groups: list[tuple[int, int]] = []
    pos = 0
    while pos < n:
        target = cum[pos] + chunk_size
        idx = min(search(cum, target, pos) - 1, n)
        if idx <= pos:
            idx = pos + 1
        groups.append((pos, idx))
        pos = idx
    return groups


def bisect_pack(
    pieces: Sequence[str],
    counts: Sequence[int],
    chunk_size: int,
    *,
    combine_whitespace: bool = False,
) -> tuple[list[str], list[int]]:
    """Merge adjacent pieces into groups bounded by ``chunk_size``.

    With ``combine_whitespace`` each piece is charged one extra token and
    groups are joined with a single space; otherwise pieces are
    concatenated as-is.

    Returns:
        tuple[list[str], list[int]]: Group texts and their summed counts.

    Raises:
        ValueError: If ``pieces`` and ``counts`` differ in length.
    """
    if len(pieces) != len(counts):
        raise ValueError(f"Got {len(pieces)} pieces but {len(counts)} token counts.")
    if not pieces:
        return [], []
    if all(count > chunk_size for count in counts):
        return list(pieces), list(counts)

    join_cost = 1 if combine_whitespace else 0
    sep = " " if combine_whitespace else ""
    cum = cumulative_counts(counts, join_cost)
    merged: list[str] = []
    merged_counts: list[int] = []
    for start, end in bisect_groups(counts, chunk_size, join_cost=join_cost):
        merged.append(sep.join(pieces[start:end]))
        merged_counts.append(cum[end] - cum[start])
    return merged, merged_counts


def pack_sentences(
    counts: Sequence[int],
    chunk_size: int,
    *,
    min_sentences: int = 1,
    overlap: int = 0,
) -> list[tuple[int, int]]:
    """Group sentences under the budget with a minimum-sentences floor.

    Groups may total exactly ``chunk_size``. When the budget alone would
    give a group fewer than ``min_sentences`` sentences the group is
    extended; if too few sentences remain, the short tail is emitted as is
    and a warning is logged. With ``overlap`` > 0 the next group restarts
    at trailing sentences of the previous one whose counts (plus one per
    sentence) fit in ``overlap`` tokens.

    Returns:
        list[tuple[int, int]]: Half-open sentence ranges, possibly
        overlapping when ``overlap`` > 0.
    """
    n = len(counts)
    cum = cumulative_counts(counts)
    groups: list[tuple[int, int]] = []
    pos = 0
    while pos < n:
        split_idx = min(bisect_right(cum, cum[pos] + chunk_size, pos) - 1, n)
        split_idx = max(split_idx, pos + 1)

        if split_idx - pos < min_sentences:
            if pos + min_sentences <= n:
                split_idx = pos + min_sentences
            else:
                log.warning(
                    "Minimum sentences per chunk (%d) could not be met; last chunk has %d sentence(s). "
                    "Consider increasing chunk_size or decreasing min_sentences_per_chunk.",
                    min_sentences,
                    n - pos,
                )
                split_idx = n

        groups.append((pos, split_idx))

        if overlap > 0 and split_idx < n:
            overlap_tokens = 0
            overlap_idx = split_idx - 1
            while overlap_idx > pos and overlap_tokens < overlap:
                next_tokens = overlap_tokens + counts[overlap_idx] + 1
                if next_tokens > overlap:
                    break
                overlap_tokens = next_tokens
                overlap_idx -= 1
            pos = overlap_idx + 1
        else:
            pos = split_idx
    return groups


def group_child_nodes(
    node: Any,
    source: bytes,
    chunk_size: int,
    count_batch: Callable[[list[str]], list[int]],
) -> tuple[list[list[Any]], list[int]]:
    """Pack a parse-tree node's children into budget-bounded sibling groups.

    Runs of consecutive under-budget children are merged with the bisection
    packer. A child over budget closes the current run and is descended
    into depth-first; an over-budget child without children of its own
    becomes a single-node group.

    Args:
        node (Any): Tree node exposing ``children``, ``start_byte`` and
            ``end_byte`` (tree-sitter's ``Node`` interface).
        source (bytes): The buffer the tree was parsed from.
        chunk_size (int): Token budget per group.
        count_batch (Callable[[list[str]], list[int]]): Counts tokens for
            a batch of texts.

    Returns:
        tuple[list[list[Any]], list[int]]: Node groups in document order
        and the summed token count of each group.
    """
    children = list(getattr(node, "children", None) or ())
    if not children:
        return [], []

    texts = [source[c.start_byte:c.end_byte].decode("utf-8", errors="replace") for c in children]
    counts = count_batch(texts)

    groups: list[list[Any]] = []
    group_counts: list[int] = []
    run: list[int] = []

    def _flush_run() -> None:
        if not run:
            return
        run_counts = [counts[i] for i in run]
        cum = cumulative_counts(run_counts)
        for start, end in bisect_groups(run_counts, chunk_size, inclusive=True):
            groups.append([children[i] for i in run[start:end]])
            group_counts.append(cum[end] - cum[start])
        run.clear()

    for i, child in enumerate(children):
        if counts[i] <= chunk_size:
            run.append(i)
            continue
        _flush_run()
        sub_groups, sub_counts = group_child_nodes(child, source, chunk_size, count_batch)
        if sub_groups:
            groups.extend(sub_groups)
            group_counts.extend(sub_counts)
        else:
            groups.append([child])
            group_counts.append(counts[i])
    _flush_run()
    return groups, group_counts
