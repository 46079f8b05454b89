import logging

import pytest

from chunkwright.core.packer import (
    bisect_groups,
    bisect_pack,
    cumulative_counts,
    group_child_nodes,
    pack_sentences,
)


class _Node:
    def __init__(self, start_byte, end_byte, children=()):
        self.start_byte = start_byte
        self.end_byte = end_byte
        self.children = list(children)


def _lengths(texts):
    return [len(t) for t in texts]


def test_cumulative_counts_with_join_cost() -> None:
    assert cumulative_counts([1, 2, 3]) == [0, 1, 3, 6]
    assert cumulative_counts([1, 2, 3], join_cost=1) == [0, 2, 5, 9]


def test_bisect_groups_strict_and_inclusive() -> None:
    counts = [3, 3, 3, 3]

    assert bisect_groups(counts, 6, inclusive=True) == [(0, 2), (2, 4)]
    assert bisect_groups(counts, 6) == [(0, 1), (1, 2), (2, 3), (3, 4)]
    assert bisect_groups(counts, 7) == [(0, 2), (2, 4)]


def test_bisect_groups_isolates_oversized_item() -> None:
    assert bisect_groups([10, 1, 1], 5) == [(0, 1), (1, 3)]
    assert bisect_groups([], 5) == []


def test_bisect_pack_concatenates_groups() -> None:
    assert bisect_pack(["a", "b", "c"], [1, 1, 1], 3) == (["ab", "c"], [2, 1])


def test_bisect_pack_whitespace_charges_join_token() -> None:
    merged, counts = bisect_pack(["a", "b", "c"], [1, 1, 1], 5, combine_whitespace=True)

    assert merged == ["a b", "c"]
    assert counts == [4, 2]


def test_bisect_pack_returns_oversized_pieces_unchanged() -> None:
    assert bisect_pack(["aaa", "bbb"], [9, 9], 5) == (["aaa", "bbb"], [9, 9])
    assert bisect_pack([], [], 5) == ([], [])
    with pytest.raises(ValueError):
        bisect_pack(["a"], [1, 2], 5)


def test_pack_sentences_allows_exact_budget() -> None:
    assert pack_sentences([3, 3, 3, 3], 6) == [(0, 2), (2, 4)]


def test_pack_sentences_min_sentences_floor_warns(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="chunkwright"):
        groups = pack_sentences([5, 5, 5], 6, min_sentences=2)

    assert groups == [(0, 2), (2, 3)]
    assert "Minimum sentences per chunk (2) could not be met" in caplog.text


def test_pack_sentences_overlap_walks_back() -> None:
    assert pack_sentences([2, 2, 2, 2], 4, overlap=3) == [(0, 2), (1, 3), (2, 4)]


def test_group_child_nodes_packs_siblings() -> None:
    source = b"aaaa bbbb cccc"
    children = [_Node(0, 4), _Node(5, 9), _Node(10, 14)]
    root = _Node(0, 14, children)

    groups, counts = group_child_nodes(root, source, 9, _lengths)

    assert groups == [children[:2], children[2:]]
    assert counts == [8, 4]


def test_group_child_nodes_descends_into_oversized_child() -> None:
    source = b"aaaa bbbb cccc"
    first = _Node(0, 4)
    inner = [_Node(5, 9), _Node(10, 14)]
    big = _Node(5, 14, inner)
    leaf = _Node(0, 14)

    groups, counts = group_child_nodes(_Node(0, 14, [first, big]), source, 5, _lengths)
    assert groups == [[first], [inner[0]], [inner[1]]]
    assert counts == [4, 4, 4]

    groups, counts = group_child_nodes(_Node(0, 14, [leaf]), source, 5, _lengths)
    assert groups == [[leaf]]
    assert counts == [14]


def test_group_child_nodes_without_children() -> None:
    assert group_child_nodes(_Node(0, 3), b"abc", 5, _lengths) == ([], [])
