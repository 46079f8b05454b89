# splitter.py
# SPDX-License-Identifier: MIT
"""Level splitting and token-count estimation.

Delimiter levels are matched by position with one compiled alternation of
the escaped delimiters (longest first), and the text is sliced around the
match offsets. Nothing is substituted into the text, so any input string is
handled, including ones containing unusual code points.
"""

from __future__ import annotations

import functools
import math
import re
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from .rules import DelimiterLevel, IncludeDelim, RuleLevel, TokenLevel, WhitespaceLevel
from .tokenizer import count_tokens_batch, decode_batch

__all__ = [
    "CHARS_PER_TOKEN",
    "ChunkingError",
    "tokenizer_errors",
    "estimate_token_count",
    "estimate_token_counts",
    "split_on_delimiters",
    "split_on_spaces",
    "merge_short_splits",
    "split_text",
    "token_windows",
]

# Average characters per sub-word token for general-purpose English text.
CHARS_PER_TOKEN = 6.5


class ChunkingError(RuntimeError):
    """Raised when the tokenizer fails while a text is being chunked.

    Attributes:
        level (int | None): Recursion level that was being processed.
        rule (str | None): Kind of rule level in effect (``"delimiter"``,
            ``"whitespace"``, ``"token"``) or the chunker stage name.
    """

    def __init__(self, message: str, *, level: int | None = None, rule: str | None = None) -> None:
        super().__init__(message)
        self.level = level
        self.rule = rule


@contextmanager
def tokenizer_errors(stage: str, level: int | None = None) -> Iterator[None]:
    """Wrap tokenizer exceptions raised inside the block in ChunkingError."""
    try:
        yield
    except ChunkingError:
        raise
    except Exception as exc:
        where = stage if level is None else f"{stage} level {level}"
        raise ChunkingError(
            f"Tokenizer failed during {where}: {type(exc).__name__}: {exc}",
            level=level,
            rule=stage,
        ) from exc


def estimate_token_count(
    tokenizer: Any,
    text: str,
    chunk_size: int,
    chars_per_token: float = CHARS_PER_TOKEN,
) -> int:
    """Cheap over/under-budget token count for one piece of text.

    When the character-based estimate already exceeds ``chunk_size`` the
    tokenizer is skipped and ``chunk_size + 1`` is returned; the value only
    signals "over budget". Otherwise the exact count is returned.
    """
    estimate = max(1, math.floor(len(text) / chars_per_token))
    if estimate > chunk_size:
        return chunk_size + 1
    return tokenizer.count_tokens(text)


def estimate_token_counts(
    tokenizer: Any,
    texts: Sequence[str],
    chunk_size: int,
    chars_per_token: float = CHARS_PER_TOKEN,
) -> list[int]:
    """Batch form of :func:`estimate_token_count`.

    Pieces whose estimate fits the budget are counted exactly with a single
    batched tokenizer call.
    """
    counts = [max(1, math.floor(len(text) / chars_per_token)) for text in texts]
    exact_idx = [i for i, est in enumerate(counts) if est <= chunk_size]
    for i, est in enumerate(counts):
        if est > chunk_size:
            counts[i] = chunk_size + 1
    if exact_idx:
        exact = count_tokens_batch(tokenizer, [texts[i] for i in exact_idx])
        for i, value in zip(exact_idx, exact):
            counts[i] = int(value)
    return counts


@functools.lru_cache(maxsize=256)
def _delimiter_pattern(delimiters: tuple[str, ...]) -> re.Pattern[str]:
    # Longest first so "..." wins over "." and "\r\n" over "\r".
    ordered = sorted(dict.fromkeys(delimiters), key=len, reverse=True)
    return re.compile("|".join(re.escape(d) for d in ordered))


def split_on_delimiters(
    text: str,
    delimiters: Sequence[str],
    include_delim: IncludeDelim = "prev",
) -> list[str]:
    """Cut ``text`` at every delimiter match; empty pieces are dropped.

    Args:
        text (str): Text to split.
        delimiters (Sequence[str]): Non-empty delimiter strings.
        include_delim (IncludeDelim): Where the matched delimiter goes.

    Returns:
        list[str]: Pieces in order. Unless ``include_delim`` is
        ``"none"``, ``"".join(result) == text``.
    """
    pattern = _delimiter_pattern(tuple(delimiters))
    pieces: list[str] = []
    cursor = 0
    for match in pattern.finditer(text):
        if include_delim == "prev":
            pieces.append(text[cursor:match.end()])
            cursor = match.end()
        elif include_delim == "next":
            pieces.append(text[cursor:match.start()])
            cursor = match.start()
        else:
            pieces.append(text[cursor:match.start()])
            cursor = match.end()
    pieces.append(text[cursor:])
    return [piece for piece in pieces if piece]


def split_on_spaces(text: str) -> list[str]:
    """Split on the literal single space; empty pieces are kept."""
    return text.split(" ")


def merge_short_splits(splits: Sequence[str], min_characters: int) -> list[str]:
    """Glue pieces shorter than ``min_characters`` onto their neighbours.

    Short pieces accumulate until the accumulator reaches the threshold or
    a long piece arrives, which absorbs the accumulator. Concatenation
    order is preserved, so the joined output equals the joined input.
    """
    merged: list[str] = []
    current = ""
    for split in splits:
        if len(split) < min_characters:
            current += split
        elif current:
            merged.append(current + split)
            current = ""
        else:
            merged.append(split)
        if len(current) >= min_characters:
            merged.append(current)
            current = ""
    if current:
        merged.append(current)
    return merged


def split_text(text: str, level: RuleLevel, min_characters_per_chunk: int = 1) -> list[str]:
    """Apply a whitespace or delimiter level to ``text``.

    Raises:
        ValueError: If ``level`` is the terminal token level; use
            :func:`token_windows` for that.
    """
    if isinstance(level, WhitespaceLevel):
        return split_on_spaces(text)
    if isinstance(level, DelimiterLevel):
        pieces = split_on_delimiters(text, level.delimiters, level.include_delim)
        return merge_short_splits(pieces, min_characters_per_chunk)
    if isinstance(level, TokenLevel):
        raise ValueError("Token levels are split with token_windows().")
    raise TypeError(f"Unsupported rule level: {level!r}")


def token_windows(tokenizer: Any, text: str, chunk_size: int) -> tuple[list[str], list[int]]:
    """Slice the encoding of ``text`` into windows of ``chunk_size`` tokens.

    Returns:
        tuple[list[str], list[int]]: Decoded window texts and the number of
        tokens in each window (``chunk_size`` except possibly the last).
    """
    ids = list(tokenizer.encode(text))
    windows = [ids[i:i + chunk_size] for i in range(0, len(ids), chunk_size)]
    if not windows:
        return [], []
    return decode_batch(tokenizer, windows), [len(w) for w in windows]

