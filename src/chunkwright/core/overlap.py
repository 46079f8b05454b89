# overlap.py
# SPDX-License-Identifier: MIT
"""Overlap windows between finished, contiguous chunks."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import replace
from typing import Any, Literal

from .log import get_logger
from .splitter import tokenizer_errors
from .tokenizer import count_tokens_batch, decode_batch, encode_batch, get_tokenizer, tokenizer_name
from .types import Chunk, Context

__all__ = ["OverlapRefinery", "OverlapMethod", "OverlapUnit"]

log = get_logger(__name__)

OverlapMethod = Literal["suffix", "prefix"]
OverlapUnit = Literal["token", "char"]


def _validate_context_size(value: Any) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"context_size must be an int or float; got {type(value).__name__}.")
    if isinstance(value, float):
        if value.is_integer() and value >= 1:
            return int(value)
        if not 0.0 < value < 1.0:
            raise ValueError(f"Fractional context_size must be in (0, 1); got {value!r}.")
        return value
    if value < 1:
        raise ValueError(f"context_size must be >= 1 when given as a count; got {value!r}.")
    return value


class OverlapRefinery:
    """Bridge chunk boundaries with windows copied from neighbouring chunks.

    In ``"suffix"`` mode each chunk after the first receives the tail of its
    predecessor; its ``start_index`` moves back by the window's character
    length, never past the predecessor's own start. ``"prefix"`` mode is the
    mirror image: each chunk before the last receives the head of its
    successor and its ``end_index`` moves forward. With ``merge=False`` text
    and offsets are left alone and the window is attached as
    :class:`~chunkwright.core.types.Context`.

    Args:
        tokenizer: Tokenizer or tokenizer name, used for the ``"token"``
            unit and to recount merged chunks.
        context_size (int | float): Window size in units, or a fraction in
            ``(0, 1)`` of the largest chunk (token count or length).
        unit (str): ``"token"`` or ``"char"``.
        method (str): ``"suffix"`` or ``"prefix"``.
        merge (bool): Rewrite chunk text and offsets instead of attaching
            a context.
    """

    def __init__(
        self,
        tokenizer: Any = "character",
        context_size: int | float = 0.25,
        unit: OverlapUnit = "token",
        method: OverlapMethod = "suffix",
        merge: bool = True,
    ) -> None:
        if unit not in ("token", "char"):
            raise ValueError(f"unit must be 'token' or 'char'; got {unit!r}.")
        if method not in ("suffix", "prefix"):
            raise ValueError(f"method must be 'suffix' or 'prefix'; got {method!r}.")
        self.tokenizer = get_tokenizer(tokenizer)
        self.context_size = _validate_context_size(context_size)
        self.unit = unit
        self.method = method
        self.merge = bool(merge)

    def __repr__(self) -> str:
        return (
            f"OverlapRefinery(tokenizer={tokenizer_name(self.tokenizer)!r}, context_size={self.context_size!r}, "
            f"unit={self.unit!r}, method={self.method!r}, merge={self.merge!r})"
        )

    def __call__(self, chunks: Sequence[Chunk]) -> list[Chunk]:
        return self.refine(chunks)

    def effective_size(self, chunks: Sequence[Chunk]) -> int:
        """Resolve ``context_size`` against ``chunks`` to a unit count."""
        if isinstance(self.context_size, float):
            if self.unit == "token":
                largest = max((c.token_count for c in chunks), default=0)
            else:
                largest = max((len(c.text) for c in chunks), default=0)
            return math.floor(self.context_size * largest)
        return int(self.context_size)

    def _windows(self, sources: Sequence[str], size: int) -> list[str]:
        if self.unit == "char":
            if self.method == "suffix":
                return [text[-size:] for text in sources]
            return [text[:size] for text in sources]
        encoded = encode_batch(self.tokenizer, sources)
        if self.method == "suffix":
            picked = [ids[-size:] for ids in encoded]
        else:
            picked = [ids[:size] for ids in encoded]
        return decode_batch(self.tokenizer, picked)

    def refine(self, chunks: Sequence[Chunk]) -> list[Chunk]:
        """Return new chunks with overlap applied; inputs are not modified."""
        out = list(chunks)
        if len(out) < 2:
            return out
        size = self.effective_size(out)
        if size <= 0:
            log.debug("Overlap window resolved to zero %ss; chunks left unchanged.", self.unit)
            return out

        with tokenizer_errors("overlap"):
            if self.method == "suffix":
                targets = list(range(1, len(out)))
                windows = self._windows([out[i - 1].text for i in targets], size)
            else:
                targets = list(range(len(out) - 1))
                windows = self._windows([out[i + 1].text for i in targets], size)
            window_counts = count_tokens_batch(self.tokenizer, windows)

            refined = list(out)
            for i, window, window_count in zip(targets, windows, window_counts):
                refined[i] = self._apply(out, i, window, window_count)

            if self.merge:
                counts = count_tokens_batch(self.tokenizer, [refined[i].text for i in targets])
                for i, count in zip(targets, counts):
                    refined[i] = replace(refined[i], token_count=int(count))
        return refined

    def _apply(self, chunks: Sequence[Chunk], i: int, window: str, window_count: int) -> Chunk:
        cur = chunks[i]
        if self.method == "suffix":
            prev = chunks[i - 1]
            shift = min(len(window), max(0, cur.start_index - prev.start_index))
            if self.merge:
                return replace(cur, text=window + cur.text, start_index=cur.start_index - shift)
            ctx = Context(
                text=window,
                token_count=int(window_count),
                start_index=max(prev.start_index, prev.end_index - len(window)),
                end_index=prev.end_index,
            )
            return replace(cur, context=ctx)

        nxt = chunks[i + 1]
        shift = min(len(window), max(0, nxt.end_index - cur.end_index))
        if self.merge:
            return replace(cur, text=cur.text + window, end_index=cur.end_index + shift)
        ctx = Context(
            text=window,
            token_count=int(window_count),
            start_index=nxt.start_index,
            end_index=min(nxt.end_index, nxt.start_index + len(window)),
        )
        return replace(cur, context=ctx)
