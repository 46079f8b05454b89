# base.py
# SPDX-License-Identifier: MIT
"""Shared chunker surface: validation, batch execution, call dispatch."""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any, Literal

from ..core.concurrency import map_indexed
from ..core.log import get_logger
from ..core.tokenizer import DEFAULT_ENCODING, get_tokenizer, tokenizer_name
from ..core.types import Chunk

__all__ = [
    "BaseChunker",
    "ReturnType",
    "validate_chunk_size",
    "validate_positive",
    "resolve_chunk_overlap",
    "validate_return_type",
]

log = get_logger(__name__)

ReturnType = Literal["chunks", "texts"]


def validate_positive(name: str, value: Any) -> int:
    """Return ``value`` if it is an int greater than zero."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int; got {type(value).__name__}.")
    if value <= 0:
        raise ValueError(f"{name} must be > 0; got {value}.")
    return value


def validate_chunk_size(chunk_size: Any) -> int:
    return validate_positive("chunk_size", chunk_size)


def resolve_chunk_overlap(chunk_overlap: Any, chunk_size: int) -> int:
    """Turn an overlap given as a count or a fraction into a token count.

    A float in ``[0, 1)`` is a fraction of ``chunk_size`` (rounded down);
    an int is used as is. The result must satisfy
    ``0 <= overlap < chunk_size``.

    Raises:
        TypeError: If ``chunk_overlap`` is not a number.
        ValueError: If the overlap is out of range.
    """
    if isinstance(chunk_overlap, bool) or not isinstance(chunk_overlap, (int, float)):
        raise TypeError(f"chunk_overlap must be an int or float; got {type(chunk_overlap).__name__}.")
    if isinstance(chunk_overlap, float):
        if not 0.0 <= chunk_overlap < 1.0:
            raise ValueError(f"Fractional chunk_overlap must be in [0, 1); got {chunk_overlap!r}.")
        overlap = math.floor(chunk_overlap * chunk_size)
    else:
        overlap = chunk_overlap
    if overlap < 0:
        raise ValueError(f"chunk_overlap must be >= 0; got {overlap}.")
    if overlap >= chunk_size:
        raise ValueError(f"chunk_overlap ({overlap}) must be smaller than chunk_size ({chunk_size}).")
    return overlap


def validate_return_type(return_type: Any) -> ReturnType:
    if return_type not in ("chunks", "texts"):
        raise ValueError(f"return_type must be 'chunks' or 'texts'; got {return_type!r}.")
    return return_type


class BaseChunker:
    """Common behaviour for every chunker.

    Subclasses implement :meth:`_chunk`, which returns finished
    :class:`~chunkwright.core.types.Chunk` objects; :meth:`chunk` applies the
    ``return_type`` setting on top of it.

    Attributes:
        tokenizer: Resolved tokenizer object.
        chunk_size (int): Token budget per chunk.
        return_type (str): ``"chunks"`` or ``"texts"``.
    """

    kind = "base"

    def __init__(
        self,
        tokenizer: Any = DEFAULT_ENCODING,
        chunk_size: int = 512,
        return_type: ReturnType = "chunks",
    ) -> None:
        self.chunk_size = validate_chunk_size(chunk_size)
        self.return_type = validate_return_type(return_type)
        self.tokenizer = get_tokenizer(tokenizer)

    def _chunk(self, text: str) -> list[Chunk]:
        raise NotImplementedError

    def chunk(self, text: str) -> list[Chunk] | list[str]:
        """Split one text.

        Returns:
            list[Chunk] | list[str]: Chunks in order, or their texts when
            ``return_type`` is ``"texts"``. Empty input yields ``[]``.

        Raises:
            TypeError: If ``text`` is not a string.
            ChunkingError: If the tokenizer fails.
        """
        if not isinstance(text, str):
            raise TypeError(f"chunk() expects a str; got {type(text).__name__}.")
        chunks = self._chunk(text)
        if self.return_type == "texts":
            return [c.text for c in chunks]
        return chunks

    def chunk_batch(
        self,
        texts: Sequence[str],
        max_workers: int | None = None,
    ) -> list[list[Chunk] | list[str]]:
        """Chunk several texts; result ``i`` belongs to ``texts[i]``.

        More than one text with more than one worker runs on a bounded
        thread pool. The first failure is re-raised.
        """
        items = list(texts)
        log.debug("%s: chunking batch of %d texts", type(self).__name__, len(items))
        results = map_indexed(items, self.chunk, max_workers=max_workers)
        log.debug("%s: finished batch of %d texts", type(self).__name__, len(items))
        return results

    def __call__(self, text_or_texts: str | Sequence[str], max_workers: int | None = None) -> Any:
        if isinstance(text_or_texts, str):
            return self.chunk(text_or_texts)
        if isinstance(text_or_texts, Sequence):
            return self.chunk_batch(text_or_texts, max_workers=max_workers)
        raise TypeError(f"Expected a str or a sequence of str; got {type(text_or_texts).__name__}.")

    def _repr_fields(self) -> dict[str, Any]:
        return {
            "tokenizer": tokenizer_name(self.tokenizer),
            "chunk_size": self.chunk_size,
            "return_type": self.return_type,
        }

    def __repr__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self._repr_fields().items())
        return f"{type(self).__name__}({args})"
