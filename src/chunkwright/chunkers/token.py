# token.py
# SPDX-License-Identifier: MIT
"""Fixed-size token windows with optional overlap."""

from __future__ import annotations

from typing import Any

from ..core.splitter import tokenizer_errors
from ..core.tokenizer import DEFAULT_ENCODING, decode_batch
from ..core.types import Chunk
from .base import BaseChunker, ReturnType, resolve_chunk_overlap

__all__ = ["TokenChunker"]


class TokenChunker(BaseChunker):
    """Cut the token stream into windows of ``chunk_size`` tokens.

    Consecutive windows share ``chunk_overlap`` tokens, so the stride is
    ``chunk_size - chunk_overlap``. The ``start_index`` of each window is
    the previous window's ``end_index`` minus the character length of the
    shared tokens, and never moves backwards.

    Args:
        tokenizer: Tokenizer object or name.
        chunk_size (int): Tokens per window.
        chunk_overlap (int | float): Shared tokens, or a fraction in
            ``[0, 1)`` of ``chunk_size``.
        return_type (str): ``"chunks"`` or ``"texts"``.
    """

    kind = "token"

    def __init__(
        self,
        tokenizer: Any = DEFAULT_ENCODING,
        chunk_size: int = 512,
        chunk_overlap: int | float = 0,
        return_type: ReturnType = "chunks",
    ) -> None:
        super().__init__(tokenizer=tokenizer, chunk_size=chunk_size, return_type=return_type)
        self.chunk_overlap = resolve_chunk_overlap(chunk_overlap, self.chunk_size)

    def _repr_fields(self) -> dict[str, Any]:
        fields = super()._repr_fields()
        fields["chunk_overlap"] = self.chunk_overlap
        return fields

    def _token_groups(self, ids: list[int]) -> list[list[int]]:
        step = self.chunk_size - self.chunk_overlap
        groups: list[list[int]] = []
        for start in range(0, len(ids), step):
            end = min(start + self.chunk_size, len(ids))
            groups.append(ids[start:end])
            if end == len(ids):
                break
        return groups

    def _chunk(self, text: str) -> list[Chunk]:
        if not text.strip():
            return []
        with tokenizer_errors("token"):
            ids = list(self.tokenizer.encode(text))
            if not ids:
                return []
            groups = self._token_groups(ids)
            texts = decode_batch(self.tokenizer, groups)
            if self.chunk_overlap > 0:
                tails = [g[-self.chunk_overlap:] for g in groups]
                overlap_lengths = [len(t) for t in decode_batch(self.tokenizer, tails)]
            else:
                overlap_lengths = [0] * len(groups)

        chunks: list[Chunk] = []
        cursor = 0
        for piece, group, overlap_len in zip(texts, groups, overlap_lengths):
            start = max(0, cursor)
            end = start + len(piece)
            chunks.append(Chunk(text=piece, start_index=start, end_index=end, token_count=len(group)))
            cursor = max(start, end - overlap_len)
        return chunks
