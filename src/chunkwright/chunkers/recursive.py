# recursive.py
# SPDX-License-Identifier: MIT
"""Hierarchical rule-driven chunking.

The text is split with the coarsest rule level, adjacent pieces are packed
up to the token budget, and only groups that are still over budget are
split again with the next level. The terminal token level (or running out
of levels) slices the remaining text into token windows, so every chunk
fits the budget.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ..core.log import get_logger
from ..core.overlap import OverlapRefinery
from ..core.packer import bisect_pack
from ..core.rules import RuleLevel, RuleSet, TokenLevel, WhitespaceLevel
from ..core.splitter import estimate_token_counts, split_text, token_windows, tokenizer_errors
from ..core.tokenizer import DEFAULT_ENCODING, count_tokens_batch
from ..core.types import Chunk
from .base import BaseChunker, ReturnType, resolve_chunk_overlap, validate_positive

__all__ = ["RecursiveChunker"]

log = get_logger(__name__)


def _coerce_rules(rules: Any) -> RuleSet:
    if rules is None:
        return RuleSet()
    if isinstance(rules, RuleSet):
        return rules
    if isinstance(rules, Mapping):
        return RuleSet.from_dict(rules)
    if isinstance(rules, Iterable) and not isinstance(rules, (str, bytes)):
        return RuleSet(rules)
    raise TypeError(f"rules must be a RuleSet, a mapping or a list of levels; got {type(rules).__name__}.")


class RecursiveChunker(BaseChunker):
    """Split text top-down through a :class:`~chunkwright.core.rules.RuleSet`.

    For rule sets made only of delimiter levels with ``include_delim`` of
    ``"prev"`` or ``"next"`` and whitespace levels, joining the chunk texts
    reproduces the input exactly and ``chunks[i].end_index ==
    chunks[i + 1].start_index``. With ``include_delim="none"`` the delimiters
    are dropped and offsets refer to the text without them. Token windows
    reproduce the input only as faithfully as the tokenizer round-trips.

    Delimiter pieces shorter than ``min_characters_per_chunk`` are merged
    before packing, so with the default of 24 a short paragraph or sentence
    is joined to its neighbour and a chunk boundary can fall inside the
    next level's text instead of at the delimiter. Pass ``1`` to split at
    every delimiter.

    With ``chunk_overlap`` on, groups are packed to
    ``chunk_size - chunk_overlap`` tokens and each chunk after the first is
    prefixed with the tail of its predecessor. A chunk whose merged count
    would still exceed ``chunk_size`` is returned without the overlap.

    Args:
        tokenizer: Tokenizer object or name.
        chunk_size (int): Token budget per chunk.
        rules (RuleSet | list | dict | None): Rule levels, coarsest first.
            ``None`` selects the default five-level hierarchy.
        min_characters_per_chunk (int): Delimiter pieces shorter than this
            are merged with their neighbours before packing.
        chunk_overlap (int | float): When positive, the finished chunks are
            passed through a suffix :class:`OverlapRefinery` with this many
            tokens (or this fraction of ``chunk_size``).
        return_type (str): ``"chunks"`` or ``"texts"``.
    """

    kind = "recursive"

    def __init__(
        self,
        tokenizer: Any = DEFAULT_ENCODING,
        chunk_size: int = 512,
        rules: RuleSet | Iterable[RuleLevel | Mapping[str, Any]] | Mapping[str, Any] | None = None,
        min_characters_per_chunk: int = 24,
        chunk_overlap: int | float = 0,
        return_type: ReturnType = "chunks",
    ) -> None:
        super().__init__(tokenizer=tokenizer, chunk_size=chunk_size, return_type=return_type)
        self.rules = _coerce_rules(rules)
        self.min_characters_per_chunk = validate_positive("min_characters_per_chunk", min_characters_per_chunk)
        self.chunk_overlap = resolve_chunk_overlap(chunk_overlap, self.chunk_size)
        # Packing budget; the overlap window fills the rest of chunk_size.
        self._pack_size = self.chunk_size - self.chunk_overlap
        self._overlap: OverlapRefinery | None = None
        if self.chunk_overlap > 0:
            self._overlap = OverlapRefinery(
                tokenizer=self.tokenizer,
                context_size=self.chunk_overlap,
                unit="token",
                method="suffix",
                merge=True,
            )

    def _repr_fields(self) -> dict[str, Any]:
        fields = super()._repr_fields()
        fields.update(
            rules=self.rules,
            min_characters_per_chunk=self.min_characters_per_chunk,
            chunk_overlap=self.chunk_overlap,
        )
        return fields

    def _chunk(self, text: str) -> list[Chunk]:
        if not text:
            return []
        with tokenizer_errors("recursive", 0):
            total = int(self.tokenizer.count_tokens(text))
            if total <= self.chunk_size:
                chunks = [Chunk(text=text, start_index=0, end_index=len(text), token_count=total, level=0)]
            else:
                chunks = self._recursive_chunk(text, 0, 0)
        if self._overlap is not None:
            chunks = self._with_overlap(chunks)
        return chunks

    def _with_overlap(self, chunks: list[Chunk]) -> list[Chunk]:
        refined = self._overlap.refine(chunks)
        out: list[Chunk] = []
        for plain, merged in zip(chunks, refined):
            if merged.token_count > self.chunk_size:
                log.debug(
                    "Overlap would give %d tokens (budget %d); keeping the chunk at %d without it.",
                    merged.token_count, self.chunk_size, plain.start_index,
                )
                out.append(plain)
            else:
                out.append(merged)
        return out

    def _token_chunks(self, text: str, level: int, start_offset: int) -> list[Chunk]:
        with tokenizer_errors("token", level):
            windows, counts = token_windows(self.tokenizer, text, self._pack_size)
        chunks: list[Chunk] = []
        offset = start_offset
        for piece, count in zip(windows, counts):
            chunks.append(Chunk(
                text=piece,
                start_index=offset,
                end_index=offset + len(piece),
                token_count=count,
                level=level,
            ))
            offset += len(piece)
        return chunks

    def _recursive_chunk(self, text: str, level: int, start_offset: int) -> list[Chunk]:
        """Chunk ``text`` with rule ``level``; offsets start at ``start_offset``."""
        if not text:
            return []
        if level >= len(self.rules):
            log.debug("Rule levels exhausted at level %d; using token windows.", level)
            return self._token_chunks(text, level, start_offset)
        rule = self.rules[level]
        if isinstance(rule, TokenLevel):
            return self._token_chunks(text, level, start_offset)

        whitespace = isinstance(rule, WhitespaceLevel)
        with tokenizer_errors(rule.kind, level):
            splits = split_text(text, rule, self.min_characters_per_chunk)
            estimates = estimate_token_counts(self.tokenizer, splits, self._pack_size)
            groups, group_counts = bisect_pack(
                splits, estimates, self._pack_size, combine_whitespace=whitespace
            )
            if whitespace:
                groups = groups[:1] + [" " + g for g in groups[1:]]
            fit_idx = [i for i, count in enumerate(group_counts) if count <= self._pack_size]
            exact = count_tokens_batch(self.tokenizer, [groups[i] for i in fit_idx])
        exact_counts = dict(zip(fit_idx, exact))

        chunks: list[Chunk] = []
        offset = start_offset
        for i, group in enumerate(groups):
            if not group:
                continue
            count = exact_counts.get(i)
            if count is None or count > self._pack_size:
                log.debug("Descending to level %d for a group of %d characters.", level + 1, len(group))
                chunks.extend(self._recursive_chunk(group, level + 1, offset))
            else:
                chunks.append(Chunk(
                    text=group,
                    start_index=offset,
                    end_index=offset + len(group),
                    token_count=int(count),
                    level=level,
                ))
            offset += len(group)
        return chunks
