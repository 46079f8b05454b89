# sentence.py
# SPDX-License-Identifier: MIT
"""Sentence-granular chunking under a token budget."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from ..core.packer import pack_sentences
from ..core.rules import IncludeDelim, normalize_include_delim
from ..core.splitter import split_on_delimiters, tokenizer_errors
from ..core.tokenizer import DEFAULT_ENCODING, count_tokens_batch
from ..core.types import Sentence, SentenceChunk
from .base import BaseChunker, ReturnType, resolve_chunk_overlap, validate_positive

__all__ = ["SentenceChunker", "DEFAULT_SENTENCE_DELIMITERS"]

DEFAULT_SENTENCE_DELIMITERS: tuple[str, ...] = (". ", "! ", "? ", "\n")


class SentenceChunker(BaseChunker):
    """Pack whole sentences into chunks of at most ``chunk_size`` tokens.

    Sentences are cut at ``delimiters`` and short ones (fewer than
    ``min_characters_per_sentence`` characters) are glued onto the sentence
    that follows. Each chunk holds at least ``min_sentences_per_chunk``
    sentences; a single sentence longer than the budget becomes its own
    over-budget chunk, since sentences are never split.

    Args:
        tokenizer: Tokenizer object or name.
        chunk_size (int): Token budget per chunk.
        chunk_overlap (int | float): Tokens of trailing sentences repeated
            at the start of the next chunk, or a fraction of
            ``chunk_size``.
        min_sentences_per_chunk (int): Sentence floor per chunk.
        min_characters_per_sentence (int): Shorter sentences are merged
            forward.
        delimiters (Sequence[str]): Sentence-ending delimiters.
        include_delim (str | None): ``"prev"``, ``"next"`` or
            ``"none"``/``None``.
        return_type (str): ``"chunks"`` or ``"texts"``.
    """

    kind = "sentence"

    def __init__(
        self,
        tokenizer: Any = DEFAULT_ENCODING,
        chunk_size: int = 512,
        chunk_overlap: int | float = 0,
        min_sentences_per_chunk: int = 1,
        min_characters_per_sentence: int = 12,
        delimiters: str | Sequence[str] = DEFAULT_SENTENCE_DELIMITERS,
        include_delim: IncludeDelim | None = "prev",
        return_type: ReturnType = "chunks",
    ) -> None:
        super().__init__(tokenizer=tokenizer, chunk_size=chunk_size, return_type=return_type)
        self.chunk_overlap = resolve_chunk_overlap(chunk_overlap, self.chunk_size)
        self.min_sentences_per_chunk = validate_positive("min_sentences_per_chunk", min_sentences_per_chunk)
        self.min_characters_per_sentence = validate_positive(
            "min_characters_per_sentence", min_characters_per_sentence
        )
        delims = (delimiters,) if isinstance(delimiters, str) else tuple(delimiters)
        if not delims or any(not isinstance(d, str) or d == "" for d in delims):
            raise ValueError("delimiters must be a non-empty list of non-empty strings.")
        self.delimiters = delims
        self.include_delim = normalize_include_delim(include_delim)

    def _repr_fields(self) -> dict[str, Any]:
        fields = super()._repr_fields()
        fields.update(
            chunk_overlap=self.chunk_overlap,
            min_sentences_per_chunk=self.min_sentences_per_chunk,
            min_characters_per_sentence=self.min_characters_per_sentence,
            delimiters=list(self.delimiters),
            include_delim=self.include_delim,
        )
        return fields

    def split_sentences(self, text: str) -> list[str]:
        """Cut ``text`` into sentence strings, gluing short ones forward."""
        sentences: list[str] = []
        current = ""
        for piece in split_on_delimiters(text, self.delimiters, self.include_delim):
            if not current:
                current = piece
            elif len(current) >= self.min_characters_per_sentence:
                sentences.append(current)
                current = piece
            else:
                current += piece
        if current:
            sentences.append(current)
        return sentences

    def prepare_sentences(self, text: str) -> list[Sentence]:
        """Sentences of ``text`` with offsets and exact token counts."""
        texts = self.split_sentences(text)
        if not texts:
            return []
        counts = count_tokens_batch(self.tokenizer, texts)
        sentences: list[Sentence] = []
        pos = 0
        for sent, count in zip(texts, counts):
            sentences.append(Sentence(text=sent, start_index=pos, end_index=pos + len(sent), token_count=int(count)))
            pos += len(sent)
        return sentences

    def _chunk(self, text: str) -> list[SentenceChunk]:
        if not text.strip():
            return []
        with tokenizer_errors("sentence"):
            sentences = self.prepare_sentences(text)
            if not sentences:
                return []
            ranges = pack_sentences(
                [s.token_count for s in sentences],
                self.chunk_size,
                min_sentences=self.min_sentences_per_chunk,
                overlap=self.chunk_overlap,
            )
            groups = [sentences[start:end] for start, end in ranges]
            chunk_texts = ["".join(s.text for s in group) for group in groups]
            counts = count_tokens_batch(self.tokenizer, chunk_texts)

        return [
            SentenceChunk(
                text=chunk_text,
                start_index=group[0].start_index,
                end_index=group[-1].end_index,
                token_count=int(count),
                sentences=tuple(group),
            )
            for group, chunk_text, count in zip(groups, chunk_texts, counts)
        ]
