# code.py
# SPDX-License-Identifier: MIT
"""Syntax-aware chunking of source code with tree-sitter."""

from __future__ import annotations

from typing import Any

from ..core.log import get_logger
from ..core.packer import group_child_nodes
from ..core.splitter import tokenizer_errors
from ..core.tokenizer import DEFAULT_ENCODING, count_tokens_batch
from ..core.types import CodeChunk
from .base import BaseChunker, ReturnType

try:
    from tree_sitter_language_pack import get_parser as _ts_get_parser  # type: ignore
    _HAVE_TS_PACK = True
except Exception:
    _ts_get_parser = None  # type: ignore
    _HAVE_TS_PACK = False

__all__ = ["CodeChunker"]

log = get_logger(__name__)


def _load_parser(lang: str) -> Any:
    """Fetch the tree-sitter parser for ``lang`` from the language pack.

    Raises:
        ValueError: If the pack is missing, does not know ``lang``, or
            cannot load or download its grammar.
    """
    if not _HAVE_TS_PACK:
        raise ValueError("CodeChunker requires the 'tree-sitter-language-pack' package, which is not installed.")
    try:
        return _ts_get_parser(lang)
    except Exception as exc:
        raise ValueError(f"No tree-sitter grammar available for lang={lang!r}: {exc}") from exc


class CodeChunker(BaseChunker):
    """Group sibling syntax nodes into chunks under a token budget.

    The source is parsed once; the root's children are packed into groups,
    and any child over budget is opened up and its own children packed
    instead. Chunk text is cut from the original UTF-8 bytes at group
    boundaries, so whitespace and comments between nodes stay attached and
    the chunks join back into the input.

    The budget is best-effort. A leaf node larger than ``chunk_size`` is
    never cut and becomes a chunk of its own, and the gap bytes attached to
    a group are not counted while packing, so such chunks can exceed the
    budget. The grammar for ``lang`` is loaded when the chunker is built.

    Args:
        tokenizer: Tokenizer object or name.
        chunk_size (int): Token budget per chunk.
        lang (str | None): tree-sitter grammar name, e.g. ``"python"``.
            Required unless ``parser`` is given.
        include_nodes (bool): Keep the grouped nodes on each
            :class:`~chunkwright.core.types.CodeChunk`.
        return_type (str): ``"chunks"`` or ``"texts"``.
        parser (Any): Pre-built object with ``parse(bytes)`` returning a
            tree with ``root_node``.
    """

    kind = "code"

    def __init__(
        self,
        tokenizer: Any = DEFAULT_ENCODING,
        chunk_size: int = 512,
        lang: str | None = None,
        include_nodes: bool = False,
        return_type: ReturnType = "chunks",
        parser: Any = None,
    ) -> None:
        super().__init__(tokenizer=tokenizer, chunk_size=chunk_size, return_type=return_type)
        if parser is None:
            if not lang:
                raise ValueError("CodeChunker requires 'lang' unless a parser is supplied.")
            parser = _load_parser(lang)
        elif not callable(getattr(parser, "parse", None)):
            raise TypeError("parser must provide a parse(bytes) method.")
        self.lang = lang
        self.include_nodes = bool(include_nodes)
        self.parser = parser

    def _repr_fields(self) -> dict[str, Any]:
        fields = super()._repr_fields()
        fields.update(lang=self.lang, include_nodes=self.include_nodes)
        return fields

    def _count_batch(self, texts: list[str]) -> list[int]:
        return [int(c) for c in count_tokens_batch(self.tokenizer, texts)]

    def _texts_from_groups(self, groups: list[list[Any]], source: bytes) -> tuple[list[str], list[list[Any]]]:
        valid: list[list[Any]] = []
        for group in groups:
            if not group:
                continue
            start, end = group[0].start_byte, group[-1].end_byte
            if start > end:
                log.warning("Skipping node group with invalid byte order (start=%d, end=%d).", start, end)
                continue
            if start < 0 or end > len(source):
                log.warning(
                    "Skipping node group with out-of-bounds byte offsets (start=%d, end=%d, size=%d).",
                    start,
                    end,
                    len(source),
                )
                continue
            valid.append(group)

        texts: list[str] = []
        for i, group in enumerate(valid):
            start = 0 if i == 0 else group[0].start_byte
            end = valid[i + 1][0].start_byte if i + 1 < len(valid) else len(source)
            texts.append(source[start:max(start, end)].decode("utf-8", errors="replace"))
        return texts, valid

    def _chunk(self, text: str) -> list[CodeChunk]:
        if not text.strip():
            return []
        source = text.encode("utf-8")
        tree = self.parser.parse(source)
        with tokenizer_errors("code"):
            groups, _ = group_child_nodes(tree.root_node, source, self.chunk_size, self._count_batch)
            texts, groups = self._texts_from_groups(groups, source)
            if not texts:
                texts, groups = [text], [[tree.root_node]]
            counts = count_tokens_batch(self.tokenizer, texts)

        chunks: list[CodeChunk] = []
        cursor = 0
        for piece, count, group in zip(texts, counts, groups):
            chunks.append(CodeChunk(
                text=piece,
                start_index=cursor,
                end_index=cursor + len(piece),
                token_count=int(count),
                lang=self.lang,
                nodes=tuple(group) if self.include_nodes else None,
            ))
            cursor += len(piece)
        return chunks
