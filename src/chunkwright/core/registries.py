# registries.py
# SPDX-License-Identifier: MIT
"""Chunker registry and the config-driven factory."""
from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from ..chunkers.base import BaseChunker
from ..chunkers.code import CodeChunker
from ..chunkers.recursive import RecursiveChunker
from ..chunkers.sentence import SentenceChunker
from ..chunkers.token import TokenChunker
from .concurrency import map_indexed
from .config import ChunkerConfig, ChunkwrightConfig
from .log import get_logger
from .overlap import OverlapRefinery
from .types import Chunk

log = get_logger(__name__)

ChunkerFactory = Callable[[ChunkerConfig], BaseChunker]


@dataclass
class ChunkerRegistry:
    """Registry for chunker factories keyed by kind."""

    _factories: dict[str, ChunkerFactory] = field(default_factory=dict)

    def register(self, kind: str, factory: ChunkerFactory, *, replace: bool = False) -> None:
        """Register ``factory`` for ``kind``.

        Raises:
            ValueError: If ``kind`` is already registered and ``replace``
                is False.
        """
        key = kind.strip().lower()
        if not replace and key in self._factories:
            raise ValueError(f"Chunker factory {key!r} is already registered")
        self._factories[key] = factory

    def chunker(self, kind: str, *, replace: bool = False) -> Callable[[ChunkerFactory], ChunkerFactory]:
        """Decorator to register a chunker factory for ``kind``."""
        def decorator(fn: ChunkerFactory) -> ChunkerFactory:
            self.register(kind, fn, replace=replace)
            return fn

        return decorator

    def kinds(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, kind: object) -> bool:
        return isinstance(kind, str) and kind.strip().lower() in self._factories

    def build(self, cfg: ChunkerConfig) -> BaseChunker:
        """Instantiate the chunker described by ``cfg``.

        Raises:
            ValueError: If ``cfg.kind`` is not registered or a setting is
                invalid.
        """
        cfg.validate()
        factory = self._factories.get(cfg.kind)
        if factory is None:
            raise ValueError(f"Unknown chunker kind {cfg.kind!r}; known kinds: {', '.join(self.kinds())}")
        chunker = factory(cfg)
        log.debug("Built %r", chunker)
        return chunker


def _build_token(cfg: ChunkerConfig) -> BaseChunker:
    return TokenChunker(
        tokenizer=cfg.tokenizer,
        chunk_size=cfg.chunk_size,
        chunk_overlap=cfg.chunk_overlap,
        return_type=cfg.return_type,  # type: ignore[arg-type]
    )


def _build_sentence(cfg: ChunkerConfig) -> BaseChunker:
    return SentenceChunker(
        tokenizer=cfg.tokenizer,
        chunk_size=cfg.chunk_size,
        chunk_overlap=cfg.chunk_overlap,
        min_sentences_per_chunk=cfg.min_sentences_per_chunk,
        min_characters_per_sentence=cfg.min_characters_per_sentence,
        delimiters=cfg.delimiters,
        include_delim=cfg.include_delim,  # type: ignore[arg-type]
        return_type=cfg.return_type,  # type: ignore[arg-type]
    )


def _build_recursive(cfg: ChunkerConfig) -> BaseChunker:
    return RecursiveChunker(
        tokenizer=cfg.tokenizer,
        chunk_size=cfg.chunk_size,
        rules=cfg.rule_set(),
        min_characters_per_chunk=cfg.min_characters_per_chunk,
        chunk_overlap=cfg.chunk_overlap,
        return_type=cfg.return_type,  # type: ignore[arg-type]
    )


def _build_code(cfg: ChunkerConfig) -> BaseChunker:
    return CodeChunker(
        tokenizer=cfg.tokenizer,
        chunk_size=cfg.chunk_size,
        lang=cfg.lang,
        include_nodes=cfg.include_nodes,
        return_type=cfg.return_type,  # type: ignore[arg-type]
    )


def default_chunker_registry() -> ChunkerRegistry:
    """Return a registry with the built-in chunker kinds registered."""
    reg = ChunkerRegistry()
    reg.register("token", _build_token)
    reg.register("sentence", _build_sentence)
    reg.register("recursive", _build_recursive)
    reg.register("code", _build_code)
    return reg


class ChunkingPipeline:
    """A chunker followed by an overlap refinery.

    Exposes the same ``chunk`` / ``chunk_batch`` / call surface as a
    chunker. The wrapped chunker always produces chunk objects; the
    pipeline applies ``return_type`` after refining.
    """

    def __init__(self, chunker: BaseChunker, refinery: OverlapRefinery, return_type: str = "chunks") -> None:
        self.chunker = chunker
        self.refinery = refinery
        self.return_type = return_type

    def __repr__(self) -> str:
        return f"ChunkingPipeline(chunker={self.chunker!r}, refinery={self.refinery!r}, return_type={self.return_type!r})"

    def chunk(self, text: str) -> list[Chunk] | list[str]:
        chunks = self.refinery.refine(self.chunker.chunk(text))  # type: ignore[arg-type]
        if self.return_type == "texts":
            return [c.text for c in chunks]
        return chunks

    def chunk_batch(self, texts: Sequence[str], max_workers: int | None = None) -> list[Any]:
        return map_indexed(list(texts), self.chunk, max_workers=max_workers)

    def __call__(self, text_or_texts: str | Sequence[str], max_workers: int | None = None) -> Any:
        if isinstance(text_or_texts, str):
            return self.chunk(text_or_texts)
        return self.chunk_batch(text_or_texts, max_workers=max_workers)


def build_chunker(
    cfg: ChunkerConfig | ChunkwrightConfig,
    *,
    registry: ChunkerRegistry | None = None,
) -> BaseChunker | ChunkingPipeline:
    """Build a chunker from configuration.

    A :class:`ChunkwrightConfig` also has its logging section applied to
    the package logger. With ``overlap.enabled`` it yields a
    :class:`ChunkingPipeline` that refines the chunker's output; otherwise
    the chunker itself is returned.

    Raises:
        ValueError: On an unknown kind or an invalid setting.
        TypeError: If ``cfg`` is neither config type.
    """
    reg = registry or default_chunker_registry()
    if isinstance(cfg, ChunkerConfig):
        return reg.build(cfg)
    if not isinstance(cfg, ChunkwrightConfig):
        raise TypeError(f"build_chunker expects ChunkerConfig or ChunkwrightConfig; got {type(cfg).__name__}.")
    cfg.validate()
    cfg.logging.apply()
    if not cfg.overlap.enabled:
        return reg.build(cfg.chunker)
    chunker = reg.build(replace(cfg.chunker, return_type="chunks"))
    refinery = OverlapRefinery(
        tokenizer=chunker.tokenizer,
        context_size=cfg.overlap.context_size,
        unit=cfg.overlap.unit,  # type: ignore[arg-type]
        method=cfg.overlap.method,  # type: ignore[arg-type]
        merge=cfg.overlap.merge,
    )
    return ChunkingPipeline(chunker, refinery, return_type=cfg.chunker.return_type)


__all__ = [
    "ChunkerFactory",
    "ChunkerRegistry",
    "ChunkingPipeline",
    "default_chunker_registry",
    "build_chunker",
]
