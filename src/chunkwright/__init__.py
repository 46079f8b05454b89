# __init__.py
# SPDX-License-Identifier: MIT
"""
Top-level package exports for :mod:`chunkwright`.

Public surface and stability
----------------------------
chunkwright splits long text or source code into contiguous, position
addressed chunks that fit a token budget. The symbols listed in
:data:`PRIMARY_API` are the recommended public surface and are exported via
:data:`__all__`. In general, callers should:

- Construct a chunker directly (:class:`RecursiveChunker`,
  :class:`SentenceChunker`, :class:`TokenChunker`, :class:`CodeChunker`), or
  describe one with :class:`ChunkwrightConfig` / :func:`load_config_from_path`
  and build it with :func:`build_chunker`.
- Call ``chunker.chunk(text)`` or ``chunker.chunk_batch(texts)``.
- Optionally post-process with :class:`OverlapRefinery`.

Advanced / expert surface
-------------------------
The engine pieces (rule levels, the level splitter, the bisection packers)
are importable from :mod:`chunkwright.core` submodules. Anything *not*
listed in :data:`PRIMARY_API` may change between releases.

Examples:
    Recursive chunking with the default rules::

        >>> from chunkwright import RecursiveChunker
        >>> chunker = RecursiveChunker(tokenizer="character", chunk_size=64)
        >>> chunks = chunker.chunk("First paragraph.\\n\\nSecond paragraph.")

    Config-driven::

        >>> from chunkwright import build_chunker, load_config_from_path
        >>> chunker = build_chunker(load_config_from_path("chunking.toml"))
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Package version
# ---------------------------------------------------------------------------
try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("chunkwright")
except Exception:  # PackageNotFoundError or runtime env oddities
    __version__ = "0.0.0+unknown"


# ---------------------------------------------------------------------------
# Primary public API (stable; exported via __all__)
# ---------------------------------------------------------------------------
from .chunkers.base import BaseChunker
from .chunkers.code import CodeChunker
from .chunkers.recursive import RecursiveChunker
from .chunkers.sentence import SentenceChunker
from .chunkers.token import TokenChunker
from .core.config import (
    ChunkerConfig,
    ChunkwrightConfig,
    LoggingConfig,
    OverlapConfig,
    load_config_from_path,
)
from .core.overlap import OverlapRefinery
from .core.registries import (
    ChunkerRegistry,
    ChunkingPipeline,
    build_chunker,
    default_chunker_registry,
)
from .core.rules import (
    DelimiterLevel,
    RuleSet,
    TokenLevel,
    WhitespaceLevel,
    make_level,
)
from .core.splitter import ChunkingError
from .core.tokenizer import (
    CharacterTokenizer,
    TiktokenTokenizer,
    TokenizerLike,
    WordTokenizer,
    get_tokenizer,
)
from .core.types import Chunk, CodeChunk, Context, Sentence, SentenceChunk

# ---------------------------------------------------------------------------
# Advanced / expert API (imported for convenience; not exported via __all__)
# ---------------------------------------------------------------------------
from .core.log import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Stable export list
# ---------------------------------------------------------------------------
PRIMARY_API = [
    "__version__",
    # chunkers
    "BaseChunker",
    "TokenChunker",
    "SentenceChunker",
    "RecursiveChunker",
    "CodeChunker",
    "OverlapRefinery",
    # rules
    "RuleSet",
    "DelimiterLevel",
    "WhitespaceLevel",
    "TokenLevel",
    "make_level",
    # values
    "Chunk",
    "Context",
    "Sentence",
    "SentenceChunk",
    "CodeChunk",
    # tokenizers
    "TokenizerLike",
    "CharacterTokenizer",
    "WordTokenizer",
    "TiktokenTokenizer",
    "get_tokenizer",
    # configuration
    "ChunkwrightConfig",
    "ChunkerConfig",
    "OverlapConfig",
    "LoggingConfig",
    "load_config_from_path",
    "ChunkerRegistry",
    "ChunkingPipeline",
    "default_chunker_registry",
    "build_chunker",
    # errors
    "ChunkingError",
]

__all__ = list(PRIMARY_API)
