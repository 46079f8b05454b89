# types.py
# SPDX-License-Identifier: MIT
"""Immutable value types returned by the chunkers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

__all__ = [
    "Context",
    "Chunk",
    "Sentence",
    "SentenceChunk",
    "CodeChunk",
]


def _check_span(owner: str, start: int | None, end: int | None, token_count: int) -> None:
    if token_count < 0:
        raise ValueError(f"{owner}.token_count must be non-negative; got {token_count!r}.")
    if start is not None and start < 0:
        raise ValueError(f"{owner}.start_index must be non-negative; got {start!r}.")
    if end is not None and end < 0:
        raise ValueError(f"{owner}.end_index must be non-negative; got {end!r}.")
    if start is not None and end is not None and start > end:
        raise ValueError(f"{owner}.start_index ({start}) must not exceed end_index ({end}).")


@dataclass(frozen=True, slots=True)
class Context:
    """Overlap text attached to a chunk instead of merged into it.

    Attributes:
        text (str): Overlap window text.
        token_count (int): Tokens in ``text``.
        start_index (int | None): Start offset of the window in the
            source text, when known.
        end_index (int | None): End offset of the window in the source
            text, when known.
    """

    text: str
    token_count: int
    start_index: int | None = None
    end_index: int | None = None

    def __post_init__(self) -> None:
        _check_span("Context", self.start_index, self.end_index, self.token_count)

    def __len__(self) -> int:
        return len(self.text)

    def __str__(self) -> str:
        return self.text

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "token_count": self.token_count,
            "start_index": self.start_index,
            "end_index": self.end_index,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Context":
        return cls(
            text=data["text"],
            token_count=int(data["token_count"]),
            start_index=data.get("start_index"),
            end_index=data.get("end_index"),
        )


@dataclass(frozen=True, slots=True)
class Chunk:
    """A finalized, position-addressable piece of chunker output.

    ``[start_index, end_index)`` is the character range the chunk covers in
    the text that was chunked. Before overlap is applied, consecutive chunks
    satisfy ``chunks[i].end_index == chunks[i + 1].start_index``.

    Attributes:
        text (str): Chunk contents.
        start_index (int): Inclusive start character offset.
        end_index (int): Exclusive end character offset.
        token_count (int): Exact token count of ``text``.
        level (int | None): Rule level at which the recursive chunker
            finalized this chunk; diagnostic only.
        context (Context | None): Unmerged overlap window, if any.
    """

    text: str
    start_index: int
    end_index: int
    token_count: int
    level: int | None = None
    context: Context | None = None

    def __post_init__(self) -> None:
        _check_span(type(self).__name__, self.start_index, self.end_index, self.token_count)

    def __len__(self) -> int:
        return len(self.text)

    def __str__(self) -> str:
        return self.text

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly mapping of this chunk."""
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if hasattr(value, "to_dict"):
                value = value.to_dict()
            elif isinstance(value, tuple):
                value = [v.to_dict() if hasattr(v, "to_dict") else v for v in value]
            out[f.name] = value
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Chunk":
        ctx = data.get("context")
        return cls(
            text=data["text"],
            start_index=int(data["start_index"]),
            end_index=int(data["end_index"]),
            token_count=int(data["token_count"]),
            level=data.get("level"),
            context=Context.from_dict(ctx) if ctx else None,
        )


@dataclass(frozen=True, slots=True)
class Sentence:
    """A sentence span produced by the sentence chunker."""

    text: str
    start_index: int
    end_index: int
    token_count: int

    def __post_init__(self) -> None:
        _check_span("Sentence", self.start_index, self.end_index, self.token_count)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "start_index": self.start_index,
            "end_index": self.end_index,
            "token_count": self.token_count,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Sentence":
        return cls(
            text=data["text"],
            start_index=int(data["start_index"]),
            end_index=int(data["end_index"]),
            token_count=int(data["token_count"]),
        )


@dataclass(frozen=True, slots=True)
class SentenceChunk(Chunk):
    """Chunk made of whole sentences."""

    sentences: tuple[Sentence, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SentenceChunk":
        base = Chunk.from_dict(data)
        return cls(
            text=base.text,
            start_index=base.start_index,
            end_index=base.end_index,
            token_count=base.token_count,
            level=base.level,
            context=base.context,
            sentences=tuple(Sentence.from_dict(s) for s in data.get("sentences") or ()),
        )


@dataclass(frozen=True, slots=True)
class CodeChunk(Chunk):
    """Chunk cut from source code along syntax-tree node boundaries.

    Attributes:
        lang (str | None): Grammar name used to parse the source.
        nodes (tuple | None): The parse-tree nodes grouped into this chunk,
            kept only when the chunker was asked to include them. Excluded
            from :meth:`to_dict`.
    """

    lang: str | None = None
    nodes: tuple[Any, ...] | None = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "start_index": self.start_index,
            "end_index": self.end_index,
            "token_count": self.token_count,
            "level": self.level,
            "context": self.context.to_dict() if self.context else None,
            "lang": self.lang,
        }
