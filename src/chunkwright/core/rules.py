# rules.py
# SPDX-License-Identifier: MIT
"""Rule levels and rule sets for hierarchical chunking.

A rule level is one splitting policy. There are exactly three kinds:

* :class:`DelimiterLevel` cuts at occurrences of one or more delimiters.
* :class:`WhitespaceLevel` cuts at every literal single space.
* :class:`TokenLevel` is terminal and slices the encoded text into
  fixed-size token windows.

A :class:`RuleSet` orders levels from coarsest to finest.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar, Literal, Union

__all__ = [
    "IncludeDelim",
    "DelimiterLevel",
    "WhitespaceLevel",
    "TokenLevel",
    "RuleLevel",
    "RuleSet",
    "normalize_include_delim",
    "make_level",
    "level_from_dict",
    "DEFAULT_PARAGRAPH_DELIMITERS",
    "DEFAULT_SENTENCE_DELIMITERS",
    "DEFAULT_PAUSE_DELIMITERS",
]

IncludeDelim = Literal["prev", "next", "none"]
_INCLUDE_DELIM_VALUES = ("prev", "next", "none")

DEFAULT_PARAGRAPH_DELIMITERS: tuple[str, ...] = ("\n\n", "\r\n", "\n", "\r")
DEFAULT_SENTENCE_DELIMITERS: tuple[str, ...] = (". ", "! ", "? ")
DEFAULT_PAUSE_DELIMITERS: tuple[str, ...] = (
    "{", "}", '"', "[", "]", "<", ">", "(", ")", ":", ";", ",",
    "\u2014", "|", "~", "-", "...", "`", "'",
)


def normalize_include_delim(value: Any) -> IncludeDelim:
    """Validate an include-delimiter policy, mapping ``None`` to ``"none"``."""
    if value is None:
        return "none"
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _INCLUDE_DELIM_VALUES:
            return lowered  # type: ignore[return-value]
    raise ValueError(f"include_delim must be one of {_INCLUDE_DELIM_VALUES} or None; got {value!r}.")


def _normalize_delimiters(delimiters: str | Iterable[str]) -> tuple[str, ...]:
    if isinstance(delimiters, str):
        items: tuple[Any, ...] = (delimiters,)
    else:
        items = tuple(delimiters)
    if not items:
        raise ValueError("delimiters must contain at least one delimiter.")
    for delim in items:
        if not isinstance(delim, str) or delim == "":
            raise ValueError("delimiters cannot contain empty strings.")
        if delim.strip(" ") == "":
            raise ValueError(
                f"delimiter {delim!r} consists only of spaces; use a whitespace level instead."
            )
    return items


@dataclass(frozen=True, slots=True)
class DelimiterLevel:
    """Split at every occurrence of any of ``delimiters``.

    Attributes:
        delimiters (tuple[str, ...]): Delimiters to cut at. A single
            string is accepted and wrapped in a tuple.
        include_delim (IncludeDelim): ``"prev"`` keeps the delimiter at
            the end of the preceding piece, ``"next"`` at the start of the
            following piece, ``"none"`` drops it.
    """

    kind: ClassVar[str] = "delimiter"

    delimiters: tuple[str, ...]
    include_delim: IncludeDelim = "prev"

    def __post_init__(self) -> None:
        object.__setattr__(self, "delimiters", _normalize_delimiters(self.delimiters))
        object.__setattr__(self, "include_delim", normalize_include_delim(self.include_delim))

    def to_dict(self) -> dict[str, Any]:
        return {
            "delimiters": list(self.delimiters),
            "whitespace": False,
            "include_delim": self.include_delim,
        }


@dataclass(frozen=True, slots=True)
class WhitespaceLevel:
    """Split at every literal single space (not Unicode whitespace)."""

    kind: ClassVar[str] = "whitespace"

    def to_dict(self) -> dict[str, Any]:
        return {"delimiters": None, "whitespace": True, "include_delim": "prev"}


@dataclass(frozen=True, slots=True)
class TokenLevel:
    """Terminal level: fixed windows of ``chunk_size`` tokens."""

    kind: ClassVar[str] = "token"

    def to_dict(self) -> dict[str, Any]:
        return {"delimiters": None, "whitespace": False, "include_delim": "prev"}


RuleLevel = Union[DelimiterLevel, WhitespaceLevel, TokenLevel]
_LEVEL_TYPES = (DelimiterLevel, WhitespaceLevel, TokenLevel)


def make_level(
    delimiters: str | Sequence[str] | None = None,
    whitespace: bool = False,
    include_delim: Any = "prev",
) -> RuleLevel:
    """Build a rule level from the flat ``delimiters``/``whitespace`` form.

    Args:
        delimiters (str | Sequence[str] | None): Delimiters for a
            delimiter level.
        whitespace (bool): Build a whitespace level.
        include_delim (Any): Delimiter placement policy; ``None`` means
            ``"none"``.

    Returns:
        RuleLevel: A delimiter level, a whitespace level, or the terminal
        token level when neither option is given.

    Raises:
        ValueError: If both options are set or a delimiter is empty or
            made only of spaces.
    """
    if delimiters is not None and whitespace:
        raise ValueError("A rule level cannot set both delimiters and whitespace=True.")
    if delimiters is not None:
        return DelimiterLevel(delimiters=delimiters, include_delim=include_delim)  # type: ignore[arg-type]
    normalize_include_delim(include_delim)
    if whitespace:
        return WhitespaceLevel()
    return TokenLevel()


def level_from_dict(data: Mapping[str, Any] | RuleLevel) -> RuleLevel:
    """Create a rule level from a mapping produced by ``to_dict``."""
    if isinstance(data, _LEVEL_TYPES):
        return data
    if not isinstance(data, Mapping):
        raise TypeError(f"rule level must be a mapping or a rule level; got {type(data).__name__}.")
    unknown = set(data) - {"delimiters", "whitespace", "include_delim"}
    if unknown:
        raise ValueError(f"Unknown rule level keys: {sorted(unknown)}")
    return make_level(
        delimiters=data.get("delimiters"),
        whitespace=bool(data.get("whitespace", False)),
        include_delim=data.get("include_delim", "prev"),
    )


def _default_levels() -> tuple[RuleLevel, ...]:
    return (
        DelimiterLevel(DEFAULT_PARAGRAPH_DELIMITERS),
        DelimiterLevel(DEFAULT_SENTENCE_DELIMITERS),
        DelimiterLevel(DEFAULT_PAUSE_DELIMITERS),
        WhitespaceLevel(),
        TokenLevel(),
    )


class RuleSet:
    """Ordered rule levels, coarsest first.

    With no arguments the default hierarchy is used: paragraphs,
    sentences, pause punctuation, words, then raw tokens.
    """

    __slots__ = ("levels",)

    def __init__(self, levels: Iterable[RuleLevel | Mapping[str, Any]] | None = None) -> None:
        if levels is None:
            resolved = _default_levels()
        else:
            resolved = tuple(level_from_dict(level) for level in levels)
        if not resolved:
            raise ValueError("RuleSet requires at least one level.")
        self.levels: tuple[RuleLevel, ...] = resolved

    def __len__(self) -> int:
        return len(self.levels)

    def __iter__(self) -> Iterator[RuleLevel]:
        return iter(self.levels)

    def __getitem__(self, index: int) -> RuleLevel:
        return self.levels[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleSet):
            return NotImplemented
        return self.levels == other.levels

    def __hash__(self) -> int:
        return hash(self.levels)

    def __repr__(self) -> str:
        return f"RuleSet(levels={list(self.levels)!r})"

    def to_dict(self) -> dict[str, Any]:
        return {"levels": [level.to_dict() for level in self.levels]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RuleSet":
        unknown = set(data) - {"levels"}
        if unknown:
            raise ValueError(f"Unknown rule set keys: {sorted(unknown)}")
        return cls(data.get("levels"))
