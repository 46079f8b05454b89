# config.py
# SPDX-License-Identifier: MIT
"""Configuration models and helpers for chunkwright.

Declarative dataclasses describe which chunker to build, how overlap is
applied to its output, and how the package logger is set up. They
serialize to plain dicts and load from JSON or TOML documents.
"""
from __future__ import annotations

import copy
import json
try:  # pragma: no cover - optional dependency
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover
    try:
        import tomli as tomllib  # type: ignore[assignment]
    except Exception:  # pragma: no cover
        tomllib = None  # type: ignore[assignment]
import types
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, TypeVar, Union, get_args, get_origin, get_type_hints

from .log import DEFAULT_FORMAT, PACKAGE_LOGGER_NAME, configure_logging
from .rules import RuleSet, normalize_include_delim
from .tokenizer import DEFAULT_ENCODING

T = TypeVar("T")

_RETURN_TYPES = ("chunks", "texts")


def _default_sentence_delimiters() -> list[str]:
    return [". ", "! ", "? ", "\n"]


def _check_positive_int(label: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{label} must be a positive integer; got {value!r}.")


@dataclass(slots=True)
class ChunkerConfig:
    """Settings for one chunker.

    Only the fields relevant to ``kind`` are used when the chunker is
    built; the rest keep their defaults.

    Attributes:
        kind (str): ``"token"``, ``"sentence"``, ``"recursive"`` or
            ``"code"``, or any kind added to the registry.
        tokenizer (str): ``"character"``, ``"word"`` or a tiktoken
            encoding/model name.
        chunk_size (int): Token budget per chunk.
        chunk_overlap (int | float): Overlap tokens, or a fraction in
            ``[0, 1)`` of ``chunk_size``.
        min_characters_per_chunk (int): Recursive chunker: short delimiter
            pieces are merged below this length.
        rules (list[dict] | None): Recursive chunker rule levels in
            ``{"delimiters", "whitespace", "include_delim"}`` form.
        min_sentences_per_chunk (int): Sentence chunker floor.
        min_characters_per_sentence (int): Sentence chunker glue length.
        delimiters (list[str]): Sentence chunker delimiters.
        include_delim (str | None): Sentence chunker delimiter placement.
        lang (str | None): Code chunker grammar.
        include_nodes (bool): Code chunker keeps parse nodes on chunks.
        return_type (str): ``"chunks"`` or ``"texts"``.
    """
    kind: str = "recursive"
    tokenizer: str = DEFAULT_ENCODING
    chunk_size: int = 512
    chunk_overlap: int | float = 0
    min_characters_per_chunk: int = 24
    rules: list[dict[str, Any]] | None = None
    min_sentences_per_chunk: int = 1
    min_characters_per_sentence: int = 12
    delimiters: list[str] = field(default_factory=_default_sentence_delimiters)
    include_delim: str | None = "prev"
    lang: str | None = None
    include_nodes: bool = False
    return_type: str = "chunks"

    def validate(self) -> None:
        """Check values that can be checked without building the chunker.

        Raises:
            ValueError: If a field is out of range or inconsistent.
        """
        self.kind = (self.kind or "").strip().lower()
        if not self.kind:
            raise ValueError("chunker.kind must be a non-empty string.")
        _check_positive_int("chunker.chunk_size", self.chunk_size)
        _check_positive_int("chunker.min_characters_per_chunk", self.min_characters_per_chunk)
        _check_positive_int("chunker.min_sentences_per_chunk", self.min_sentences_per_chunk)
        _check_positive_int("chunker.min_characters_per_sentence", self.min_characters_per_sentence)
        overlap = self.chunk_overlap
        if isinstance(overlap, bool) or not isinstance(overlap, (int, float)):
            raise ValueError(f"chunker.chunk_overlap must be a number; got {overlap!r}.")
        if isinstance(overlap, float) and not 0.0 <= overlap < 1.0:
            raise ValueError(f"chunker.chunk_overlap as a fraction must be in [0, 1); got {overlap!r}.")
        if isinstance(overlap, int) and not 0 <= overlap < self.chunk_size:
            raise ValueError(
                f"chunker.chunk_overlap must satisfy 0 <= overlap < chunk_size ({self.chunk_size}); got {overlap!r}."
            )
        if self.return_type not in _RETURN_TYPES:
            raise ValueError(f"chunker.return_type must be one of {_RETURN_TYPES}; got {self.return_type!r}.")
        self.include_delim = normalize_include_delim(self.include_delim)
        if not self.delimiters or any(not d for d in self.delimiters):
            raise ValueError("chunker.delimiters must be a non-empty list of non-empty strings.")
        if self.rules is not None:
            RuleSet(self.rules)
        if self.kind == "code" and not self.lang:
            raise ValueError("chunker.lang is required when chunker.kind is 'code'.")

    def rule_set(self) -> RuleSet | None:
        return None if self.rules is None else RuleSet(self.rules)


@dataclass(slots=True)
class OverlapConfig:
    """Post-processing overlap applied to a chunker's output.

    Attributes:
        enabled (bool): Run the overlap refinery.
        context_size (int | float): Window size, or a fraction of the
            largest chunk.
        unit (str): ``"token"`` or ``"char"``.
        method (str): ``"suffix"`` or ``"prefix"``.
        merge (bool): Merge windows into chunk text instead of attaching
            them as context.
    """
    enabled: bool = False
    context_size: int | float = 0.25
    unit: str = "token"
    method: str = "suffix"
    merge: bool = True

    def validate(self) -> None:
        if self.unit not in ("token", "char"):
            raise ValueError(f"overlap.unit must be 'token' or 'char'; got {self.unit!r}.")
        if self.method not in ("suffix", "prefix"):
            raise ValueError(f"overlap.method must be 'suffix' or 'prefix'; got {self.method!r}.")
        size = self.context_size
        if isinstance(size, bool) or not isinstance(size, (int, float)):
            raise ValueError(f"overlap.context_size must be a number; got {size!r}.")
        if isinstance(size, float) and not size.is_integer() and not 0.0 < size < 1.0:
            raise ValueError(f"overlap.context_size as a fraction must be in (0, 1); got {size!r}.")
        if size <= 0:
            raise ValueError(f"overlap.context_size must be positive; got {size!r}.")


@dataclass(slots=True)
class LoggingConfig:
    """Controls the package logger; set propagate=True/logger_name to
    integrate with host apps.
    """
    level: int | str = "INFO"
    propagate: bool = False
    fmt: str | None = DEFAULT_FORMAT
    logger_name: str = PACKAGE_LOGGER_NAME

    def apply(self) -> None:
        """Apply this logging configuration to the package logger."""
        configure_logging(
            level=self.level,
            propagate=self.propagate,
            fmt=self.fmt,
            logger_name=self.logger_name or PACKAGE_LOGGER_NAME,
        )


@dataclass(slots=True)
class ChunkwrightConfig:
    """Declarative spec for a chunking setup.

    Holds only serializable knobs; tokenizers, parsers and chunker
    instances are built from it by :func:`chunkwright.core.registries.build_chunker`.
    """
    chunker: ChunkerConfig = field(default_factory=ChunkerConfig)
    overlap: OverlapConfig = field(default_factory=OverlapConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Validate every section.

        Raises:
            ValueError: If any section holds an invalid value.
        """
        self.chunker.validate()
        self.overlap.validate()

    # -------------------------
    # Serialization helpers
    # -------------------------
    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation of this configuration."""
        return _section_to_dict(self)

    def to_json(self, path: Path | str, *, indent: int = 2) -> str:
        """Serialize the configuration to JSON and write it to disk.

        Args:
            path (Path | str): Target file path.
            indent (int): Indentation level passed to ``json.dumps``.

        Returns:
            str: String path to the written file.
        """
        target = Path(path)
        target.write_text(json.dumps(self.to_dict(), indent=indent, sort_keys=True), encoding="utf-8")
        return str(target)

    @classmethod
    def from_dict(cls: type[T], data: Mapping[str, Any]) -> T:
        """Instantiate a ChunkwrightConfig from a mapping.

        Raises:
            ValueError: If the mapping holds keys that are not config
                fields, at any level.
        """
        return _section_from_dict(cls, data)

    @classmethod
    def from_json(cls: type[T], path: Path | str) -> T:
        """Load a configuration from a JSON file."""
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(payload, Mapping):
            raise TypeError(f"Top-level JSON document must be an object; got {type(payload).__name__}.")
        return cls.from_dict(payload)  # type: ignore[attr-defined]

    @classmethod
    def from_toml(cls: type[T], path: Path | str) -> T:
        """
        Load a ChunkwrightConfig from a TOML file.

        The TOML layout mirrors this dataclass: ``[chunker]``, ``[overlap]``
        and ``[logging]`` tables, with ``[[chunker.rules]]`` for rule levels.
        """
        if tomllib is None:
            raise RuntimeError(
                "TOML support requires Python 3.11+ (tomllib) or installing the 'tomli' package."
            )
        data = tomllib.loads(Path(path).read_bytes().decode("utf-8"))
        if not isinstance(data, Mapping):
            raise TypeError(f"Top-level TOML document must be a mapping; got {type(data).__name__}.")
        return cls.from_dict(data)  # type: ignore[attr-defined]


def load_config_from_path(path: str | Path) -> ChunkwrightConfig:
    """Load a ChunkwrightConfig from a JSON or TOML file.

    Args:
        path (Path | str): Path to a ``.toml`` or ``.json`` config file.

    Returns:
        ChunkwrightConfig: Parsed configuration instance.

    Raises:
        ValueError: If the file extension is not ``.toml`` or ``.json``.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".toml":
        return ChunkwrightConfig.from_toml(p)
    if suffix == ".json":
        return ChunkwrightConfig.from_json(p)
    raise ValueError(f"Unsupported config extension {p.suffix!r}; expected .toml or .json.")


def reject_unknown_keys(
    section_type: type[Any],
    data: Mapping[str, Any],
    *,
    section: str | None = None,
) -> None:
    """Raise if ``data`` holds keys that ``section_type`` does not declare.

    Raises:
        ValueError: Naming every unknown key and the allowed ones.
    """
    allowed = {f.name for f in fields(section_type)}
    unknown = sorted(str(k) for k in data if k not in allowed)
    if unknown:
        raise ValueError(
            f"Unknown keys in {section or section_type.__name__}: {', '.join(unknown)} "
            f"(allowed: {', '.join(sorted(allowed))})."
        )


def _section_to_dict(section: Any) -> dict[str, Any]:
    """Plain-dict form of a config section; ``None`` fields are left out."""
    out: dict[str, Any] = {}
    for f in fields(section):
        value = getattr(section, f.name)
        if value is None:
            continue
        if is_dataclass(value):
            value = _section_to_dict(value)
        elif isinstance(value, list):
            value = copy.deepcopy(value)
        out[f.name] = value
    return out


def _section_from_dict(section_type: type[T], data: Any, *, section: str | None = None) -> T:
    """Build a config section from a mapping, checking every value's type.

    Raises:
        TypeError: If ``data`` is not a mapping.
        ValueError: On unknown keys or values of the wrong type.
    """
    if not isinstance(data, Mapping):
        raise TypeError(f"{section or section_type.__name__} must be a table; got {type(data).__name__}.")
    reject_unknown_keys(section_type, data, section=section)
    hints = get_type_hints(section_type)
    kwargs = {
        name: _coerce_field(hints[name], value, f"{section}.{name}" if section else name)
        for name, value in data.items()
    }
    return section_type(**kwargs)


def _scalar_accepts(kind: type, value: Any) -> bool:
    # bool is an int subclass; only bool fields take booleans.
    if kind is bool or isinstance(value, bool):
        return kind is bool and isinstance(value, bool)
    if kind is int:
        return isinstance(value, int) or (isinstance(value, float) and value.is_integer())
    if kind is float:
        return isinstance(value, (int, float))
    return kind is str and isinstance(value, str)


def _coerce_field(hint: Any, value: Any, key: str) -> Any:
    """Check ``value`` against a config field annotation.

    Handles the shapes config fields use: nested sections, ``X | None``,
    scalar unions such as ``int | float``, ``list[str]`` and
    ``list[dict[str, Any]]``. A value whose exact type is a union member is
    kept as is; otherwise members are tried in declaration order.
    """
    if isinstance(hint, type) and is_dataclass(hint):
        return _section_from_dict(hint, value, section=key)
    options = get_args(hint) if get_origin(hint) in (Union, types.UnionType) else (hint,)
    if value is None:
        if type(None) in options:
            return None
        raise ValueError(f"{key} may not be empty.")
    if type(value) in options:
        return value
    for option in options:
        origin = get_origin(option)
        if origin is list and isinstance(value, (list, tuple)):
            (item_hint,) = get_args(option)
            return [_coerce_field(item_hint, item, f"{key}[{i}]") for i, item in enumerate(value)]
        if origin is dict and isinstance(value, Mapping):
            return {str(k): v for k, v in value.items()}
        if isinstance(option, type) and _scalar_accepts(option, value):
            return option(value)
    expected = " | ".join(getattr(o, "__name__", str(o)) for o in options)
    raise ValueError(f"{key} must be {expected}; got {value!r}.")


__all__ = [
    "ChunkerConfig",
    "OverlapConfig",
    "LoggingConfig",
    "ChunkwrightConfig",
    "load_config_from_path",
    "reject_unknown_keys",
]
