# tokenizer.py
# SPDX-License-Identifier: MIT
"""Tokenizer capability consumed by the chunking engine.

The engine only needs ``encode``, ``decode`` and ``count_tokens`` (plus
their batch forms). This module defines that contract, two small
reference tokenizers, an adapter for tiktoken encodings, and
:func:`get_tokenizer` which turns a name into a tokenizer object.
"""
from __future__ import annotations

import threading
from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

try:
    import tiktoken  # type: ignore
    _HAVE_TIKTOKEN = True
except Exception:
    tiktoken = None  # type: ignore
    _HAVE_TIKTOKEN = False

__all__ = [
    "TokenizerLike",
    "BaseTokenizer",
    "CharacterTokenizer",
    "WordTokenizer",
    "TiktokenTokenizer",
    "get_tokenizer",
    "tokenizer_name",
    "encode_batch",
    "decode_batch",
    "count_tokens_batch",
]

DEFAULT_ENCODING = "cl100k_base"

_ENCODING_CACHE: dict[str, Any] = {}
_ENCODING_LOCK = threading.Lock()


@runtime_checkable
class TokenizerLike(Protocol):
    """Structural type for anything the chunkers can tokenize with."""

    def encode(self, text: str) -> list[int]: ...

    def decode(self, tokens: Sequence[int]) -> str: ...

    def count_tokens(self, text: str) -> int: ...


class BaseTokenizer:
    """Shared batch helpers for tokenizers that implement single-item calls."""

    def encode(self, text: str) -> list[int]:
        raise NotImplementedError

    def decode(self, tokens: Sequence[int]) -> str:
        raise NotImplementedError

    def count_tokens(self, text: str) -> int:
        raise NotImplementedError

    def encode_batch(self, texts: Sequence[str]) -> list[list[int]]:
        return [self.encode(text) for text in texts]

    def decode_batch(self, token_sequences: Sequence[Sequence[int]]) -> list[str]:
        return [self.decode(tokens) for tokens in token_sequences]

    def count_tokens_batch(self, texts: Sequence[str]) -> list[int]:
        return [self.count_tokens(text) for text in texts]

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class _VocabTokenizer(BaseTokenizer):
    """Tokenizer that assigns ids on first sight of a token."""

    def __init__(self) -> None:
        self.vocab: list[str] = []
        self.token2id: dict[str, int] = {}
        self._lock = threading.Lock()
        self._add_token(" ")

    def _add_token(self, token: str) -> int:
        with self._lock:
            token_id = self.token2id.get(token)
            if token_id is None:
                token_id = len(self.vocab)
                self.token2id[token] = token_id
                self.vocab.append(token)
            return token_id

    def _lookup(self, tokens: Sequence[int]) -> list[str]:
        try:
            return [self.vocab[t] for t in tokens]
        except (IndexError, TypeError) as exc:
            raise ValueError(f"Decoding failed; token ids {list(tokens)!r} are not in the vocabulary.") from exc

    def __repr__(self) -> str:
        return f"{type(self).__name__}(vocab_size={len(self.vocab)})"


class CharacterTokenizer(_VocabTokenizer):
    """One token per character. Round-trips exactly."""

    def encode(self, text: str) -> list[int]:
        return [self._add_token(ch) for ch in text]

    def decode(self, tokens: Sequence[int]) -> str:
        return "".join(self._lookup(tokens))

    def count_tokens(self, text: str) -> int:
        return len(text)


class WordTokenizer(_VocabTokenizer):
    """Tokens are the pieces between literal single spaces."""

    def tokenize(self, text: str) -> list[str]:
        return text.split(" ")

    def encode(self, text: str) -> list[int]:
        return [self._add_token(tok) for tok in self.tokenize(text)]

    def decode(self, tokens: Sequence[int]) -> str:
        return " ".join(self._lookup(tokens))

    def count_tokens(self, text: str) -> int:
        return len(self.tokenize(text))


class TiktokenTokenizer(BaseTokenizer):
    """Adapter exposing a tiktoken ``Encoding`` through the tokenizer contract.

    Special-token text is encoded as ordinary text (``disallowed_special=()``)
    so that arbitrary documents never raise inside the chunker.
    """

    def __init__(self, encoding: Any, name: str | None = None) -> None:
        self.encoding = encoding
        self.name = name or getattr(encoding, "name", DEFAULT_ENCODING)

    def encode(self, text: str) -> list[int]:
        return list(self.encoding.encode(text, disallowed_special=()))

    def decode(self, tokens: Sequence[int]) -> str:
        return self.encoding.decode(list(tokens))

    def count_tokens(self, text: str) -> int:
        return len(self.encoding.encode(text, disallowed_special=()))

    def encode_batch(self, texts: Sequence[str]) -> list[list[int]]:
        return [list(ids) for ids in self.encoding.encode_batch(list(texts), disallowed_special=())]

    def decode_batch(self, token_sequences: Sequence[Sequence[int]]) -> list[str]:
        return list(self.encoding.decode_batch([list(seq) for seq in token_sequences]))

    def __repr__(self) -> str:
        return f"TiktokenTokenizer(name={self.name!r})"


def _load_tiktoken_encoding(name: str) -> Any:
    """Resolve a tiktoken encoding by encoding name or model name.

    Args:
        name (str): Encoding name such as ``"cl100k_base"`` or a model
            name understood by :func:`tiktoken.encoding_for_model`.

    Returns:
        Any: The cached tiktoken ``Encoding``.

    Raises:
        ValueError: If tiktoken is not installed or the name is unknown.
    """
    if not _HAVE_TIKTOKEN:
        raise ValueError(f"Tokenizer {name!r} requires the 'tiktoken' package, which is not installed.")
    with _ENCODING_LOCK:
        enc = _ENCODING_CACHE.get(name)
        if enc is not None:
            return enc
        if name in tiktoken.list_encoding_names():
            enc = tiktoken.get_encoding(name)
        else:
            try:
                enc = tiktoken.encoding_for_model(name)
            except KeyError as exc:
                raise ValueError(f"Unknown tokenizer {name!r}: not a tiktoken encoding or model name.") from exc
        _ENCODING_CACHE[name] = enc
        return enc


def get_tokenizer(spec: Any = DEFAULT_ENCODING) -> Any:
    """Turn a tokenizer spec into a tokenizer object.

    Args:
        spec (Any): A tokenizer-like object (returned unchanged), the
            names ``"character"``/``"char"`` or ``"word"``, or a tiktoken
            encoding/model name.

    Returns:
        Any: An object with ``encode``, ``decode`` and ``count_tokens``.

    Raises:
        TypeError: If ``spec`` is neither a string nor tokenizer-like.
        ValueError: If a named tokenizer cannot be resolved.
    """
    if spec is None:
        spec = DEFAULT_ENCODING
    if not isinstance(spec, str):
        if isinstance(spec, TokenizerLike):
            return spec
        raise TypeError(
            f"tokenizer must be a name or provide encode/decode/count_tokens; got {type(spec).__name__}."
        )
    name = spec.strip()
    lowered = name.lower()
    if lowered in {"character", "char"}:
        return CharacterTokenizer()
    if lowered == "word":
        return WordTokenizer()
    return TiktokenTokenizer(_load_tiktoken_encoding(name), name=name)


def tokenizer_name(tokenizer: Any) -> str:
    """Short human-readable label for a tokenizer, used in reprs."""
    name = getattr(tokenizer, "name", None)
    if isinstance(name, str):
        return name
    return type(tokenizer).__name__


# Batch helpers that fall back to per-item calls for tokenizers that only
# implement the single-item contract.
def encode_batch(tokenizer: Any, texts: Sequence[str]) -> list[list[int]]:
    fn = getattr(tokenizer, "encode_batch", None)
    if callable(fn):
        return [list(ids) for ids in fn(texts)]
    return [list(tokenizer.encode(text)) for text in texts]


def decode_batch(tokenizer: Any, token_sequences: Sequence[Sequence[int]]) -> list[str]:
    fn = getattr(tokenizer, "decode_batch", None)
    if callable(fn):
        return list(fn(token_sequences))
    return [tokenizer.decode(seq) for seq in token_sequences]


def count_tokens_batch(tokenizer: Any, texts: Sequence[str]) -> list[int]:
    fn = getattr(tokenizer, "count_tokens_batch", None)
    if callable(fn):
        return list(fn(texts))
    return [tokenizer.count_tokens(text) for text in texts]
