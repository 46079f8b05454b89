import pytest

import chunkwright.core.tokenizer as tokenizer_module
from chunkwright.core.tokenizer import (
    CharacterTokenizer,
    TiktokenTokenizer,
    TokenizerLike,
    WordTokenizer,
    count_tokens_batch,
    decode_batch,
    encode_batch,
    get_tokenizer,
    tokenizer_name,
)


class _FakeEncoding:
    name = "fake_base"

    def encode(self, text, disallowed_special=()):
        return [ord(ch) for ch in text]

    def decode(self, ids):
        return "".join(chr(i) for i in ids)

    def encode_batch(self, texts, disallowed_special=()):
        return [self.encode(t) for t in texts]

    def decode_batch(self, seqs):
        return [self.decode(s) for s in seqs]


class _SingleItemTokenizer:
    def encode(self, text):
        return [len(w) for w in text.split()]

    def decode(self, tokens):
        return " ".join("x" * t for t in tokens)

    def count_tokens(self, text):
        return len(text.split())


def test_character_tokenizer_round_trips() -> None:
    tok = CharacterTokenizer()
    text = "Hello, wörld!\n"
    ids = tok.encode(text)

    assert len(ids) == len(text)
    assert tok.decode(ids) == text
    assert tok.count_tokens(text) == len(text)


def test_word_tokenizer_splits_on_single_spaces() -> None:
    tok = WordTokenizer()

    assert tok.count_tokens("a b  c") == 4
    assert tok.decode(tok.encode("one two three")) == "one two three"


def test_decode_unknown_id_raises_value_error() -> None:
    tok = CharacterTokenizer()
    with pytest.raises(ValueError):
        tok.decode([999])


def test_get_tokenizer_resolves_builtin_names() -> None:
    assert isinstance(get_tokenizer("character"), CharacterTokenizer)
    assert isinstance(get_tokenizer("CHAR"), CharacterTokenizer)
    assert isinstance(get_tokenizer(" word "), WordTokenizer)


def test_get_tokenizer_passes_objects_through_and_rejects_others() -> None:
    custom = _SingleItemTokenizer()

    assert isinstance(custom, TokenizerLike)
    assert get_tokenizer(custom) is custom
    with pytest.raises(TypeError):
        get_tokenizer(42)


def test_get_tokenizer_without_tiktoken_raises(monkeypatch) -> None:
    monkeypatch.setattr(tokenizer_module, "_HAVE_TIKTOKEN", False)
    with pytest.raises(ValueError, match="tiktoken"):
        get_tokenizer("cl100k_base")


def test_tiktoken_adapter_delegates_to_encoding() -> None:
    tok = TiktokenTokenizer(_FakeEncoding())

    assert tok.name == "fake_base"
    assert tok.encode("ab") == [97, 98]
    assert tok.decode([104, 105]) == "hi"
    assert tok.count_tokens("abc") == 3
    assert tok.encode_batch(["a", "bc"]) == [[97], [98, 99]]
    assert tok.decode_batch([[97], [98]]) == ["a", "b"]
    assert tokenizer_name(tok) == "fake_base"


def test_batch_helpers_fall_back_to_single_item_calls() -> None:
    tok = _SingleItemTokenizer()

    assert count_tokens_batch(tok, ["a b", "c"]) == [2, 1]
    assert encode_batch(tok, ["aa b"]) == [[2, 1]]
    assert decode_batch(tok, [[1, 2]]) == ["x xx"]
    assert tokenizer_name(tok) == "_SingleItemTokenizer"
