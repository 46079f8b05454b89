import logging

import pytest

from chunkwright import SentenceChunk, SentenceChunker


def _chunker(**kwargs):
    kwargs.setdefault("tokenizer", "character")
    kwargs.setdefault("min_characters_per_sentence", 1)
    return SentenceChunker(**kwargs)


def test_sentence_chunker_packs_whole_sentences() -> None:
    text = "One. Two. Three. Four."
    chunks = _chunker(chunk_size=10).chunk(text)

    assert [c.text for c in chunks] == ["One. Two. ", "Three. ", "Four."]
    assert [(c.start_index, c.end_index) for c in chunks] == [(0, 10), (10, 17), (17, 22)]
    assert [len(c.sentences) for c in chunks] == [2, 1, 1]
    assert all(isinstance(c, SentenceChunk) for c in chunks)
    assert "".join(c.text for c in chunks) == text


def test_sentence_chunker_glues_short_sentences_forward() -> None:
    chunker = SentenceChunker(tokenizer="character", min_characters_per_sentence=12)
    sentences = chunker.split_sentences("Hi. This is a longer sentence. Ok.")

    assert sentences == ["Hi. This is a longer sentence. ", "Ok."]


def test_sentence_chunker_keeps_oversized_sentence_whole() -> None:
    chunks = _chunker(chunk_size=3).chunk("One. Two.")

    assert [c.text for c in chunks] == ["One. ", "Two."]
    assert [c.token_count for c in chunks] == [5, 4]


def test_sentence_chunker_min_sentences_shortfall_logs_warning(caplog) -> None:
    chunker = _chunker(chunk_size=6, min_sentences_per_chunk=2)
    with caplog.at_level(logging.WARNING, logger="chunkwright"):
        chunks = chunker.chunk("One. Two. Three.")

    assert [len(c.sentences) for c in chunks] == [2, 1]
    assert any("Minimum sentences per chunk" in rec.getMessage() for rec in caplog.records)


def test_sentence_chunker_overlap_repeats_trailing_sentences() -> None:
    text = "One. Two. Six. Ten."
    chunks = _chunker(chunk_size=10, chunk_overlap=6).chunk(text)

    assert [c.text for c in chunks] == ["One. Two. ", "Two. Six. ", "Six. Ten."]
    assert [(c.start_index, c.end_index) for c in chunks] == [(0, 10), (5, 15), (10, 19)]
    for chunk in chunks:
        assert text[chunk.start_index:chunk.end_index] == chunk.text


def test_sentence_chunker_validates_options() -> None:
    with pytest.raises(ValueError):
        _chunker(min_sentences_per_chunk=0)
    with pytest.raises(ValueError):
        _chunker(delimiters=[". ", ""])
    with pytest.raises(ValueError):
        _chunker(include_delim="after")


def test_sentence_chunker_empty_input() -> None:
    assert _chunker().chunk("") == []
    assert _chunker().chunk("  ") == []
