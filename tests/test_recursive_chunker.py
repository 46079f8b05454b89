import pytest

from chunkwright import (
    ChunkingError,
    DelimiterLevel,
    RecursiveChunker,
    RuleSet,
    TokenLevel,
    WhitespaceLevel,
)
from chunkwright.core.tokenizer import CharacterTokenizer

LONG_TEXT = """Chunking splits a document into pieces. Each piece must fit the budget!

The recursive strategy tries paragraphs first, then sentences; after that it falls back to \
pause punctuation (commas, colons, dashes), then words, and finally raw tokens.

Short paragraph.

Averyveryveryverylongwordwithoutanybreaksthatmustbecutbytokenwindows and then some tail words."""


def _spans(chunks):
    return [(c.start_index, c.end_index) for c in chunks]


def test_terminal_only_rule_set_cuts_token_windows() -> None:
    chunker = RecursiveChunker(tokenizer="character", chunk_size=5, rules=RuleSet([TokenLevel()]))
    chunks = chunker.chunk("Hello world")

    assert [c.text for c in chunks] == ["Hello", " worl", "d"]
    assert _spans(chunks) == [(0, 5), (5, 10), (10, 11)]
    assert [c.token_count for c in chunks] == [5, 5, 1]


def test_default_rules_split_on_paragraph() -> None:
    text = "First paragraph.\n\nSecond paragraph."
    chunker = RecursiveChunker(tokenizer="character", chunk_size=20, min_characters_per_chunk=1)
    chunks = chunker.chunk(text)

    assert [c.text for c in chunks] == ["First paragraph.\n\n", "Second paragraph."]
    assert _spans(chunks) == [(0, 18), (18, 35)]
    assert [c.level for c in chunks] == [0, 0]


def test_default_min_characters_merges_short_paragraphs() -> None:
    text = "First paragraph.\n\nSecond paragraph."
    chunker = RecursiveChunker(tokenizer="character", chunk_size=20)
    chunks = chunker.chunk(text)

    assert chunker.min_characters_per_chunk == 24
    assert [c.text for c in chunks] == ["First", " paragraph.\n\nSecond", " paragraph."]
    assert "".join(c.text for c in chunks) == text


@pytest.mark.parametrize("chunk_size", [8, 17, 30, 64])
@pytest.mark.parametrize("min_chars", [1, 24])
def test_chunks_reconstruct_input_within_budget(chunk_size, min_chars) -> None:
    chunker = RecursiveChunker(tokenizer="character", chunk_size=chunk_size, min_characters_per_chunk=min_chars)
    chunks = chunker.chunk(LONG_TEXT)

    assert "".join(c.text for c in chunks) == LONG_TEXT
    assert chunks[0].start_index == 0
    assert chunks[-1].end_index == len(LONG_TEXT)
    for prev, cur in zip(chunks, chunks[1:]):
        assert prev.end_index == cur.start_index
    for chunk in chunks:
        assert chunk.text
        assert LONG_TEXT[chunk.start_index:chunk.end_index] == chunk.text
        assert chunk.token_count == len(chunk.text)
        assert chunk.token_count <= chunk_size


def test_text_within_budget_is_single_chunk() -> None:
    chunker = RecursiveChunker(tokenizer="character", chunk_size=100)
    chunks = chunker.chunk("Short text.\n\nStill short.")

    assert len(chunks) == 1
    assert _spans(chunks) == [(0, 25)]
    assert chunks[0].level == 0


def test_empty_input_returns_no_chunks() -> None:
    assert RecursiveChunker(tokenizer="character", chunk_size=10).chunk("") == []


def test_chunking_is_deterministic() -> None:
    chunker = RecursiveChunker(tokenizer="word", chunk_size=12)
    assert chunker.chunk(LONG_TEXT) == chunker.chunk(LONG_TEXT)


def test_whitespace_level_rejoins_with_spaces() -> None:
    rules = RuleSet([WhitespaceLevel(), TokenLevel()])
    chunks = RecursiveChunker(tokenizer="character", chunk_size=7, rules=rules).chunk("aa bb cc dd")

    assert [c.text for c in chunks] == ["aa bb", " cc dd"]
    assert _spans(chunks) == [(0, 5), (5, 11)]


def test_include_delim_none_offsets_follow_stripped_text() -> None:
    rules = RuleSet([DelimiterLevel([". "], include_delim="none"), TokenLevel()])
    chunker = RecursiveChunker(tokenizer="character", chunk_size=4, rules=rules, min_characters_per_chunk=1)
    chunks = chunker.chunk("aaa. bbb. ccc")

    assert [c.text for c in chunks] == ["aaa", "bbb", "ccc"]
    assert _spans(chunks) == [(0, 3), (3, 6), (6, 9)]


def test_exhausted_levels_fall_back_to_token_windows() -> None:
    rules = RuleSet([DelimiterLevel(["\n"])])
    chunker = RecursiveChunker(tokenizer="character", chunk_size=4, rules=rules, min_characters_per_chunk=1)
    chunks = chunker.chunk("abcdefghij")

    assert [c.text for c in chunks] == ["abcd", "efgh", "ij"]
    assert [c.level for c in chunks] == [1, 1, 1]


def test_rules_accept_plain_mappings() -> None:
    chunker = RecursiveChunker(
        tokenizer="character",
        chunk_size=4,
        rules=[{"delimiters": ["\n"]}, {"whitespace": True}, {}],
    )
    assert [level.kind for level in chunker.rules] == ["delimiter", "whitespace", "token"]
    with pytest.raises(TypeError):
        RecursiveChunker(tokenizer="character", rules="\n")


def test_tokenizer_failure_reports_level() -> None:
    class SpacelessFails(CharacterTokenizer):
        def count_tokens(self, text):
            if " " not in text:
                raise RuntimeError("cannot count")
            return super().count_tokens(text)

    rules = RuleSet([WhitespaceLevel(), TokenLevel()])
    chunker = RecursiveChunker(tokenizer=SpacelessFails(), chunk_size=5, rules=rules)

    with pytest.raises(ChunkingError) as excinfo:
        chunker.chunk("aaaa bbbb")

    assert excinfo.value.level == 0
    assert excinfo.value.rule == "whitespace"
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_chunk_overlap_prepends_previous_tail() -> None:
    chunker = RecursiveChunker(tokenizer="character", chunk_size=20, min_characters_per_chunk=1, chunk_overlap=2)
    chunks = chunker.chunk("First paragraph.\n\nSecond paragraph.")

    assert chunks[0].text == "First paragraph.\n\n"
    assert chunks[1].text == "\n\nSecond paragraph."
    assert _spans(chunks) == [(0, 18), (16, 35)]
    assert chunks[1].token_count == 19


@pytest.mark.parametrize("chunk_overlap", [1, 5, 10, 0.5])
def test_chunk_overlap_stays_within_budget(chunk_overlap) -> None:
    text = " ".join(f"word{i}" for i in range(200))
    chunker = RecursiveChunker(tokenizer="character", chunk_size=20, chunk_overlap=chunk_overlap)
    chunks = chunker.chunk(text)

    assert len(chunks) > 1
    assert max(c.token_count for c in chunks) <= 20
    for chunk in chunks:
        assert text[chunk.start_index:chunk.end_index] == chunk.text
        assert chunk.token_count == len(chunk.text)
    assert chunks[0].start_index == 0
    assert chunks[-1].end_index == len(text)


class _SeamTokenizer(CharacterTokenizer):
    """Charges three extra tokens for any text starting with ``d``."""

    def count_tokens(self, text):
        return len(text) + (3 if text.startswith("d") else 0)


def test_chunk_overlap_dropped_when_merged_chunk_exceeds_budget() -> None:
    chunker = RecursiveChunker(
        tokenizer=_SeamTokenizer(), chunk_size=5, chunk_overlap=1, rules=RuleSet([TokenLevel()])
    )
    chunks = chunker.chunk("abcdefghij")

    assert [c.text for c in chunks] == ["abcd", "efgh", "hij"]
    assert _spans(chunks) == [(0, 4), (4, 8), (7, 10)]
    assert [c.token_count for c in chunks] == [4, 4, 3]


def test_chunk_batch_matches_sequential_results() -> None:
    texts = [LONG_TEXT, "", "One line only.", LONG_TEXT[::-1]]
    chunker = RecursiveChunker(tokenizer="character", chunk_size=16)

    assert chunker.chunk_batch(texts, max_workers=3) == [chunker.chunk(t) for t in texts]


def test_repr_names_settings() -> None:
    chunker = RecursiveChunker(tokenizer="character", chunk_size=16)
    assert "RecursiveChunker(" in repr(chunker)
    assert "chunk_size=16" in repr(chunker)
