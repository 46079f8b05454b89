import json

import pytest

from chunkwright import ChunkerConfig, ChunkwrightConfig, load_config_from_path


def test_default_config_validates() -> None:
    cfg = ChunkwrightConfig()
    cfg.validate()

    assert cfg.chunker.kind == "recursive"
    assert cfg.chunker.chunk_size == 512
    assert cfg.overlap.enabled is False


def test_from_toml_builds_nested_sections(tmp_path) -> None:
    path = tmp_path / "chunking.toml"
    path.write_text(
        """
[chunker]
kind = "Recursive"
tokenizer = "character"
chunk_size = 64
chunk_overlap = 0.25

[[chunker.rules]]
delimiters = ["\\n\\n"]
include_delim = "next"

[[chunker.rules]]
whitespace = true

[[chunker.rules]]

[overlap]
enabled = true
context_size = 4
method = "prefix"

[logging]
level = "DEBUG"
""",
        encoding="utf-8",
    )

    cfg = load_config_from_path(path)
    cfg.validate()

    assert cfg.chunker.kind == "recursive"
    assert cfg.chunker.chunk_size == 64
    assert cfg.chunker.chunk_overlap == 0.25
    assert [level.kind for level in cfg.chunker.rule_set()] == ["delimiter", "whitespace", "token"]
    assert cfg.chunker.rule_set()[0].include_delim == "next"
    assert cfg.overlap.context_size == 4
    assert cfg.overlap.method == "prefix"
    assert cfg.logging.level == "DEBUG"


def test_json_round_trip(tmp_path) -> None:
    cfg = ChunkwrightConfig.from_dict({
        "chunker": {"kind": "sentence", "tokenizer": "word", "chunk_size": 32, "delimiters": [". ", "\n"]},
        "overlap": {"enabled": True, "unit": "char", "context_size": 0.1},
    })
    path = cfg.to_json(tmp_path / "cfg.json")

    loaded = load_config_from_path(path)

    assert loaded.to_dict() == cfg.to_dict()
    assert json.loads((tmp_path / "cfg.json").read_text(encoding="utf-8"))["chunker"]["kind"] == "sentence"


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ValueError, match="chunk_sise"):
        ChunkwrightConfig.from_dict({"chunker": {"chunk_sise": 10}})
    with pytest.raises(ValueError, match="sinks"):
        ChunkwrightConfig.from_dict({"sinks": []})


def test_type_mismatches_are_rejected() -> None:
    with pytest.raises(ValueError):
        ChunkwrightConfig.from_dict({"chunker": {"chunk_size": "512"}})
    with pytest.raises(ValueError):
        ChunkwrightConfig.from_dict({"chunker": {"chunk_size": 1.5}})
    with pytest.raises(TypeError):
        ChunkwrightConfig.from_dict({"chunker": ["token"]})


@pytest.mark.parametrize(
    "chunker",
    [
        {"delimiters": [". ", 3]},
        {"include_nodes": 1},
        {"chunk_size": True},
        {"chunk_size": None},
        {"rules": ["\n\n"]},
    ],
)
def test_field_values_are_checked_against_declared_types(chunker) -> None:
    with pytest.raises(ValueError, match="chunker"):
        ChunkwrightConfig.from_dict({"chunker": chunker})


def test_field_values_keep_their_numeric_type() -> None:
    cfg = ChunkwrightConfig.from_dict({
        "chunker": {"chunk_size": 64.0, "chunk_overlap": 1.0, "lang": None},
        "overlap": {"context_size": 4},
        "logging": {"level": 10},
    })

    assert cfg.chunker.chunk_size == 64 and isinstance(cfg.chunker.chunk_size, int)
    assert isinstance(cfg.chunker.chunk_overlap, float)
    assert cfg.chunker.lang is None
    assert isinstance(cfg.overlap.context_size, int)
    assert cfg.logging.level == 10
    with pytest.raises(ValueError, match="fraction"):
        cfg.chunker.validate()


@pytest.mark.parametrize(
    "overrides",
    [
        {"chunk_size": 0},
        {"chunk_overlap": 512},
        {"chunk_overlap": 1.0},
        {"return_type": "dicts"},
        {"include_delim": "after"},
        {"delimiters": []},
        {"kind": "code"},
        {"rules": [{"delimiters": [""]}]},
    ],
)
def test_chunker_config_validation(overrides) -> None:
    with pytest.raises(ValueError):
        ChunkerConfig(**overrides).validate()


def test_unsupported_extension(tmp_path) -> None:
    path = tmp_path / "cfg.yaml"
    path.write_text("chunker: {}\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported config extension"):
        load_config_from_path(path)
