"""Tests for settings loading."""

import json

import pytest

from kb_index.config import Settings, load_settings


def test_defaults(monkeypatch, tmp_path):
    """Test built-in defaults when no config file exists."""
    monkeypatch.chdir(tmp_path)
    settings = load_settings()

    assert settings.vector_file == "embeddings.json"
    assert settings.processed_file == "processed_pdfs.json"
    assert (settings.chunk_size, settings.overlap) == (400, 200)
    assert (settings.document_chunk_size, settings.document_overlap) == (1000, 200)
    assert settings.top_k == 5
    assert settings.similarity_threshold == 0.7
    assert settings.embedding_model == "text-embedding-3-small"
    assert settings.search_strategy == "linear"


def test_load_sectioned_json(tmp_path):
    """Test nested config sections map onto flat settings."""
    path = tmp_path / "kb-index.json"
    path.write_text(
        json.dumps(
            {
                "embeddings": {"file": "store/vectors.json", "model": "bge-m3", "api_key": "sk-file"},
                "pdf": {"processed_file": "store/seen.json", "chunk_size": 500, "overlap": 100},
                "documents": {"chunk_size": 1200},
                "retrieval": {"top_k": 3, "threshold": 0.5, "strategy": "faiss"},
                "proxy": {"url": "http://127.0.0.1:7897"},
                "chat": {"model": "ignored"},
            }
        ),
        encoding="utf-8",
    )

    settings = load_settings(str(path))

    assert settings.vector_file == "store/vectors.json"
    assert settings.processed_file == "store/seen.json"
    assert settings.embedding_model == "bge-m3"
    assert (settings.chunk_size, settings.overlap) == (500, 100)
    assert settings.document_chunk_size == 1200
    assert (settings.top_k, settings.similarity_threshold) == (3, 0.5)
    assert settings.search_strategy == "faiss"
    assert settings.proxy_url == "http://127.0.0.1:7897"
    assert settings.resolve_api_key() == "sk-file"


def test_environment_overrides_file(monkeypatch, tmp_path):
    """Test KB_INDEX_* variables win over file values."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"retrieval": {"top_k": 3}}), encoding="utf-8")
    monkeypatch.setenv("KB_INDEX_TOP_K", "9")

    assert load_settings(str(path)).top_k == 9


def test_missing_explicit_config_raises(tmp_path):
    """Test an explicit path that does not exist is an error."""
    with pytest.raises(FileNotFoundError):
        load_settings(str(tmp_path / "nope.json"))


def test_resolve_api_key_from_environment(monkeypatch):
    """Test the API key falls back to the named environment variable."""
    monkeypatch.setenv("MY_EMBED_KEY", "sk-env")
    settings = Settings(api_key="", api_key_env="MY_EMBED_KEY")
    assert settings.resolve_api_key() == "sk-env"
