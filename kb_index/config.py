"""Settings for the indexers and the retriever."""

from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CONFIG_FILE = "kb-index.json"

# JSON config sections -> flat setting names.
_SECTION_KEYS = {
    "embeddings": {
        "file": "vector_file",
        "api_url": "embedding_api_url",
        "model": "embedding_model",
        "api_key": "api_key",
        "api_key_env": "api_key_env",
        "timeout": "request_timeout",
    },
    "pdf": {
        "processed_file": "processed_file",
        "chunk_size": "chunk_size",
        "overlap": "overlap",
        "default_root": "default_root",
    },
    "documents": {
        "chunk_size": "document_chunk_size",
        "overlap": "document_overlap",
    },
    "retrieval": {
        "top_k": "top_k",
        "threshold": "similarity_threshold",
        "strategy": "search_strategy",
        "strict_dimensions": "strict_dimensions",
    },
    "proxy": {
        "url": "proxy_url",
    },
}


class Settings(BaseSettings):
    """Configuration for indexing and retrieval."""

    model_config = SettingsConfigDict(env_prefix="KB_INDEX_", env_file=".env", extra="ignore")

    vector_file: str = Field(default="embeddings.json", description="Vector store JSON file.")
    processed_file: str = Field(default="processed_pdfs.json", description="Processed-source registry file.")

    embedding_api_url: str = "https://api.openai.com/v1/embeddings"
    embedding_model: str = "text-embedding-3-small"
    api_key: str = ""
    api_key_env: str = "OPENAI_API_KEY"
    request_timeout: float = 60.0
    proxy_url: Optional[str] = None

    # Retrieval path chunking
    chunk_size: int = 400
    overlap: int = 200
    # Document indexer chunking
    document_chunk_size: int = 1000
    document_overlap: int = 200

    top_k: int = 5
    similarity_threshold: float = 0.7
    search_strategy: str = "linear"
    strict_dimensions: bool = False

    default_root: str = "./pdfs"

    def resolve_api_key(self) -> str:
        """Return the configured key, else the one named by ``api_key_env``."""
        if self.api_key:
            return self.api_key
        return os.environ.get(self.api_key_env, "")


def _flatten(data: Dict[str, Any]) -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for section, keys in _SECTION_KEYS.items():
        values = data.get(section)
        if not isinstance(values, dict):
            continue
        for key, name in keys.items():
            if key in values:
                flat[name] = values[key]
    return flat


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Load settings from a JSON config file with environment overrides.

    The file has ``embeddings``, ``pdf``, ``documents``, ``retrieval`` and
    ``proxy`` sections. A missing default file yields built-in defaults;
    a missing explicit path raises FileNotFoundError.
    """
    if path is None:
        path = DEFAULT_CONFIG_FILE
        if not os.path.exists(path):
            return Settings()
    elif not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)

    file_values = _flatten(data)
    # Environment variables win over file values.
    env_values = Settings().model_dump(exclude_unset=True)
    file_values.update(env_values)
    return Settings(**file_values)
