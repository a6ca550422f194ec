"""Embedding providers behind a single ``embed(text)`` call."""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Protocol

import httpx

from .config import Settings
from .utils import shorten

_log = logging.getLogger(__name__)


DEFAULT_API_URL = "https://api.openai.com/v1/embeddings"
DEFAULT_MODEL = "text-embedding-3-small"


class EmbeddingError(RuntimeError):
    """Raised when a text cannot be embedded."""
    pass


class EmbeddingProviderError(EmbeddingError):
    """Raised on a transport failure or a non-success provider response."""
    pass


class Embedder(Protocol):
    """Anything that turns one text into one vector."""

    def embed(self, text: str) -> List[float]:
        ...


def _vector_head(vector: List[float], size: int = 8) -> str:
    return ", ".join(f"{value:.5f}" for value in vector[:size])


class OpenAIEmbeddingClient:
    """
    Client for an OpenAI-compatible ``/v1/embeddings`` endpoint.

    Each call sends a single input and uses the first returned vector.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 60.0,
        proxy: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        if client is None:
            client_kwargs = {"timeout": timeout}
            if proxy:
                client_kwargs["proxy"] = proxy
            client = httpx.Client(**client_kwargs)
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[httpx.Client] = None) -> "OpenAIEmbeddingClient":
        """Build a client from the configured endpoint, model, key, timeout and proxy."""
        return cls(
            api_key=settings.resolve_api_key(),
            model=settings.embedding_model,
            api_url=settings.embedding_api_url,
            timeout=settings.request_timeout,
            proxy=settings.proxy_url,
            client=client,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "OpenAIEmbeddingClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def embed(self, text: str) -> List[float]:
        _log.debug("Embedding request: len=%d, preview=%r", len(text or ""), shorten(text))

        payload = {"model": self.model, "input": [text]}
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = self._client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise EmbeddingProviderError(f"Embedding request failed: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise EmbeddingProviderError(
                f"Embedding request failed: {response.status_code} / {response.text}"
            )

        try:
            body = response.json()
            raw = body["data"][0]["embedding"]
            vector = [float(value) for value in raw]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise EmbeddingProviderError(f"Malformed embedding response: {exc}") from exc

        _log.debug("Embedding response: dims=%d, head=[%s]", len(vector), _vector_head(vector))
        return vector


class LangChainEmbedder:
    """Adapter for a LangChain ``Embeddings`` object (e.g. OllamaEmbeddings)."""

    def __init__(self, embeddings, max_retries: int = 3, initial_delay: float = 0.5):
        self.embeddings = embeddings
        self.max_retries = max_retries
        self.initial_delay = initial_delay

    def embed(self, text: str) -> List[float]:
        """Embed one text with exponential backoff retry."""
        delay = self.initial_delay
        last_exc: Optional[BaseException] = None

        for attempt in range(self.max_retries + 1):
            try:
                vectors = self.embeddings.embed_documents([text])
                return [float(value) for value in vectors[0]]
            except Exception as exc:
                last_exc = exc
                if attempt >= self.max_retries:
                    break
                time.sleep(delay)
                delay *= 2

        raise EmbeddingProviderError(f"Embedding failed after retries: {last_exc}") from last_exc
