"""KB Index - incremental document indexing and retrieval for RAG applications."""

from .chunking import ChunkingError, chunk_by_paragraph, chunk_by_section, chunk_by_size
from .config import Settings, load_settings
from .embeddings import EmbeddingError, EmbeddingProviderError, LangChainEmbedder, OpenAIEmbeddingClient
from .extraction import ExtractionError, PageContent, SlideContent, TextFileExtractor
from .indexer import DocumentIndexer, scan_documents
from .retriever import IndexReport, Retriever, build_context, match_sources
from .schemas import ChunkType, DocumentMetadata, EmbeddingItem, Match, SectionTreeNode, TextChunk
from .store import ProcessedRegistry, VectorStore

__version__ = "0.1.0"

__all__ = [
    "ChunkingError",
    "chunk_by_paragraph",
    "chunk_by_section",
    "chunk_by_size",
    "Settings",
    "load_settings",
    "EmbeddingError",
    "EmbeddingProviderError",
    "LangChainEmbedder",
    "OpenAIEmbeddingClient",
    "ExtractionError",
    "PageContent",
    "SlideContent",
    "TextFileExtractor",
    "DocumentIndexer",
    "scan_documents",
    "IndexReport",
    "Retriever",
    "build_context",
    "match_sources",
    "ChunkType",
    "DocumentMetadata",
    "EmbeddingItem",
    "Match",
    "SectionTreeNode",
    "TextChunk",
    "ProcessedRegistry",
    "VectorStore",
]
