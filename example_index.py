#!/usr/bin/env python3
"""Example: Index a directory of documents."""

import logging
import os
import sys
from langchain_community.embeddings import OllamaEmbeddings

from kb_index import LangChainEmbedder, Retriever, TextFileExtractor, load_settings


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    settings = load_settings(os.getenv("KB_INDEX_CONFIG"))
    source_dir = os.getenv("SOURCE_DIR", settings.default_root)
    embed_model = os.getenv("EMBED_MODEL", "mxbai-embed-large")
    ollama_base_url = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")

    if not os.path.isdir(source_dir):
        print(f"Error: Source directory not found: {source_dir}")
        print("Set SOURCE_DIR environment variable or create the default root directory")
        sys.exit(1)

    print("=" * 60)
    print("KB Index")
    print("=" * 60)
    print(f"Source directory: {source_dir}")
    print(f"Vector store:     {settings.vector_file}")
    print(f"Registry:         {settings.processed_file}")
    print(f"Embedding model:  {embed_model}")
    print(f"Chunk size:       {settings.chunk_size}")
    print(f"Chunk overlap:    {settings.overlap}")
    print("=" * 60)
    print()

    embeddings = OllamaEmbeddings(
        model=embed_model,
        base_url=ollama_base_url,
    )
    settings.embedding_model = embed_model
    retriever = Retriever.from_settings(settings, LangChainEmbedder(embeddings), show_progress=True)

    try:
        removed = retriever.prune_deleted_sources(source_dir)
        report = retriever.index_directory(source_dir, TextFileExtractor())
    except Exception as e:
        print(f"\nError during indexing: {e}", file=sys.stderr)
        sys.exit(1)

    print()
    print("=" * 60)
    print("Indexing completed")
    print("=" * 60)
    print(f"Files seen:        {report.files_seen}")
    print(f"Unchanged:         {report.skipped_unchanged}")
    print(f"Indexed:           {len(report.indexed)}")
    print(f"Chunks stored:     {report.chunks_stored}")
    print(f"Pruned vectors:    {removed}")
    print(f"Failed files:      {len(report.failed)}")
    for path in report.failed[:10]:
        print(f"  - {path}")
    if len(report.failed) > 10:
        print(f"  ... and {len(report.failed) - 10} more")
    print(f"Vectors in store:  {len(retriever.store)}")
    print("=" * 60)


if __name__ == "__main__":
    main()
