#!/usr/bin/env python3
"""Example: Query an indexed corpus."""

import os
import sys
from langchain_community.embeddings import OllamaEmbeddings

from kb_index import LangChainEmbedder, Retriever, load_settings


def main():
    settings = load_settings(os.getenv("KB_INDEX_CONFIG"))
    embed_model = os.getenv("EMBED_MODEL", "mxbai-embed-large")
    ollama_base_url = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")

    if not os.path.exists(settings.vector_file):
        print(f"Error: Vector store not found: {settings.vector_file}")
        print("Run example_index.py first or set KB_INDEX_VECTOR_FILE")
        sys.exit(1)

    embeddings = OllamaEmbeddings(
        model=embed_model,
        base_url=ollama_base_url,
    )
    settings.embedding_model = embed_model
    retriever = Retriever.from_settings(settings, LangChainEmbedder(embeddings))

    print("=" * 60)
    print("KB Index Query Example")
    print("=" * 60)
    print(f"Vector store:    {settings.vector_file} ({len(retriever.store)} vectors)")
    print(f"Embedding model: {embed_model}")
    print(f"Top K:           {settings.top_k}")
    print(f"Threshold:       {settings.similarity_threshold}")
    print()
    print("Enter queries (or 'quit' to exit)")
    print()

    while True:
        query = input("Query: ").strip()
        if not query or query.lower() in ("quit", "exit", "q"):
            break

        print()
        try:
            matches = retriever.search_top_k(query)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            print()
            continue

        if not matches:
            print("No matches above the similarity threshold.")
            print()
            continue

        for rank, match in enumerate(matches, start=1):
            print(f"[{rank}] Score: {match.score:.4f}")
            print(f"    Source: {match.citation}")
            excerpt = match.item.text
            if len(excerpt) > 150:
                excerpt = excerpt[:150].rstrip() + "..."
            print(f"    Text:   {excerpt}")
            print()

    print("Goodbye!")


if __name__ == "__main__":
    main()
