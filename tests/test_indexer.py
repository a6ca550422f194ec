"""Tests for the document indexer."""

import os

import pytest

from conftest import FakeExtractor, make_file
from kb_index.config import Settings
from kb_index.extraction import ExtractionError, TextFileExtractor
from kb_index.indexer import DocumentIndexer, scan_documents
from kb_index.schemas import ChunkType


def test_process_pdf_pages_into_paragraph_chunks():
    """Test a two-page document yields paragraph chunks per page."""
    extractor = FakeExtractor(pages={"report.pdf": [(1, "Intro\n\nBody text here."), (2, "Conclusion.")]})
    indexer = DocumentIndexer()

    metadata = indexer.process_document("/docs/report.pdf", extractor)
    chunks = indexer.get_chunks("/docs/report.pdf")

    assert [c.content for c in chunks] == ["Intro", "Body text here.", "Conclusion."]
    assert [c.page_number for c in chunks] == [1, 1, 2]
    assert [c.chunk_index for c in chunks] == [0, 1, 2]
    assert metadata.total_chunks == 3
    assert metadata.is_processed is True
    assert metadata.processed_date is not None
    assert metadata.file_type == "application/pdf"
    assert metadata.file_name == "report.pdf"


def test_process_pdf_builds_section_tree_over_all_pages():
    """Test the section tree spans the concatenated page texts."""
    extractor = FakeExtractor(pages={"book.pdf": [(1, "# One\nfirst page"), (2, "# Two\nsecond page")]})
    indexer = DocumentIndexer()
    indexer.process_document("/docs/book.pdf", extractor)

    tree = indexer.get_tree("/docs/book.pdf")
    assert tree.title == "Root"
    assert tree.children[0].title == "# One"
    assert tree.children[0].children[0].title == "# Two"
    # Paragraph chunks are independent of the tree.
    assert all(c.chunk_type == ChunkType.PARAGRAPH for c in indexer.get_chunks("/docs/book.pdf"))


def test_process_pdf_skips_blank_pages():
    """Test blank pages contribute no chunks."""
    extractor = FakeExtractor(pages={"a.pdf": [(1, "   \n"), (2, "Text")]})
    indexer = DocumentIndexer()

    metadata = indexer.process_document("/docs/a.pdf", extractor)
    assert metadata.total_chunks == 1
    assert indexer.get_chunks("/docs/a.pdf")[0].page_number == 2


def test_process_pdf_extraction_error_propagates():
    """Test an unreadable PDF raises ExtractionError and indexes nothing."""
    extractor = FakeExtractor(broken={"bad.pdf"})
    indexer = DocumentIndexer()

    with pytest.raises(ExtractionError):
        indexer.process_document("/docs/bad.pdf", extractor)
    assert indexer.get_chunks("/docs/bad.pdf") is None
    assert indexer.get_metadata("/docs/bad.pdf") is None


def test_process_slides():
    """Test slide decks are chunked per slide with slide numbers."""
    extractor = FakeExtractor(slides={"deck.pptx": [(1, "Title slide"), (2, "Point A\n\nPoint B")]})
    indexer = DocumentIndexer()

    metadata = indexer.process_document("/docs/deck.pptx", extractor)
    chunks = indexer.get_chunks("/docs/deck.pptx")

    assert metadata.file_type == "application/vnd.ms-powerpoint"
    assert [(c.content, c.page_number) for c in chunks] == [("Title slide", 1), ("Point A", 2), ("Point B", 2)]
    assert indexer.get_tree("/docs/deck.pptx") is None


def test_process_generic_with_sections():
    """Test generic text with several headings is chunked by section."""
    text = "# Setup\ninstall it\n# Usage\nrun it"
    indexer = DocumentIndexer()

    metadata = indexer.process_document("/docs/guide.md", FakeExtractor(texts={"guide.md": text}))
    chunks = indexer.get_chunks("/docs/guide.md")

    assert metadata.total_chunks == 2
    assert [c.chunk_type for c in chunks] == [ChunkType.SECTION, ChunkType.SECTION]
    assert [c.metadata["section_title"] for c in chunks] == ["# Setup", "# Usage"]
    assert indexer.get_tree("/docs/guide.md") is not None


def test_process_generic_single_section_falls_back_to_paragraphs():
    """Test generic text with at most one heading is chunked by paragraph."""
    text = "# Only heading\n\nfirst paragraph\n\nsecond paragraph"
    indexer = DocumentIndexer()
    indexer.process_document("/docs/notes.txt", FakeExtractor(texts={"notes.txt": text}))

    chunks = indexer.get_chunks("/docs/notes.txt")
    assert [c.chunk_type for c in chunks] == [ChunkType.PARAGRAPH] * 3


def test_process_generic_failure_becomes_error_chunk():
    """Test generic extraction failures produce a single error chunk."""
    indexer = DocumentIndexer()

    metadata = indexer.process_document("/docs/missing.txt", FakeExtractor())
    chunks = indexer.get_chunks("/docs/missing.txt")

    assert metadata.total_chunks == 1
    assert metadata.is_processed is True
    assert chunks[0].chunk_type == ChunkType.ERROR
    assert "no text for missing.txt" in chunks[0].content


def test_reprocessing_replaces_previous_entries():
    """Test a second index of the same path replaces chunks and tree."""
    indexer = DocumentIndexer()
    indexer.process_document("/docs/a.md", FakeExtractor(texts={"a.md": "# A\none\n# B\ntwo"}))
    indexer.process_document("/docs/a.md", FakeExtractor(texts={"a.md": "plain text only"}))

    chunks = indexer.get_chunks("/docs/a.md")
    assert [c.content for c in chunks] == ["plain text only"]
    assert indexer.get_tree("/docs/a.md").children == []
    assert len(indexer.documents()) == 1


def test_process_real_text_file(tmp_path):
    """Test indexing a file on disk with the text extractor."""
    path = make_file(tmp_path, "readme.txt", "Hello there.\n\nSecond paragraph.")
    indexer = DocumentIndexer()

    metadata = indexer.process_document(path, TextFileExtractor())

    assert metadata.total_chunks == 2
    assert metadata.file_size == len("Hello there.\n\nSecond paragraph.")
    assert metadata.last_modified is not None


def test_search_chunks_ranks_by_match_count():
    """Test keyword search orders chunks by occurrences."""
    text = "cats and dogs\n\ncats cats cats\n\nbirds"
    indexer = DocumentIndexer()
    indexer.process_document("/docs/pets.txt", FakeExtractor(texts={"pets.txt": text}))

    results = indexer.search_chunks("CATS", max_results=5)
    assert [c.content for c in results] == ["cats cats cats", "cats and dogs"]
    assert indexer.search_chunks("fish") == []
    assert len(indexer.search_chunks("cats", max_results=1)) == 1


def test_search_chunks_matches_phrases_across_line_breaks():
    """Test whitespace in the query and the chunk is compared collapsed."""
    text = "the quick\nbrown\u00a0fox\n\nslow turtle"
    indexer = DocumentIndexer()
    indexer.process_document("/docs/fox.txt", FakeExtractor(texts={"fox.txt": text}))

    results = indexer.search_chunks("  Quick   brown fox ")
    assert [c.content for c in results] == ["the quick\nbrown\u00a0fox"]


def test_split_by_size_uses_indexer_settings():
    """Test the indexer's fixed-size split honours its size and overlap."""
    indexer = DocumentIndexer(chunk_size=100, overlap=10)
    chunks = indexer.split_by_size("q" * 250, "a.pdf")

    assert chunks[0].metadata == {"chunk_size": "100", "overlap_size": "10"}
    assert [(c.start_position, c.end_position) for c in chunks] == [(0, 100), (90, 190), (180, 250)]


def test_indexer_from_settings():
    """Test the indexer takes its window from the document chunking settings."""
    indexer = DocumentIndexer.from_settings(Settings(document_chunk_size=120, document_overlap=20))
    assert (indexer.chunk_size, indexer.overlap) == (120, 20)

    defaults = DocumentIndexer.from_settings(Settings())
    assert (defaults.chunk_size, defaults.overlap) == (1000, 200)


def test_scan_documents_reports_skips(tmp_path):
    """Test scanning includes supported files and explains skips."""
    make_file(tmp_path, "a.pdf")
    make_file(tmp_path, "sub/b.md")
    make_file(tmp_path, "~$lock.pptx")
    make_file(tmp_path, "image.png")
    make_file(tmp_path, "empty.txt", "")
    make_file(tmp_path, "sub/notes.docx.bak")

    included, skipped = scan_documents(str(tmp_path))
    reasons = {item["relpath"]: item["reason"] for item in skipped}

    assert [p.split("/")[-1] for p in included] == ["a.pdf", "b.md"]
    assert reasons == {
        "~$lock.pptx": "office_lock",
        "image.png": "unsupported_extension",
        "empty.txt": "empty_file",
        os.path.join("sub", "notes.docx.bak"): "unsupported_extension",
    }
    assert all(os.path.isabs(item["path"]) for item in skipped)
