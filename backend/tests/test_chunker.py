import pytest

from openrag.models.chunk import ContentCategory, SourceKind
from openrag.models.source import (
    DocumentationContent,
    DocumentationPage,
    RepositoryContent,
    RepositoryFile,
)
from openrag.services.chunker import Chunker, FileClass, classify_file
from openrag.utils.hashing import generate_chunk_id

REPO_URL = "https://github.com/acme/widgets"
SITE_URL = "https://docs.acme.dev"


def _file(path, content, language=None, sha="abc123"):
    return RepositoryFile(path=path, content=content, sha=sha, size=len(content), language=language)


def test_classify_file():
    assert classify_file("docs/README.md", "markdown") is FileClass.README
    assert classify_file("guide.md", "markdown") is FileClass.DOCUMENTATION
    assert classify_file("src/app.ts", "typescript") is FileClass.CODE
    assert classify_file("notes.txt", "text") is FileClass.TEXT
    assert FileClass.TEXT.category is ContentCategory.CODE


def test_chunker_rejects_overlap_not_below_max():
    with pytest.raises(ValueError):
        Chunker(max_chunk_size=100, chunk_overlap=100)


def test_blank_content_yields_no_chunks():
    chunker = Chunker(max_chunk_size=300, chunk_overlap=20)

    assert chunker.chunk_file(_file("src/empty.js", ""), REPO_URL) == []
    assert chunker.chunk_file(_file("src/blank.js", "  \n\t\n"), REPO_URL) == []


def test_small_file_is_one_verbatim_chunk():
    content = "export const answer = 42;\n\nexport default answer;"
    chunker = Chunker(max_chunk_size=300, chunk_overlap=20)

    chunks = chunker.chunk_file(_file("src/answer.js", content), REPO_URL)

    assert len(chunks) == 1
    chunk = chunks[0]
    assert chunk.content == content
    assert chunk.id == generate_chunk_id(REPO_URL, "src/answer.js", "abc123")
    assert chunk.category is ContentCategory.CODE
    assert chunk.metadata.language == "javascript"
    assert (chunk.metadata.start_line, chunk.metadata.end_line) == (1, 3)
    assert chunk.line_range == "L1-L3"


def test_dependencies_attach_to_every_code_chunk():
    functions = "".join(
        f"function handler{i}(event) {{\n  return process(event, {i});\n}}\n" for i in range(10)
    )
    content = "import React from 'react';\nconst lodash = require('lodash');\n\n" + functions
    chunker = Chunker(max_chunk_size=300, chunk_overlap=20)

    chunks = chunker.chunk_file(_file("src/handlers.js", content), REPO_URL)

    assert len(chunks) > 1
    assert all(c.metadata.dependencies == ["react", "lodash"] for c in chunks)
    assert all(len(c.content) <= 300 for c in chunks)
    assert len({c.id for c in chunks}) == len(chunks)
    assert chunks[1].content.startswith("function handler0(event) {")


def test_code_without_structure_rule_uses_line_ranges():
    content = "\n".join(f"int value_{i} = compute({i});" for i in range(100))
    chunker = Chunker(max_chunk_size=300, chunk_overlap=20)

    chunks = chunker.chunk_file(_file("src/main.cpp", content), REPO_URL)

    base = generate_chunk_id(REPO_URL, "src/main.cpp", "abc123")
    assert len(chunks) > 1
    for chunk in chunks:
        assert len(chunk.content) <= 300
        assert chunk.id == f"{base}_{chunk.metadata.start_line}_{chunk.metadata.end_line}"
    assert chunks[-1].metadata.end_line == 100


def test_readme_splits_by_heading():
    content = (
        "# Project\n" + "Intro text line here.\n" * 5
        + "## Install\n" + "Run the installer now.\n" * 5
        + "## Usage\n" + "Call the api like so.\n" * 5
    )
    chunker = Chunker(max_chunk_size=300, chunk_overlap=20)

    chunks = chunker.chunk_file(_file("README.md", content), REPO_URL)

    assert [c.metadata.section for c in chunks] == ["Project", "Install", "Usage"]
    assert [c.metadata.heading_level for c in chunks] == [1, 2, 2]
    assert all(c.category is ContentCategory.README for c in chunks)
    assert all(c.metadata.language == "markdown" for c in chunks)
    assert all(c.metadata.dependencies is None for c in chunks)


def test_small_readme_is_still_split_by_heading():
    chunker = Chunker(max_chunk_size=1000, chunk_overlap=200)

    chunks = chunker.chunk_file(_file("README.md", "# A\nfoo\n## B\nbar"), REPO_URL)

    assert [(c.metadata.section, c.content) for c in chunks] == [("A", "# A\nfoo"), ("B", "## B\nbar")]
    assert [c.metadata.heading_level for c in chunks] == [1, 2]


def test_small_page_is_split_at_extracted_headings():
    body = "Point the installer at your project directory and follow the prompts shown."
    content = f"Install\n{body}\n{body}\nUsage\n{body}"
    page = DocumentationPage(url=f"{SITE_URL}/start", title="Start", content=content, headings=["Install", "Usage"])
    chunker = Chunker(max_chunk_size=1000, chunk_overlap=200)

    chunks = chunker.chunk_page(page, SITE_URL)

    assert len(content) < 1000
    assert [c.metadata.section for c in chunks] == ["Install", "Usage"]


def test_small_page_without_heading_match_is_one_chunk():
    content = "A single paragraph describing the release schedule for every supported version."
    page = DocumentationPage(url=f"{SITE_URL}/releases", content=content, headings=["Roadmap"])
    chunker = Chunker(max_chunk_size=1000, chunk_overlap=200)

    chunks = chunker.chunk_page(page, SITE_URL)

    assert len(chunks) == 1
    assert chunks[0].content == content
    assert chunks[0].id == generate_chunk_id(SITE_URL, f"{SITE_URL}/releases")


def test_generic_text_uses_paragraphs():
    paragraph = "Plain notes about the release process and who signs off on it."
    content = "\n\n".join([paragraph] * 8)
    chunker = Chunker(max_chunk_size=300, chunk_overlap=20)

    chunks = chunker.chunk_file(_file("notes.txt", content), REPO_URL)

    base = generate_chunk_id(REPO_URL, "notes.txt", "abc123")
    assert len(chunks) > 1
    assert [c.id for c in chunks] == [f"{base}_{i}" for i in range(len(chunks))]
    assert all(c.category is ContentCategory.CODE for c in chunks)
    assert all(c.metadata.dependencies is None for c in chunks)


def test_page_splits_at_extracted_headings():
    body = "Run the installer and point it at your project directory before continuing."
    content = "\n".join([
        "Home Docs Blog",
        "Getting Started",
        body,
        body,
        "Configuration",
        body,
        body,
        "Deployment",
        body,
        body,
    ])
    page = DocumentationPage(
        url=f"{SITE_URL}/guide",
        title="Guide",
        content=content,
        headings=["Getting Started", "Configuration", "Deployment"],
    )
    chunker = Chunker(max_chunk_size=300, chunk_overlap=20)

    chunks = chunker.chunk_page(page, SITE_URL)

    assert [c.metadata.section for c in chunks] == ["Getting Started", "Configuration", "Deployment"]
    assert all(c.source.kind is SourceKind.DOCUMENTATION for c in chunks)
    assert all(c.source.title == "Guide" for c in chunks)
    assert all(c.source.path == f"{SITE_URL}/guide" for c in chunks)
    assert all(c.category is ContentCategory.DOCUMENTATION for c in chunks)


def test_page_without_matching_headings_falls_back_to_paragraphs():
    paragraph = "The crawler stores every page it visits along with the extracted text."
    page = DocumentationPage(
        url=f"{SITE_URL}/crawler",
        title="Crawler",
        content="\n\n".join([paragraph] * 8),
        headings=["Nothing Here Matches"],
    )
    chunker = Chunker(max_chunk_size=300, chunk_overlap=20)

    chunks = chunker.chunk_page(page, SITE_URL)

    base = generate_chunk_id(SITE_URL, f"{SITE_URL}/crawler")
    assert len(chunks) > 1
    assert chunks[0].id == f"{base}_0"
    assert all(c.metadata.section is None for c in chunks)


def test_chunking_is_deterministic():
    content = "\n".join(f"int value_{i} = compute({i});" for i in range(60))
    chunker = Chunker(max_chunk_size=300, chunk_overlap=20)

    first = chunker.chunk_file(_file("src/main.cpp", content), REPO_URL)
    second = chunker.chunk_file(_file("src/main.cpp", content), REPO_URL)

    assert [(c.id, c.metadata.content_hash) for c in first] == [
        (c.id, c.metadata.content_hash) for c in second
    ]


def test_chunk_repository_collects_stats():
    repository = RepositoryContent(
        url=REPO_URL,
        repository="acme/widgets",
        branch="main",
        files=[
            _file("src/answer.js", "export const answer = 42;", sha="a1"),
            _file("README.md", "# Widgets\nSmall widget toolkit.", sha="b2"),
        ],
    )
    chunker = Chunker(max_chunk_size=300, chunk_overlap=20)

    chunks, stats = chunker.chunk_repository(repository)

    assert len(chunks) == 2
    assert stats.total_items == 2
    assert stats.total_chunks == 2
    assert stats.by_category == {"code": 1, "readme": 1}
    assert stats.by_language == {"javascript": 1, "markdown": 1}


def test_chunk_documentation_collects_stats():
    site = DocumentationContent(
        url=SITE_URL,
        pages=[
            DocumentationPage(url=f"{SITE_URL}/a", title="A", content="Short page."),
            DocumentationPage(url=f"{SITE_URL}/b", title="B", content="   "),
        ],
    )
    chunker = Chunker(max_chunk_size=300, chunk_overlap=20)

    chunks, stats = chunker.chunk_documentation(site)

    assert len(chunks) == 1
    assert stats.total_items == 2
    assert stats.by_language == {"text": 1}
