"""Tests for the document_loader module."""

from pathlib import Path
from unittest.mock import patch

import pytest

from advanced_rag.document_loader import (
    _load_markdown,
    _load_pdf,
    _load_txt,
    extract_markdown_text,
    extract_pdf_text,
    iter_supported_files,
    load_document,
    load_documents,
)


def _fake_reader(*texts):
    pages = [type("Page", (), {"extract_text": lambda self, t=t: t})() for t in texts]
    return type("Reader", (), {"pages": pages})()


class TestLoadTxt:
    def test_reads_file_content(self, tmp_path: Path) -> None:
        f = tmp_path / "hello.txt"
        f.write_text("Hello, world!", encoding="utf-8")
        assert _load_txt(f) == "Hello, world!"

    def test_handles_unicode(self, tmp_path: Path) -> None:
        f = tmp_path / "unicode.txt"
        f.write_text("Ünïcödé tëxt: 日本語", encoding="utf-8")
        result = _load_txt(f)
        assert "Ünïcödé" in result
        assert "日本語" in result


class TestLoadMarkdown:
    def test_strips_html_tags(self, tmp_path: Path) -> None:
        f = tmp_path / "test.md"
        f.write_text("# Heading\n\nSome **bold** text.", encoding="utf-8")
        result = _load_markdown(f)
        assert "Heading" in result
        assert "bold" in result
        assert "<" not in result

    def test_handles_links(self, tmp_path: Path) -> None:
        f = tmp_path / "links.md"
        f.write_text("[Click here](http://example.com)", encoding="utf-8")
        assert "Click here" in _load_markdown(f)


class TestExtractPdfText:
    def test_joins_pages(self) -> None:
        with patch(
            "advanced_rag.document_loader.PdfReader",
            return_value=_fake_reader("page one", "page two"),
        ):
            assert extract_pdf_text(b"%PDF") == "page one\npage two"

    def test_pages_without_text_are_empty(self) -> None:
        with patch(
            "advanced_rag.document_loader.PdfReader",
            return_value=_fake_reader("page one", None),
        ):
            assert extract_pdf_text(b"%PDF") == "page one\n"

    def test_load_pdf_reads_file_bytes(self, tmp_path: Path) -> None:
        f = tmp_path / "test.pdf"
        f.write_bytes(b"%PDF-1.4")
        with patch(
            "advanced_rag.document_loader.PdfReader",
            return_value=_fake_reader("Hello PDF"),
        ):
            assert _load_pdf(f) == "Hello PDF"


class TestLoadDocuments:
    def test_loads_txt_and_md(self, tmp_docs_dir: Path) -> None:
        docs = load_documents(tmp_docs_dir)
        assert {d.source_id for d in docs} == {"sample.txt", "notes.md"}

    def test_sorted_by_filename(self, tmp_docs_dir: Path) -> None:
        docs = load_documents(tmp_docs_dir)
        assert [d.source_id for d in docs] == ["notes.md", "sample.txt"]

    def test_returns_empty_for_empty_folder(self, empty_docs_dir: Path) -> None:
        assert load_documents(empty_docs_dir) == []

    def test_raises_on_missing_folder(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_documents("/nonexistent/path")

    def test_raises_on_file_instead_of_dir(self, tmp_path: Path) -> None:
        f = tmp_path / "file.txt"
        f.write_text("content")
        with pytest.raises(NotADirectoryError):
            load_documents(f)

    def test_skips_empty_files(self, tmp_path: Path) -> None:
        (tmp_path / "empty.txt").write_text("", encoding="utf-8")
        (tmp_path / "whitespace.txt").write_text("   \n\n  ", encoding="utf-8")
        assert load_documents(tmp_path) == []

    def test_skips_subdirectories(self, tmp_path: Path) -> None:
        (tmp_path / "subdir.txt").mkdir()
        (tmp_path / "real.txt").write_text("content", encoding="utf-8")
        assert len(load_documents(tmp_path)) == 1

    def test_loader_exception_skips_file(self, tmp_path: Path) -> None:
        (tmp_path / "good.txt").write_text("valid content", encoding="utf-8")
        (tmp_path / "bad.txt").write_text("will fail", encoding="utf-8")

        def flaky(path: Path) -> str:
            if path.name == "bad.txt":
                raise OSError("boom")
            return path.read_text(encoding="utf-8")

        with patch.dict("advanced_rag.document_loader.LOADERS", {".txt": flaky}):
            docs = load_documents(tmp_path)

        assert [d.source_id for d in docs] == ["good.txt"]

    def test_unexpected_errors_propagate(self, tmp_path: Path) -> None:
        (tmp_path / "bad.txt").write_text("x", encoding="utf-8")

        def broken(path: Path) -> str:
            raise KeyError("bug")

        with patch.dict("advanced_rag.document_loader.LOADERS", {".txt": broken}):
            with pytest.raises(KeyError):
                load_documents(tmp_path)


class TestHelpers:
    def test_extract_markdown_text(self) -> None:
        assert extract_markdown_text("*emphasis*") == "emphasis"

    def test_iter_supported_files(self, tmp_docs_dir: Path) -> None:
        names = [p.name for p in iter_supported_files(tmp_docs_dir)]
        assert names == ["notes.md", "sample.txt"]

    def test_load_document_returns_none_for_blank(self, tmp_path: Path) -> None:
        f = tmp_path / "blank.txt"
        f.write_text("\n\n", encoding="utf-8")
        assert load_document(f) is None

    def test_load_document_sets_source_id(self, tmp_path: Path) -> None:
        f = tmp_path / "a.txt"
        f.write_text("hello", encoding="utf-8")
        assert load_document(f).source_id == "a.txt"
