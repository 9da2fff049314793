"""Text extraction for the document formats the pipeline ingests."""

import io
import logging
import re
from collections.abc import Iterator
from pathlib import Path
from typing import Callable

import markdown
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from advanced_rag.models import Document

logger = logging.getLogger(__name__)

_HTML_TAG = re.compile(r"<[^>]+>")


def extract_pdf_text(data: bytes) -> str:
    """Extract text from in-memory PDF bytes, one page per line block.

    Pages that yield no text (scanned images, empty pages) contribute
    empty strings.
    """
    reader = PdfReader(io.BytesIO(data))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def extract_markdown_text(source: str) -> str:
    """Render Markdown to HTML and drop the tags."""
    return _HTML_TAG.sub("", markdown.markdown(source))


def _load_txt(file_path: Path) -> str:
    return file_path.read_text(encoding="utf-8")


def _load_pdf(file_path: Path) -> str:
    return extract_pdf_text(file_path.read_bytes())


def _load_markdown(file_path: Path) -> str:
    return extract_markdown_text(file_path.read_text(encoding="utf-8"))


LOADERS: dict[str, Callable[[Path], str]] = {
    ".txt": _load_txt,
    ".pdf": _load_pdf,
    ".md": _load_markdown,
}


def iter_supported_files(folder: Path) -> Iterator[Path]:
    """Yield regular files in *folder* with a known extension, by name."""
    for path in sorted(folder.iterdir()):
        if path.is_file() and path.suffix.lower() in LOADERS:
            yield path


def load_document(file_path: Path) -> Document | None:
    """Read one file; return None when it is unreadable or has no text."""
    loader = LOADERS[file_path.suffix.lower()]
    try:
        content = loader(file_path)
    except (OSError, ValueError, PdfReadError):
        logger.exception("Failed to load %s", file_path.name)
        return None

    if not content.strip():
        logger.warning("Skipping empty file: %s", file_path.name)
        return None
    return Document(source_id=file_path.name, content=content)


def load_documents(folder_path: str | Path) -> list[Document]:
    """Load every supported document (.txt, .pdf, .md) in a folder.

    Subdirectories are not searched. ``source_id`` of each document is its
    file name.

    Raises:
        FileNotFoundError: If the folder does not exist.
        NotADirectoryError: If the path is not a directory.
    """
    folder = Path(folder_path)
    if not folder.exists():
        raise FileNotFoundError(f"Folder not found: {folder_path}")
    if not folder.is_dir():
        raise NotADirectoryError(f"Not a directory: {folder_path}")

    documents = []
    for path in iter_supported_files(folder):
        document = load_document(path)
        if document is not None:
            documents.append(document)
            logger.info("Loaded: %s", path.name)
    return documents
