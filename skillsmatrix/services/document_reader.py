"""
Plain-text reader for skill source documents (DOCX and PDF).

Each document describes a single skill; its file name is the skill name.
Reading never raises: an unreadable or unsupported file yields an empty
string and a log line, so a batch run can skip it and carry on.
"""
from __future__ import annotations

import logging
import os
import re
from typing import List, Optional, Sequence

import fitz  # PyMuPDF
from docx import Document as DocxDocument

from skillsmatrix.config import settings
from skillsmatrix.utils.helpers import normalize_dashes

logger = logging.getLogger(__name__)

# Characters of the skill name used to locate its document
_LOOKUP_PREFIX_LENGTH = 15


class DocumentReader:
    """Reads DOCX and PDF files into plain text."""

    def __init__(self, supported_types: Optional[Sequence[str]] = None) -> None:
        types = supported_types if supported_types is not None else settings.SUPPORTED_FILE_TYPES
        self.supported_types = tuple(t.lower() for t in types)

    def is_supported(self, filename: str) -> bool:
        return os.path.splitext(filename)[1].lower() in self.supported_types

    async def read_text(self, path: str) -> str:
        """
        Extract the plain text of a document.

        Args:
            path: Path to a .docx or .pdf file.

        Returns:
            The document text, or an empty string on any failure.
        """
        ext = os.path.splitext(path)[1].lower()
        if ext not in self.supported_types:
            logger.warning("read_text: unsupported file type %r for %s", ext, path)
            return ""

        try:
            if ext == ".pdf":
                return self._read_pdf(path)
            if ext == ".docx":
                return self._read_docx(path)
        except Exception as exc:
            logger.error("read_text: cannot read %s: %s", path, exc)
            return ""

        logger.warning("read_text: no reader for %r (%s)", ext, path)
        return ""

    def list_documents(
        self,
        directory: str,
        start: Optional[int] = None,
        stop: Optional[int] = None,
    ) -> List[str]:
        """
        List supported document file names in *directory*, sorted by name.

        *start* / *stop* select a slice of the sorted list so a long batch
        can be split across several runs.
        """
        if not os.path.isdir(directory):
            logger.error("list_documents: directory not found: %s", directory)
            return []

        names = sorted(
            name
            for name in os.listdir(directory)
            if self.is_supported(name) and os.path.isfile(os.path.join(directory, name))
        )
        return names[start:stop]

    # ------------------------------------------------------------------
    # Format readers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_docx(path: str) -> str:
        doc = DocxDocument(path)
        parts: List[str] = [p.text.strip() for p in doc.paragraphs if p.text.strip()]

        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                non_empty = [c for c in cells if c]
                if non_empty:
                    parts.append(" | ".join(non_empty))

        return "\n".join(parts)

    @staticmethod
    def _read_pdf(path: str) -> str:
        doc = fitz.open(path)
        try:
            if doc.needs_pass:
                raise RuntimeError("PDF is password-protected")
            pages = [page.get_text("text") for page in doc]
        finally:
            doc.close()
        return "\n".join(p.strip() for p in pages if p.strip())


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

def skill_name_from_filename(filename: str) -> str:
    """Derive the candidate skill name from a document file name."""
    stem = os.path.splitext(os.path.basename(filename))[0]
    stem = normalize_dashes(stem)
    return re.sub(r"\s+", " ", stem).strip()


def find_document_for_skill(skill_name: str, filenames: Sequence[str]) -> Optional[str]:
    """
    Locate the document for a skill.

    A file matches when its lowercase name contains the first 15 lowercase
    characters of the skill name, or the skill name contains the first 15
    characters of the file's derived skill name. The first match in
    *filenames* order wins.
    """
    if not skill_name or not skill_name.strip():
        return None

    needle = normalize_dashes(skill_name.strip().lower())
    prefix = needle[:_LOOKUP_PREFIX_LENGTH]

    for filename in filenames:
        lowered = normalize_dashes(filename.lower())
        if prefix in lowered:
            return filename
        stem = skill_name_from_filename(filename).lower()[:_LOOKUP_PREFIX_LENGTH]
        if stem and stem in needle:
            return filename
    return None
