"""Tests for the DOCX/PDF document reader and document lookup helpers."""
import fitz
import pytest
from docx import Document

from skillsmatrix.services.document_reader import (
    DocumentReader,
    find_document_for_skill,
    skill_name_from_filename,
)


def _write_docx(path, paragraphs, table_rows=()):
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    if table_rows:
        table = doc.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, value in enumerate(row):
                table.cell(r, c).text = value
    doc.save(str(path))


@pytest.mark.asyncio
async def test_read_docx_paragraphs_and_tables(tmp_path):
    path = tmp_path / "Hand Washing.docx"
    _write_docx(
        path,
        ["Hand Washing", "", "Wet hands with running water."],
        table_rows=[("Step", "Action"), ("1", "Apply soap"), ("", "")],
    )

    text = await DocumentReader().read_text(str(path))

    assert text.splitlines() == [
        "Hand Washing",
        "Wet hands with running water.",
        "Step | Action",
        "1 | Apply soap",
    ]


@pytest.mark.asyncio
async def test_read_pdf(tmp_path):
    path = tmp_path / "Needle Thoracentesis.pdf"
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Second intercostal space")
    doc.save(str(path))
    doc.close()

    text = await DocumentReader().read_text(str(path))
    assert "Second intercostal space" in text


@pytest.mark.asyncio
async def test_missing_file_reads_as_empty(tmp_path):
    assert await DocumentReader().read_text(str(tmp_path / "missing.docx")) == ""


@pytest.mark.asyncio
async def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "broken.docx"
    path.write_bytes(b"not a zip archive")
    assert await DocumentReader().read_text(str(path)) == ""


@pytest.mark.asyncio
async def test_unsupported_type_reads_as_empty(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("plain text", encoding="utf-8")
    assert await DocumentReader().read_text(str(path)) == ""


def test_list_documents_sorted_filtered_and_sliced(tmp_path):
    for name in ("c.pdf", "a.docx", "b.DOCX", "notes.txt", "d.docx"):
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "folder.docx").mkdir()

    reader = DocumentReader()
    assert reader.list_documents(str(tmp_path)) == ["a.docx", "b.DOCX", "c.pdf", "d.docx"]
    assert reader.list_documents(str(tmp_path), 1, 3) == ["b.DOCX", "c.pdf"]
    assert reader.list_documents(str(tmp_path), start=3) == ["d.docx"]


def test_list_documents_missing_directory(tmp_path):
    assert DocumentReader().list_documents(str(tmp_path / "nope")) == []


def test_supported_types_are_configurable():
    reader = DocumentReader(supported_types=[".PDF"])
    assert reader.is_supported("x.pdf")
    assert not reader.is_supported("x.docx")


def test_skill_name_from_filename():
    assert skill_name_from_filename("/docs/Intubation – Adult.docx") == "Intubation - Adult"
    assert skill_name_from_filename("Hand   Washing .pdf") == "Hand Washing"


def test_find_document_for_skill():
    files = [
        "Adult CPR with Manual defibrillator.docx",
        "Hand Washing.docx",
        "Nebulization.pdf",
    ]
    # Prefix of the skill name found in the file name
    assert find_document_for_skill("Hand Washing", files) == "Hand Washing.docx"
    assert (
        find_document_for_skill("Adult CPR with Manual defibrillator (AED)", files)
        == "Adult CPR with Manual defibrillator.docx"
    )
    # File's skill name contained in the skill name
    assert find_document_for_skill("Nebulization of Medication", files) == "Nebulization.pdf"
    assert find_document_for_skill("Pelvic Binder", files) is None
    assert find_document_for_skill("  ", files) is None


def test_find_document_for_skill_uses_file_name_prefix():
    files = ["Nebulization of Salbutamol - Adult.docx"]
    # Only the first 15 characters of the file's name need to appear in the skill name
    assert (
        find_document_for_skill("Adult Nebulization of Medication", files)
        == "Nebulization of Salbutamol - Adult.docx"
    )
    assert find_document_for_skill("Medication Nebulization", files) is None
