from __future__ import annotations

from datetime import date
from io import BytesIO

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32


class _Page:
    def __init__(self, text: str) -> None:
        self._text = text

    def extract_text(self) -> str:
        return self._text


def _fake_reader(pages: list[str]):
    class _Reader:
        is_encrypted = False

        def __init__(self, *_args, **_kwargs) -> None:
            self.pages = [_Page(t) for t in pages]

    return _Reader


def test_resolve_content_type_prefers_declared_then_extension_then_bytes():
    from tripdesk.modules.imports.parsers.common import CSV, PDF, PNG, resolve_content_type

    assert resolve_content_type("a.bin", "text/csv; charset=utf-8", b"x") == CSV
    assert resolve_content_type("a.bin", "application/csv", b"x") == CSV
    assert resolve_content_type("itinerary.pdf", "application/octet-stream", b"x") == PDF
    assert resolve_content_type("scan", None, PNG_BYTES) == PNG
    assert resolve_content_type("blob", None, b"%PDF-1.7\n") == PDF
    assert resolve_content_type("notes.txt", "text/plain", b"hello") is None


def test_pdf_text_is_extracted_with_page_markers(monkeypatch):
    import tripdesk.modules.imports.parsers.pdf as pdf_mod

    monkeypatch.setattr(
        pdf_mod,
        "PdfReader",
        _fake_reader(
            [
                "Day 1 - May 14, 2027\nPickup at Marcus Whitman Hotel at 10:30",
                "Day 2 - May 15, 2027\nTasting at L'Ecole No 41 Winery at 11:00",
            ]
        ),
    )

    parsed = pdf_mod.parse_pdf("itinerary.pdf", b"%PDF-1.4 fake")
    assert parsed.ok
    assert "[Page 1]" in parsed.text
    assert "[Page 2]" in parsed.text
    assert "L'Ecole No 41" in parsed.text


def test_pdf_without_text_layer_reports_scanned_document(monkeypatch):
    import tripdesk.modules.imports.parsers.pdf as pdf_mod

    monkeypatch.setattr(pdf_mod, "PdfReader", _fake_reader(["", "  "]))

    parsed = pdf_mod.parse_pdf("scan.pdf", b"%PDF-1.4 fake")
    assert not parsed.ok
    assert parsed.error == pdf_mod.SCANNED_PDF_ERROR


def test_non_pdf_bytes_are_rejected():
    from tripdesk.modules.imports.parsers.pdf import parse_pdf

    parsed = parse_pdf("fake.pdf", b"not a pdf at all")
    assert not parsed.ok
    assert parsed.error == "File is not a valid PDF"


def test_docx_paragraphs_and_tables_are_extracted():
    from docx import Document

    from tripdesk.modules.imports.parsers.word import parse_docx

    doc = Document()
    doc.add_paragraph("Whitman party - Walla Walla weekend")
    table = doc.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Time"
    table.cell(0, 1).text = "Venue"
    table.cell(1, 0).text = "11:00"
    table.cell(1, 1).text = "Leonetti Cellar"
    buf = BytesIO()
    doc.save(buf)

    parsed = parse_docx("itinerary.docx", buf.getvalue())
    assert parsed.ok
    assert "Whitman party" in parsed.text
    assert "Leonetti Cellar" in parsed.text


def test_xlsx_sheets_become_tab_separated_text():
    from openpyxl import Workbook

    from tripdesk.modules.imports.parsers.spreadsheet import parse_xlsx

    wb = Workbook()
    ws = wb.active
    ws.title = "Itinerary"
    ws.append(["Date", "Venue", "Guests"])
    ws.append([date(2027, 5, 14), "Woodward Canyon", 6])
    buf = BytesIO()
    wb.save(buf)

    parsed = parse_xlsx("trip.xlsx", buf.getvalue())
    assert parsed.ok
    assert "## Sheet: Itinerary" in parsed.text
    assert "Date\tVenue\tGuests" in parsed.text
    assert "Woodward Canyon\t6" in parsed.text


def test_xlsx_garbage_fails_softly():
    from tripdesk.modules.imports.parsers.spreadsheet import parse_xlsx

    parsed = parse_xlsx("trip.xlsx", b"definitely not a zip")
    assert not parsed.ok
    assert parsed.error == "Could not open spreadsheet"


def test_csv_rows_are_tab_joined():
    from tripdesk.modules.imports.parsers.spreadsheet import parse_csv

    parsed = parse_csv("guests.csv", b"\xef\xbb\xbfname,email\nDana Whitman,dana@example.com\n")
    assert parsed.ok
    assert parsed.text == "name\temail\nDana Whitman\tdana@example.com"

    empty = parse_csv("empty.csv", b"\n\n")
    assert not empty.ok
    assert empty.error == "CSV file is empty"


def test_image_media_type_comes_from_bytes():
    from tripdesk.modules.imports.parsers.image import parse_image

    parsed = parse_image("photo.jpg", "image/jpeg", PNG_BYTES)
    assert parsed.ok
    assert parsed.content_type == "image/png"
    assert parsed.images[0].media_type == "image/png"
    assert parsed.images[0].data == PNG_BYTES

    bad = parse_image("photo.jpg", "image/jpeg", b"GIF89a...")
    assert not bad.ok


def test_parse_upload_rejects_empty_oversized_and_unsupported(monkeypatch):
    from tripdesk.core.config import settings
    from tripdesk.modules.imports.service import Upload, parse_upload

    assert parse_upload(Upload("empty.pdf", "application/pdf", b"")).error == "File is empty"

    unsupported = parse_upload(Upload("notes.txt", "text/plain", b"hello"))
    assert not unsupported.ok
    assert unsupported.error.startswith("Unsupported file type")

    monkeypatch.setattr(settings, "smart_import_max_file_bytes", 8)
    big = parse_upload(Upload("photo.jpg", "image/jpeg", JPEG_BYTES))
    assert not big.ok
    assert "limit" in big.error


def test_parser_crash_is_isolated_to_the_file(monkeypatch):
    import tripdesk.modules.imports.service as import_service

    def _boom(filename, body):
        raise RuntimeError("parser exploded")

    monkeypatch.setattr(import_service, "parse_csv", _boom)

    parsed = import_service.parse_upload(import_service.Upload("trip.csv", "text/csv", b"a,b"))
    assert not parsed.ok
    assert parsed.error == "Could not read this file"
