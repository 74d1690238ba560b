from __future__ import annotations

import csv
import zipfile
from io import BytesIO, StringIO

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from tripdesk.modules.imports.parsers.common import CSV, XLSX, ParsedFile

MAX_ROWS = 2000


def _format_cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value).strip()


def _rows_to_text(rows) -> list[str]:
    lines: list[str] = []
    for row in rows:
        if len(lines) >= MAX_ROWS:
            lines.append("[TRUNCATED]")
            break
        cells = [_format_cell(v) for v in row]
        while cells and not cells[-1]:
            cells.pop()
        if cells:
            lines.append("\t".join(cells))
    return lines


def parse_xlsx(filename: str, body: bytes) -> ParsedFile:
    try:
        workbook = load_workbook(BytesIO(body), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError):
        return ParsedFile.failure(filename, XLSX, "Could not open spreadsheet")

    sections: list[str] = []
    try:
        for sheet in workbook.worksheets:
            lines = _rows_to_text(sheet.iter_rows(values_only=True))
            if lines:
                sections.append(f"## Sheet: {sheet.title}\n" + "\n".join(lines))
    finally:
        workbook.close()

    if not sections:
        return ParsedFile.failure(filename, XLSX, "Spreadsheet is empty")
    return ParsedFile.success(filename, XLSX, text="\n\n".join(sections))


def _decode(body: bytes) -> str:
    try:
        return body.decode("utf-8-sig")
    except UnicodeDecodeError:
        return body.decode("latin-1")


def parse_csv(filename: str, body: bytes) -> ParsedFile:
    text = _decode(body)
    try:
        lines = _rows_to_text(csv.reader(StringIO(text)))
    except csv.Error as e:
        return ParsedFile.failure(filename, CSV, f"Could not read CSV: {e}")
    if not lines:
        return ParsedFile.failure(filename, CSV, "CSV file is empty")
    return ParsedFile.success(filename, CSV, text="\n".join(lines))
