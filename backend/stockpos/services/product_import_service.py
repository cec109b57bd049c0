# Overview: Bulk product upload from CSV or Excel files.

"""
Product Bulk Upload

Rows are validated and inserted one at a time; every check runs before the
INSERT, so a bad row is reported and skipped without losing the good ones.
The response lists the failing rows by their spreadsheet row number (header is row 1).
"""

import csv
import io
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..extensions import db
from ..models import Product
from ..validation import ConflictError, ValidationError, validate_payload, enforce_rules_product
from .products_service import PRODUCT_POLICY, create_product_in_store
from .store_scope import resolve_store


class UploadError(ValueError):
    """Raised when an upload cannot be parsed at all."""
    pass


EXCEL_EXTENSIONS = {"xlsx", "xlsm", "xltx", "xltm"}


def _cell(value):
    # Excel stores whole numbers as floats
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _is_blank(values) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in values)


def parse_upload(file_storage) -> list[tuple[int, dict]]:
    """
    Read a werkzeug FileStorage into (row_number, row) pairs keyed by header.

    row_number is the line of the CSV file or the row of the sheet (header is
    1), so blank rows skipped here do not shift the numbers reported later.
    Supports .csv (UTF-8, optional BOM) and Excel workbooks (first sheet).
    """
    filename = file_storage.filename or ""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""

    if ext == "csv":
        try:
            text = file_storage.stream.read().decode("utf-8-sig")
        except UnicodeDecodeError:
            raise UploadError("CSV file must be UTF-8 encoded")
        reader = csv.DictReader(io.StringIO(text))
        rows = []
        for row in reader:
            if _is_blank(row.values()):
                continue
            cleaned = {(k or "").strip(): (v.strip() if isinstance(v, str) else v) for k, v in row.items()}
            rows.append((reader.line_num, cleaned))
        return rows

    if ext in EXCEL_EXTENSIONS:
        try:
            wb = load_workbook(file_storage.stream, read_only=True, data_only=True)
        except (BadZipFile, InvalidFileException, KeyError):
            raise UploadError("Could not read Excel file")
        try:
            data = list(wb.active.values)
        finally:
            wb.close()
        if not data:
            return []
        headers = [str(h).strip() if h is not None else "" for h in data[0]]
        rows = []
        for row_number, values in enumerate(data[1:], start=2):
            if values is None or _is_blank(values):
                continue
            rows.append((
                row_number,
                {headers[i]: _cell(values[i]) for i in range(min(len(headers), len(values))) if headers[i]},
            ))
        return rows

    raise UploadError("Unsupported file format (use .csv or .xlsx)")


def import_products(caller, rows: list[tuple[int, dict]], *, store_id: int | None = None, max_rows: int = 5000) -> dict:
    """
    Create one product per (row_number, row) pair in the caller's store.

    Returns {"success_count", "error_count", "errors": [{"row", "error"}]}.
    """
    if not rows:
        raise UploadError("File is empty or invalid")
    if len(rows) > max_rows:
        raise UploadError(f"Too many rows (max {max_rows})")

    store = resolve_store(caller, store_id)

    success_count = 0
    errors = []

    for row_number, row in rows:
        payload = {k: v for k, v in row.items() if v not in (None, "")}
        try:
            patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
            enforce_rules_product(patch)
            create_product_in_store(store.id, patch)
            success_count += 1
        except (ValidationError, ConflictError) as e:
            errors.append({"row": row_number, "error": str(e)})

    db.session.commit()

    return {
        "success_count": success_count,
        "error_count": len(errors),
        "errors": errors,
        "message": f"Bulk upload complete: {success_count} products added, {len(errors)} errors",
    }
