"""Indicator workbook import and uploaded file metadata"""

import io
import logging
import zipfile
from datetime import datetime
from typing import List, Optional

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .constants import DEFAULT_AXIS
from .exceptions import ImportFileError
from .models import Document, Indicator, generate_id

logger = logging.getLogger(__name__)

AXIS_HEADER = "المحور"
TEXT_HEADERS = ("وصف التقييم", "Indicator")


def _cell_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_indicator_workbook(source) -> List[Indicator]:
    """Read indicators from the first sheet of an .xlsx workbook.

    ``source`` is a path, a binary file object or raw bytes. The first row holds
    the headers. Rows without question text are dropped; ids follow the row
    position among data rows (``IND-1``, ``IND-2``...), counting dropped rows.
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)

    try:
        wb = load_workbook(source, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        logger.warning("Could not open indicator workbook: %s", e)
        raise ImportFileError(f"Unreadable workbook: {e}") from e

    try:
        ws = wb.worksheets[0]
        rows = ws.iter_rows(values_only=True)
        header = next(rows, None)
        if not header:
            raise ImportFileError("The first sheet is empty")

        columns = {_cell_text(name): idx for idx, name in enumerate(header) if _cell_text(name)}
        axis_col = columns.get(AXIS_HEADER)
        text_cols = [columns[name] for name in TEXT_HEADERS if name in columns]

        indicators = []
        for position, row in enumerate(rows, start=1):
            text = ""
            for col in text_cols:
                if col < len(row):
                    text = _cell_text(row[col])
                if text:
                    break
            if not text:
                continue
            axis = _cell_text(row[axis_col]) if axis_col is not None and axis_col < len(row) else ""
            indicators.append(Indicator(
                id=f"IND-{position}",
                axis=axis or DEFAULT_AXIS,
                text=text,
            ))
    finally:
        wb.close()

    if not indicators:
        raise ImportFileError("No valid indicators found in the file")

    logger.info("Parsed %d indicators from workbook", len(indicators))
    return indicators


def format_size(size_bytes: int) -> str:
    return f"{size_bytes / 1024:.1f} KB"


def document_metadata(filename: str, mimetype: str, size_bytes: int,
                      uploaded: Optional[datetime] = None) -> Document:
    """Describe an uploaded file; its content is not stored"""
    uploaded = uploaded or datetime.now()
    return Document(
        id=generate_id(),
        name=filename,
        type=mimetype or "",
        size=format_size(size_bytes),
        upload_date=uploaded.strftime("%d/%m/%Y"),
    )
