"""Test suite for indicator workbook import"""

import io
from datetime import datetime

import pytest
from openpyxl import Workbook
from waqf_eval.exceptions import ImportFileError
from waqf_eval.importers import document_metadata, format_size, parse_indicator_workbook


def _workbook_bytes(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def test_parse_arabic_headers():
    """Test the Arabic column names"""
    data = _workbook_bytes([
        ["المحور", "وصف التقييم"],
        ["الحوكمة", "هل يوجد مجلس أمناء؟"],
        ["المالي", "هل توجد ميزانية معتمدة؟"],
    ])

    indicators = parse_indicator_workbook(data)
    assert [i.id for i in indicators] == ["IND-1", "IND-2"]
    assert indicators[0].axis == "الحوكمة"
    assert indicators[1].text == "هل توجد ميزانية معتمدة؟"
    assert all(i.active for i in indicators)


def test_parse_english_header_and_default_axis():
    """Test the alternate text header and the default axis"""
    data = _workbook_bytes([
        ["Indicator"],
        ["Is there an annual audit?"],
    ])

    indicators = parse_indicator_workbook(io.BytesIO(data))
    assert indicators[0].axis == "عام"
    assert indicators[0].text == "Is there an annual audit?"


def test_rows_without_text_are_dropped_and_ids_keep_position():
    """Test blank rows are skipped without renumbering"""
    data = _workbook_bytes([
        ["المحور", "وصف التقييم"],
        ["الحوكمة", "Q1"],
        ["الحوكمة", None],
        ["الحوكمة", "   "],
        [None, "Q4"],
    ])

    indicators = parse_indicator_workbook(data)
    assert [(i.id, i.text) for i in indicators] == [("IND-1", "Q1"), ("IND-4", "Q4")]


def test_parse_from_path(tmp_path):
    path = tmp_path / "indicators.xlsx"
    path.write_bytes(_workbook_bytes([["وصف التقييم"], ["Q1"]]))

    assert len(parse_indicator_workbook(str(path))) == 1


def test_numeric_cells_become_text():
    data = _workbook_bytes([["المحور", "وصف التقييم"], [2026, 42]])

    indicator = parse_indicator_workbook(data)[0]
    assert indicator.axis == "2026"
    assert indicator.text == "42"


def test_unreadable_file():
    """Test garbage bytes are rejected"""
    with pytest.raises(ImportFileError):
        parse_indicator_workbook(b"this is not a workbook")


def test_no_valid_rows():
    """Test a workbook without usable rows is rejected"""
    with pytest.raises(ImportFileError):
        parse_indicator_workbook(_workbook_bytes([["المحور", "وصف التقييم"], ["الحوكمة", None]]))

    with pytest.raises(ImportFileError):
        parse_indicator_workbook(_workbook_bytes([["Name", "Other"], ["a", "b"]]))


def test_format_size():
    assert format_size(2048) == "2.0 KB"
    assert format_size(1536) == "1.5 KB"
    assert format_size(0) == "0.0 KB"


def test_document_metadata():
    """Test uploaded file description"""
    doc = document_metadata("deed.pdf", "application/pdf", 10240, uploaded=datetime(2026, 3, 7))

    assert doc.id
    assert doc.name == "deed.pdf"
    assert doc.type == "application/pdf"
    assert doc.size == "10.0 KB"
    assert doc.upload_date == "07/03/2026"
