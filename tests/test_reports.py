"""Test suite for report data and PDF export"""

from waqf_eval.models import (
    Evaluation, ImprovementItem, Indicator, Institution, Priority, Response, Settings,
)
from waqf_eval.reports import (
    axis_scores, build_report, improvement_stats, render_report_pdf, shape,
)


def _indicators():
    return [
        Indicator(id="A-1", axis="الحوكمة", text="Q1"),
        Indicator(id="A-2", axis="الحوكمة", text="Q2"),
        Indicator(id="B-1", axis="المالي", text="Q3"),
        Indicator(id="C-1", axis="الإداري", text="Q4"),
    ]


def _response(indicator_id, score):
    return Response(id=f"R-{indicator_id}", evaluation_id="E1", indicator_id=indicator_id, score=score)


def _item(n, priority):
    return ImprovementItem(
        id=f"M{n}", evaluation_id="E1", indicator_id=f"A-{n}", priority=priority,
        issue_summary=f"انخفاض في المؤشر: Q{n}", recommended_action="x",
        owner="الإدارة التنفيذية", due_date="2027-01-19",
    )


def test_axis_scores_in_catalog_order():
    """Test per-axis averages follow catalog order"""
    scores = axis_scores([_response("A-1", 2), _response("A-2", 5), _response("B-1", 4)], _indicators())

    assert [s.subject for s in scores] == ["1. الحوكمة", "2. المالي", "3. الإداري"]
    assert scores[0].average == 3.5
    assert scores[1].average == 4
    assert scores[2].average == 0
    assert scores[2].count == 0
    assert scores[0].to_dict()["fullMark"] == 5


def test_axis_scores_ignore_unknown_indicators():
    scores = axis_scores([_response("GONE", 1), _response("B-1", 3)], _indicators())
    assert sum(s.count for s in scores) == 1


def test_improvement_stats():
    """Test counts per priority with empty priorities omitted"""
    items = [_item(1, Priority.HIGH), _item(2, Priority.HIGH), _item(3, Priority.MEDIUM)]

    assert improvement_stats(items) == {"High": 2, "Medium": 1}
    assert improvement_stats([]) == {}


def test_report_overall_average():
    """Test the overall average weights axes by answered indicators"""
    report = build_report(
        Institution(id="I1", name="Waqf"),
        Evaluation(id="E1", institution_id="I1", cycle_year=2026),
        [_response("A-1", 2), _response("A-2", 5), _response("B-1", 2)],
        _indicators(),
        [],
    )

    assert report.overall_average == 3.0
    data = report.to_dict()
    assert data["institution"]["name"] == "Waqf"
    assert len(data["radar"]) == 3
    assert data["maturity"] == "جيد"


def test_shape_escapes_markup():
    assert shape(None) == ""
    assert "&lt;" in shape("a < b")


def test_render_report_pdf():
    """Test the PDF export produces a document"""
    report = build_report(
        Institution(id="I1", name="وقف النور"),
        Evaluation(id="E1", institution_id="I1", cycle_year=2026),
        [_response("A-1", 1), _response("B-1", 3)],
        _indicators(),
        [_item(1, Priority.HIGH), _item(2, Priority.MEDIUM)],
    )

    pdf = render_report_pdf(report, Settings(org_name="Org <Test>"))
    assert pdf.startswith(b"%PDF")


def test_render_report_pdf_without_plan():
    report = build_report(
        Institution(id="I1", name="Waqf"),
        Evaluation(id="E1", institution_id="I1", cycle_year=2026),
        [],
        _indicators(),
        [],
    )

    assert render_report_pdf(report).startswith(b"%PDF")
