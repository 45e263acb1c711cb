"""Test suite for improvement plan generation"""

from datetime import date

import pytest
from waqf_eval.improvement import add_months, generate_improvement_plan, priority_for
from waqf_eval.models import Indicator, Priority, Response, ImprovementStatus

TODAY = date(2026, 10, 19)


def _indicators():
    return [
        Indicator(id="A-1", axis="Axis A", text="Question one"),
        Indicator(id="A-2", axis="Axis A", text="Question two"),
        Indicator(id="B-1", axis="Axis B", text="Question three"),
        Indicator(id="B-2", axis="Axis B", text="Retired question", active=False),
    ]


def _responses(scores, evaluation_id="E1"):
    return [
        Response(id=f"R{n}", evaluation_id=evaluation_id, indicator_id=ind_id, score=score)
        for n, (ind_id, score) in enumerate(scores.items())
    ]


def test_weak_scores_generate_items():
    """Test each weak score yields one item with the derived fields"""
    items = generate_improvement_plan("E1", _responses({"A-1": 1, "A-2": 3, "B-1": 4}), _indicators(), [], today=TODAY)

    assert [i.indicator_id for i in items] == ["A-1", "A-2"]
    high, medium = items
    assert high.priority == Priority.HIGH
    assert medium.priority == Priority.MEDIUM
    assert high.issue_summary == "انخفاض في المؤشر: Question one"
    assert high.owner == "الإدارة التنفيذية"
    assert high.recommended_action == "مراجعة السياسات والإجراءات وتحديد خطة تصحيحية."
    assert high.status == ImprovementStatus.TODO
    assert high.due_date == "2027-01-19"
    assert high.evaluation_id == "E1"


@pytest.mark.parametrize("score,expected", [
    (3.5, None),
    (3.4, Priority.MEDIUM),
    (2.5, Priority.MEDIUM),
    (2.4, Priority.HIGH),
    (1, Priority.HIGH),
])
def test_score_boundaries(score, expected):
    """Test the strict less-than thresholds"""
    items = generate_improvement_plan("E1", _responses({"A-1": score}), _indicators(), [], today=TODAY)
    if expected is None:
        assert items == []
    else:
        assert items[0].priority == expected


def test_priority_for():
    assert priority_for(2.49) == Priority.HIGH
    assert priority_for(2.5) == Priority.MEDIUM


def test_generation_is_idempotent():
    """Test running twice produces no duplicates"""
    responses = _responses({"A-1": 1, "A-2": 2, "B-1": 3})
    first = generate_improvement_plan("E1", responses, _indicators(), [], today=TODAY)
    second = generate_improvement_plan("E1", responses, _indicators(), first, today=TODAY)

    assert len(first) == 3
    assert second == []


def test_existing_items_of_other_evaluations_do_not_count():
    """Test deduplication is scoped to the evaluation"""
    other = generate_improvement_plan("E2", _responses({"A-1": 1}, "E2"), _indicators(), [], today=TODAY)
    items = generate_improvement_plan("E1", _responses({"A-1": 1}), _indicators(), other, today=TODAY)

    assert len(items) == 1


def test_unknown_and_inactive_indicators_are_skipped():
    """Test responses without a usable indicator produce nothing"""
    items = generate_improvement_plan("E1", _responses({"GONE": 1, "B-2": 1}), _indicators(), [], today=TODAY)
    assert items == []


def test_responses_of_other_evaluations_are_ignored():
    items = generate_improvement_plan("E1", _responses({"A-1": 1}, "E9"), _indicators(), [], today=TODAY)
    assert items == []


def test_duplicate_responses_yield_one_item():
    """Test one item per indicator within a single run"""
    responses = _responses({"A-1": 1}) + _responses({"A-1": 2})
    items = generate_improvement_plan("E1", responses, _indicators(), [], today=TODAY)
    assert len(items) == 1


def test_custom_id_factory():
    ids = iter(["first", "second"])
    items = generate_improvement_plan(
        "E1", _responses({"A-1": 1, "A-2": 1}), _indicators(), [], today=TODAY, id_factory=lambda: next(ids)
    )
    assert [i.id for i in items] == ["first", "second"]


@pytest.mark.parametrize("start,months,expected", [
    (date(2026, 1, 15), 3, date(2026, 4, 15)),
    (date(2026, 11, 30), 3, date(2027, 2, 28)),
    (date(2027, 11, 30), 3, date(2028, 2, 29)),
    (date(2026, 1, 31), 3, date(2026, 4, 30)),
    (date(2026, 12, 1), 1, date(2027, 1, 1)),
])
def test_add_months(start, months, expected):
    """Test month arithmetic clamps to the end of the month"""
    assert add_months(start, months) == expected
