"""Improvement plan derivation from weak indicator scores"""

import calendar
from datetime import date
from typing import Callable, Iterable, List, Optional

from .constants import (
    IMPROVEMENT_THRESHOLD,
    HIGH_PRIORITY_THRESHOLD,
    IMPROVEMENT_DUE_MONTHS,
    IMPROVEMENT_ISSUE_PREFIX,
    IMPROVEMENT_ACTION,
    IMPROVEMENT_OWNER,
)
from .models import (
    ImprovementItem, ImprovementStatus, Indicator, Priority, Response, generate_id,
)


def add_months(start: date, months: int) -> date:
    """Shift a date by whole months, clamping to the last day of the target month"""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def priority_for(score: float) -> Priority:
    return Priority.HIGH if score < HIGH_PRIORITY_THRESHOLD else Priority.MEDIUM


def generate_improvement_plan(
    evaluation_id: str,
    responses: Iterable[Response],
    indicators: Iterable[Indicator],
    existing: Iterable[ImprovementItem],
    today: Optional[date] = None,
    id_factory: Callable[[], str] = generate_id,
) -> List[ImprovementItem]:
    """Derive new improvement items for one evaluation.

    Only items for indicators not yet covered by ``existing`` are returned, so
    calling this again with the previous output merged into ``existing`` yields
    nothing new. Items whose indicator later scores above the threshold are
    left alone. Responses pointing at unknown or inactive indicators are
    skipped.
    """
    today = today or date.today()
    due_date = add_months(today, IMPROVEMENT_DUE_MONTHS).isoformat()

    catalog = {ind.id: ind for ind in indicators if ind.active}
    covered = {
        item.indicator_id for item in existing
        if item.evaluation_id == evaluation_id
    }

    new_items = []
    for response in responses:
        if response.evaluation_id != evaluation_id:
            continue
        if response.score >= IMPROVEMENT_THRESHOLD:
            continue
        if response.indicator_id in covered:
            continue
        indicator = catalog.get(response.indicator_id)
        if indicator is None:
            continue

        new_items.append(ImprovementItem(
            id=id_factory(),
            evaluation_id=evaluation_id,
            indicator_id=indicator.id,
            priority=priority_for(response.score),
            issue_summary=f"{IMPROVEMENT_ISSUE_PREFIX}{indicator.text}",
            recommended_action=IMPROVEMENT_ACTION,
            owner=IMPROVEMENT_OWNER,
            due_date=due_date,
            status=ImprovementStatus.TODO,
        ))
        covered.add(indicator.id)

    return new_items
