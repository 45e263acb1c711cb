"""Dashboard aggregates over the stored collections.

All functions are pure; records with dangling references are skipped rather
than reported.
"""

from typing import Dict, List

from .constants import GOVERNORATES, MATURITY_LEVELS
from .models import Evaluation, Institution, InstitutionType, Response, RiskRegisterItem
from .scoring import partition_risks

SMALL_CAPITAL = 100_000
LARGE_CAPITAL = 1_000_000


def type_breakdown(institutions: List[Institution]) -> Dict[str, int]:
    return {
        "general": sum(1 for i in institutions if i.type == InstitutionType.GENERAL),
        "private": sum(1 for i in institutions if i.type == InstitutionType.PRIVATE),
    }


def total_capital(institutions: List[Institution]) -> float:
    return sum(i.capital_omr or 0 for i in institutions)


def capital_classes(institutions: List[Institution]) -> List[dict]:
    """Institutions per capital size class, empty classes omitted"""
    small = medium = large = 0
    for inst in institutions:
        if inst.capital_omr < SMALL_CAPITAL:
            small += 1
        elif inst.capital_omr < LARGE_CAPITAL:
            medium += 1
        else:
            large += 1
    classes = [
        {"name": "small", "value": small},
        {"name": "medium", "value": medium},
        {"name": "large", "value": large},
    ]
    return [c for c in classes if c["value"] > 0]


def employee_breakdown(institutions: List[Institution]) -> Dict[str, int]:
    return {
        "omani": sum(i.employees_omani or 0 for i in institutions),
        "non_omani": sum(i.employees_non_omani or 0 for i in institutions),
    }


def governorate_distribution(institutions: List[Institution]) -> List[dict]:
    """Institution count per known governorate, largest first"""
    counts = {gov: 0 for gov in GOVERNORATES}
    for inst in institutions:
        if inst.governorate in counts:
            counts[inst.governorate] += 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{"name": gov, "value": count} for gov, count in ranked if count > 0]


def top_institutions(institutions: List[Institution], evaluations: List[Evaluation],
                     responses: List[Response], limit: int = 5) -> List[dict]:
    """Institutions ranked by their average response score"""
    names = {i.id: i.name for i in institutions}
    eval_owner = {e.id: e.institution_id for e in evaluations}

    totals: Dict[str, List[float]] = {}
    for response in responses:
        inst_id = eval_owner.get(response.evaluation_id)
        if inst_id is None:
            continue
        bucket = totals.setdefault(inst_id, [0, 0])
        bucket[0] += response.score
        bucket[1] += 1

    ranked = [
        {
            "institution_id": inst_id,
            "name": names.get(inst_id, "Unknown"),
            "score": round(total / count, 2),
        }
        for inst_id, (total, count) in totals.items()
    ]
    ranked.sort(key=lambda row: row["score"], reverse=True)
    return ranked[:limit]


def average_score(responses: List[Response]) -> float:
    if not responses:
        return 0
    return round(sum(r.score for r in responses) / len(responses), 1)


def maturity_level(score: float) -> dict:
    """Maturity band for an average score"""
    for level in MATURITY_LEVELS:
        if score >= level["min"]:
            return level
    return MATURITY_LEVELS[-1]


def build_dashboard(institutions: List[Institution], evaluations: List[Evaluation],
                    responses: List[Response], risks: List[RiskRegisterItem]) -> dict:
    avg = average_score(responses)
    return {
        "institution_count": len(institutions),
        "types": type_breakdown(institutions),
        "total_capital": total_capital(institutions),
        "capital_classes": capital_classes(institutions),
        "employees": employee_breakdown(institutions),
        "governorates": governorate_distribution(institutions),
        "top_institutions": top_institutions(institutions, evaluations, responses),
        "average_score": avg,
        "maturity": maturity_level(avg)["label"],
        "risk_matrix": partition_risks(risks),
    }
