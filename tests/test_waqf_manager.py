"""Test suite for Waqf Manager"""

import pytest
from datetime import date
from waqf_eval.constants import default_indicators
from waqf_eval.exceptions import ValidationError
from waqf_eval.models import (
    InstitutionDraft, ComplianceDraft, RiskDraft, Indicator, Priority,
    ImprovementStatus, RiskRegisterItem, RiskStatus, Settings,
)
from waqf_eval.scoring import RiskLevel


def _institution(waqf, name="Test Waqf", **kwargs):
    return waqf.save_institution(InstitutionDraft(name=name, **kwargs))


def test_waqf_manager_initialization(waqf):
    """Test Waqf Manager initialization"""
    assert waqf.list_institutions() == []
    assert waqf.list_risks() == []
    assert waqf.list_evaluations() == []


def test_add_and_get_institution(waqf):
    """Test adding and retrieving an institution"""
    inst = _institution(waqf, governorate="مسقط", wilayat="السيب")

    retrieved = waqf.get_institution(inst.id)
    assert retrieved is not None
    assert retrieved.name == "Test Waqf"
    assert retrieved.wilayat == "السيب"


def test_institution_requires_name(waqf):
    """Test institutions cannot be saved without a name"""
    with pytest.raises(ValidationError):
        waqf.save_institution(InstitutionDraft(name="  "))


def test_wilayat_must_match_governorate(waqf):
    """Test wilayat is constrained by the governorate lookup"""
    with pytest.raises(ValidationError):
        _institution(waqf, governorate="ظفار", wilayat="السيب")


def test_edit_institution_replaces_in_place(waqf):
    """Test saving an existing id updates rather than appends"""
    inst = _institution(waqf)
    waqf.save_institution(InstitutionDraft(id=inst.id, name="Renamed"))

    assert len(waqf.list_institutions()) == 1
    assert waqf.get_institution(inst.id).name == "Renamed"


def test_search_institutions(waqf):
    """Test filtering institutions by name"""
    _institution(waqf, name="وقف النور")
    _institution(waqf, name="وقف الأمل")

    assert [i.name for i in waqf.list_institutions("النور")] == ["وقف النور"]


def test_delete_institution_keeps_orphans(waqf):
    """Test deleting an institution leaves its dependent records in place"""
    inst = _institution(waqf)
    ev = waqf.get_or_create_evaluation(inst.id, 2026)
    waqf.save_response(ev.id, "SH-01", 2)
    waqf.save_compliance(ComplianceDraft(institution_id=inst.id, cycle_year=2026))
    waqf.add_risk(RiskDraft(institution_id=inst.id, risk_title="Fraud"))

    assert waqf.delete_institution(inst.id) is True
    assert waqf.get_institution(inst.id) is None
    assert len(waqf.list_evaluations()) == 1
    assert len(waqf.get_responses(ev.id)) == 1
    assert len(waqf.list_compliance()) == 1
    assert len(waqf.list_risks(inst.id)) == 1


def test_indicators_seeded_from_defaults(waqf, store):
    """Test the catalog is seeded on first read"""
    indicators = waqf.get_indicators()

    assert len(indicators) == len(default_indicators())
    assert len(store.indicators) == len(indicators)
    assert list(waqf.grouped_indicators())[0] == "الشرعي"


def test_add_and_delete_indicator(waqf):
    """Test manual catalog edits"""
    before = len(waqf.get_indicators())
    indicator = waqf.add_indicator("الحوكمة", "هل توجد لجنة مراجعة؟")

    assert indicator.id.startswith("IND-MANUAL-")
    assert len(waqf.get_indicators()) == before + 1
    assert waqf.delete_indicator(indicator.id) is True
    assert len(waqf.get_indicators()) == before


def test_add_indicator_requires_fields(waqf):
    """Test indicators need both axis and text"""
    with pytest.raises(ValidationError):
        waqf.add_indicator("", "text")


def test_replace_indicators(waqf):
    """Test replacing the whole catalog"""
    waqf.replace_indicators([Indicator(id="IND-1", axis="عام", text="Q1")])

    assert [i.id for i in waqf.get_indicators()] == ["IND-1"]
    with pytest.raises(ValidationError):
        waqf.replace_indicators([])


def test_evaluation_created_once_per_year(waqf):
    """Test lazy creation of one evaluation per institution and year"""
    inst = _institution(waqf)
    first = waqf.get_or_create_evaluation(inst.id, 2026)
    again = waqf.get_or_create_evaluation(inst.id, 2026)
    other_year = waqf.get_or_create_evaluation(inst.id, 2025)

    assert first.id == again.id
    assert other_year.id != first.id
    assert len(waqf.list_evaluations()) == 2
    assert len(waqf.list_evaluations(2026)) == 1
    assert waqf.latest_evaluation(inst.id).cycle_year == 2026


def test_save_response_upserts_per_indicator(waqf):
    """Test a second score for the same indicator replaces the first"""
    ev = waqf.get_or_create_evaluation("I001", 2026)
    first = waqf.save_response(ev.id, "SH-01", 2)
    second = waqf.save_response(ev.id, "SH-01", 4)

    responses = waqf.get_responses(ev.id)
    assert len(responses) == 1
    assert second.id == first.id
    assert responses[0].score == 4


@pytest.mark.parametrize("score", [0, 6, 2.5, "3", True])
def test_save_response_validates_score(waqf, score):
    """Test scores must be integers from 1 to 5"""
    with pytest.raises(ValidationError):
        waqf.save_response("E001", "SH-01", score)


def test_evaluation_attachments(waqf):
    """Test attaching and removing evaluation evidence"""
    from waqf_eval.importers import document_metadata

    ev = waqf.get_or_create_evaluation("I001", 2026)
    doc = document_metadata("evidence.pdf", "application/pdf", 2048)
    waqf.attach_evaluation_document(ev.id, doc)
    assert waqf.store.evaluations.get(ev.id).attachments[0].name == "evidence.pdf"

    waqf.remove_evaluation_document(ev.id, doc.id)
    assert waqf.store.evaluations.get(ev.id).attachments == []
    assert waqf.attach_evaluation_document("missing", doc) is None


def test_compliance_default_and_save(waqf):
    """Test compliance starts from defaults and stays one per year"""
    draft = waqf.get_compliance("I001", 2026)
    assert draft.id is None
    assert draft.board_status == "قائم"

    draft.has_executive_management = True
    record = waqf.save_compliance(draft)

    again = waqf.save_compliance(ComplianceDraft(institution_id="I001", cycle_year=2026))
    assert again.id == record.id
    assert len(waqf.list_compliance(2026)) == 1


def test_compliance_risk(waqf):
    """Test the compliance-derived risk for a stored record"""
    waqf.save_compliance(ComplianceDraft(
        institution_id="I001", cycle_year=2026,
        has_executive_management=True, has_auditor_company=True,
        has_minutes_prev_year=True, has_financial_report_prev_year=True,
    ))

    risk = waqf.compliance_risk("I001", 2026)
    assert risk.score == 0
    assert risk.level == RiskLevel.LOW


def test_add_and_delete_risk(waqf):
    """Test the risk register"""
    risk = waqf.add_risk(RiskDraft(institution_id="I001", risk_title="Fraud", probability="4", impact=5))

    assert risk.severity == 20
    assert [r.id for r in waqf.list_risks("I001")] == [risk.id]
    assert waqf.list_risks("I002") == []
    assert waqf.delete_risk(risk.id) is True
    assert waqf.delete_risk(risk.id) is False


def test_add_risk_validation(waqf):
    """Test risk title and ranges are enforced"""
    with pytest.raises(ValidationError):
        waqf.add_risk(RiskDraft(institution_id="I001", risk_title=""))
    with pytest.raises(ValidationError):
        waqf.add_risk(RiskDraft(institution_id="I001", risk_title="x", probability=9))
    with pytest.raises(ValidationError):
        waqf.add_risk(RiskDraft(institution_id="I001", risk_title="x", category="Weather"))


def test_set_risk_status(waqf):
    """Test moving a register risk through its statuses"""
    risk = waqf.add_risk(RiskDraft(institution_id="I001", risk_title="Fraud"))

    assert waqf.set_risk_status(risk.id, "Mitigated").status == RiskStatus.MITIGATED
    assert waqf.set_risk_status(risk.id, "Closed").status == RiskStatus.CLOSED
    assert waqf.list_risks("I001")[0].status == RiskStatus.CLOSED
    assert waqf.set_risk_status(risk.id, "Open").status == RiskStatus.OPEN

    with pytest.raises(ValidationError):
        waqf.set_risk_status(risk.id, "Forgotten")
    assert waqf.set_risk_status("missing", "Closed") is None


def test_dashboard_tolerates_out_of_range_risk(waqf, store):
    """Test a stored risk outside 1..5 does not break the dashboard"""
    store.risks.upsert(RiskRegisterItem(id="R9", institution_id="I001", risk_title="x", probability=9, impact=2))
    waqf.add_risk(RiskDraft(institution_id="I001", risk_title="Fraud", probability=5, impact=4))

    assert waqf.get_dashboard()["risk_matrix"] == {"high": 1, "medium": 0, "low": 0, "total": 1}


def test_generate_improvement_plan_persists_once(waqf):
    """Test plan generation stores new items only once"""
    ev = waqf.get_or_create_evaluation("I001", 2026)
    waqf.save_response(ev.id, "SH-01", 1)
    waqf.save_response(ev.id, "SH-02", 3)
    waqf.save_response(ev.id, "SH-03", 5)

    plan = waqf.generate_improvement_plan(ev.id, today=date(2026, 1, 15))
    assert len(plan) == 2
    assert {i.priority for i in plan} == {Priority.HIGH, Priority.MEDIUM}
    assert plan[0].due_date == "2026-04-15"

    assert len(waqf.generate_improvement_plan(ev.id)) == 2


def test_improvement_items_survive_rescoring(waqf):
    """Test raising a score does not remove the existing item"""
    ev = waqf.get_or_create_evaluation("I001", 2026)
    waqf.save_response(ev.id, "SH-01", 1)
    waqf.generate_improvement_plan(ev.id)

    waqf.save_response(ev.id, "SH-01", 5)
    assert len(waqf.generate_improvement_plan(ev.id)) == 1


def test_update_improvement(waqf):
    """Test updating an improvement item's status"""
    ev = waqf.get_or_create_evaluation("I001", 2026)
    waqf.save_response(ev.id, "SH-01", 1)
    item = waqf.generate_improvement_plan(ev.id)[0]

    updated = waqf.update_improvement(item.id, status="Doing", notes="started")
    assert updated.status == ImprovementStatus.DOING
    assert waqf.get_improvements(ev.id)[0].notes == "started"
    with pytest.raises(ValidationError):
        waqf.update_improvement(item.id, status="Later")
    assert waqf.update_improvement("missing", status="Done") is None


def test_report_uses_latest_evaluation(waqf):
    """Test report generation for an institution"""
    inst = _institution(waqf)
    old = waqf.get_or_create_evaluation(inst.id, 2025)
    waqf.save_response(old.id, "SH-01", 5)
    ev = waqf.get_or_create_evaluation(inst.id, 2026)
    waqf.save_response(ev.id, "SH-01", 2)
    waqf.save_response(ev.id, "SH-02", 4)

    report = waqf.get_report(inst.id)
    assert report.evaluation.id == ev.id
    assert report.axis_scores[0].average == 3.0
    assert report.improvement_stats == {"High": 1}


def test_report_missing(waqf):
    """Test no report without an evaluation"""
    inst = _institution(waqf)
    assert waqf.get_report(inst.id) is None
    assert waqf.get_report("missing") is None


def test_settings_passthrough(waqf):
    """Test settings are saved through the manager"""
    waqf.save_settings(Settings(org_name="Org", dark_mode=True))

    assert waqf.get_settings().org_name == "Org"
    assert waqf.get_settings().dark_mode is True
