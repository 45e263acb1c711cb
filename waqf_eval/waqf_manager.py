"""Waqf Manager - Core business logic"""

import logging
from datetime import date
from typing import Dict, List, Optional

from .constants import MIN_SCORE, MAX_SCORE, default_indicators, wilayats_for
from .dashboard import build_dashboard
from .exceptions import ValidationError
from .improvement import generate_improvement_plan
from .models import (
    ComplianceDraft, ComplianceRecord, Document, Evaluation, ImprovementItem,
    ImprovementStatus, Indicator, Institution, InstitutionDraft, Response,
    RiskDraft, RiskRegisterItem, RiskStatus, Settings, generate_id, now_iso,
)
from .reports import ReportData, build_report
from .scoring import RiskScore, calculate_risk_score
from .storage import RecordStore

logger = logging.getLogger(__name__)


def current_year() -> int:
    return date.today().year


class WaqfManager:
    """Manages evaluation, compliance and risk operations over a record store.

    Deleting a parent record never cascades: evaluations, responses,
    compliance records and risks of a deleted institution stay stored and are
    filtered out of derived views.
    """

    def __init__(self, store: Optional[RecordStore] = None):
        self.store = store if store is not None else RecordStore()

    # --- Institutions ---

    def list_institutions(self, search: str = "") -> List[Institution]:
        institutions = self.store.institutions.list()
        if search:
            institutions = [i for i in institutions if search in i.name]
        return institutions

    def get_institution(self, institution_id: str) -> Optional[Institution]:
        return self.store.institutions.get(institution_id)

    def save_institution(self, draft: InstitutionDraft) -> Institution:
        """Validate a form draft and store the resulting institution"""
        try:
            institution = draft.to_record()
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if not institution.name:
            raise ValidationError("Institution name is required")
        if institution.wilayat:
            if institution.wilayat not in wilayats_for(institution.governorate):
                raise ValidationError(
                    f"Wilayat {institution.wilayat!r} does not belong to governorate {institution.governorate!r}"
                )
        return self.store.institutions.upsert(institution)

    def delete_institution(self, institution_id: str) -> bool:
        deleted = self.store.institutions.delete(institution_id)
        if deleted:
            logger.info("Deleted institution %s", institution_id)
        return deleted

    def attach_document(self, institution_id: str, document: Document) -> Optional[Institution]:
        institution = self.get_institution(institution_id)
        if institution is None:
            return None
        institution.documents.append(document)
        return self.store.institutions.upsert(institution)

    def remove_document(self, institution_id: str, document_id: str) -> Optional[Institution]:
        institution = self.get_institution(institution_id)
        if institution is None:
            return None
        institution.documents = [d for d in institution.documents if d.id != document_id]
        return self.store.institutions.upsert(institution)

    # --- Indicators ---

    def get_indicators(self) -> List[Indicator]:
        """Current catalog, seeded with the defaults when empty"""
        indicators = self.store.indicators.list()
        if not indicators:
            indicators = default_indicators()
            self.store.indicators.replace_all(indicators)
        return indicators

    def active_indicators(self) -> List[Indicator]:
        return [ind for ind in self.get_indicators() if ind.active]

    def grouped_indicators(self) -> Dict[str, List[Indicator]]:
        """Indicators per axis, axes in catalog order"""
        grouped: Dict[str, List[Indicator]] = {}
        for indicator in self.get_indicators():
            grouped.setdefault(indicator.axis, []).append(indicator)
        return grouped

    def add_indicator(self, axis: str, text: str) -> Indicator:
        axis = (axis or "").strip()
        text = (text or "").strip()
        if not axis or not text:
            raise ValidationError("Both axis and indicator text are required")
        indicator = Indicator(id=f"IND-MANUAL-{generate_id()[:6]}", axis=axis, text=text)
        indicators = self.get_indicators()
        indicators.append(indicator)
        self.store.indicators.replace_all(indicators)
        return indicator

    def delete_indicator(self, indicator_id: str) -> bool:
        indicators = self.get_indicators()
        remaining = [ind for ind in indicators if ind.id != indicator_id]
        self.store.indicators.replace_all(remaining)
        return len(remaining) != len(indicators)

    def replace_indicators(self, indicators: List[Indicator]) -> List[Indicator]:
        """Swap the whole catalog; responses to old ids are left orphaned"""
        if not indicators:
            raise ValidationError("Refusing to replace the catalog with an empty list")
        self.store.indicators.replace_all(indicators)
        logger.info("Replaced indicator catalog with %d indicators", len(indicators))
        return indicators

    # --- Evaluations ---

    def find_evaluation(self, institution_id: str, year: int) -> Optional[Evaluation]:
        for evaluation in self.store.evaluations.list():
            if evaluation.institution_id == institution_id and evaluation.cycle_year == year:
                return evaluation
        return None

    def get_or_create_evaluation(self, institution_id: str, year: Optional[int] = None) -> Evaluation:
        """The evaluation for (institution, year), created as a draft on first visit"""
        year = year or current_year()
        evaluation = self.find_evaluation(institution_id, year)
        if evaluation is None:
            evaluation = Evaluation(id=generate_id(), institution_id=institution_id, cycle_year=year)
            self.store.evaluations.upsert(evaluation)
            logger.info("Created %s evaluation for institution %s", year, institution_id)
        return evaluation

    def latest_evaluation(self, institution_id: str) -> Optional[Evaluation]:
        evaluations = [e for e in self.store.evaluations.list() if e.institution_id == institution_id]
        if not evaluations:
            return None
        return max(evaluations, key=lambda e: (e.cycle_year, e.created_at))

    def list_evaluations(self, year: Optional[int] = None) -> List[Evaluation]:
        evaluations = self.store.evaluations.list()
        if year:
            evaluations = [e for e in evaluations if e.cycle_year == year]
        return evaluations

    def finalize_evaluation(self, evaluation_id: str) -> Optional[Evaluation]:
        evaluation = self.store.evaluations.get(evaluation_id)
        if evaluation is None:
            return None
        evaluation.finalize()
        return self.store.evaluations.upsert(evaluation)

    def attach_evaluation_document(self, evaluation_id: str, document: Document) -> Optional[Evaluation]:
        evaluation = self.store.evaluations.get(evaluation_id)
        if evaluation is None:
            return None
        evaluation.attachments.append(document)
        return self.store.evaluations.upsert(evaluation)

    def remove_evaluation_document(self, evaluation_id: str, document_id: str) -> Optional[Evaluation]:
        evaluation = self.store.evaluations.get(evaluation_id)
        if evaluation is None:
            return None
        evaluation.attachments = [d for d in evaluation.attachments if d.id != document_id]
        return self.store.evaluations.upsert(evaluation)

    # --- Responses ---

    def get_responses(self, evaluation_id: str) -> List[Response]:
        return [r for r in self.store.responses.list() if r.evaluation_id == evaluation_id]

    def save_response(self, evaluation_id: str, indicator_id: str, score: int,
                      evidence_text: str = "") -> Response:
        """Record a score, replacing any earlier score for the same indicator"""
        if isinstance(score, bool) or not isinstance(score, int) or not MIN_SCORE <= score <= MAX_SCORE:
            raise ValidationError(f"Score must be an integer between {MIN_SCORE} and {MAX_SCORE}")

        existing = None
        for response in self.get_responses(evaluation_id):
            if response.indicator_id == indicator_id:
                existing = response
                break

        response = Response(
            id=existing.id if existing else generate_id(),
            evaluation_id=evaluation_id,
            indicator_id=indicator_id,
            score=score,
            evidence_text=evidence_text or (existing.evidence_text if existing else ""),
            updated_at=now_iso(),
        )
        return self.store.responses.upsert(response)

    # --- Compliance ---

    def find_compliance(self, institution_id: str, year: int) -> Optional[ComplianceRecord]:
        for record in self.store.compliance.list():
            if record.institution_id == institution_id and record.cycle_year == year:
                return record
        return None

    def get_compliance(self, institution_id: str, year: Optional[int] = None) -> ComplianceDraft:
        """Editable compliance state: the stored record or a fresh default"""
        year = year or current_year()
        record = self.find_compliance(institution_id, year)
        if record is not None:
            return ComplianceDraft.from_record(record)
        return ComplianceDraft(institution_id=institution_id, cycle_year=year)

    def save_compliance(self, draft: ComplianceDraft) -> ComplianceRecord:
        if not draft.institution_id:
            raise ValidationError("An institution must be selected")
        if draft.id is None:
            # keep one record per (institution, year)
            existing = self.find_compliance(draft.institution_id, draft.cycle_year)
            if existing is not None:
                draft.id = existing.id
        try:
            record = draft.to_record()
        except ValueError as e:
            raise ValidationError(str(e)) from e
        return self.store.compliance.upsert(record)

    def compliance_risk(self, institution_id: str, year: Optional[int] = None) -> RiskScore:
        return calculate_risk_score(self.get_compliance(institution_id, year))

    def list_compliance(self, year: Optional[int] = None) -> List[ComplianceRecord]:
        records = self.store.compliance.list()
        if year:
            records = [r for r in records if r.cycle_year == year]
        return records

    # --- Risk register ---

    def list_risks(self, institution_id: Optional[str] = None) -> List[RiskRegisterItem]:
        risks = self.store.risks.list()
        if institution_id:
            risks = [r for r in risks if r.institution_id == institution_id]
        return risks

    def add_risk(self, draft: RiskDraft) -> RiskRegisterItem:
        try:
            risk = draft.to_record()
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if not risk.institution_id or not risk.risk_title:
            raise ValidationError("Risk title and institution are required")
        for name in ("probability", "impact"):
            value = getattr(risk, name)
            if not MIN_SCORE <= value <= MAX_SCORE:
                raise ValidationError(f"{name} must be between {MIN_SCORE} and {MAX_SCORE}")
        return self.store.risks.upsert(risk)

    def update_risk(self, risk: RiskRegisterItem) -> RiskRegisterItem:
        return self.store.risks.upsert(risk)

    def set_risk_status(self, risk_id: str, status: str) -> Optional[RiskRegisterItem]:
        """Move a register risk to Open, Mitigated or Closed"""
        risk = self.store.risks.get(risk_id)
        if risk is None:
            return None
        if status == RiskStatus.MITIGATED.value:
            risk.mark_mitigated()
        elif status == RiskStatus.CLOSED.value:
            risk.close()
        elif status == RiskStatus.OPEN.value:
            risk.reopen()
        else:
            raise ValidationError(f"Unknown risk status: {status!r}")
        logger.info("Risk %s is now %s", risk_id, risk.status.value)
        return self.update_risk(risk)

    def delete_risk(self, risk_id: str) -> bool:
        deleted = self.store.risks.delete(risk_id)
        if deleted:
            logger.info("Deleted risk %s", risk_id)
        return deleted

    # --- Improvement plan ---

    def get_improvements(self, evaluation_id: str) -> List[ImprovementItem]:
        return [i for i in self.store.improvements.list() if i.evaluation_id == evaluation_id]

    def generate_improvement_plan(self, evaluation_id: str, today: Optional[date] = None) -> List[ImprovementItem]:
        """Add items for newly weak indicators and return the whole plan"""
        new_items = generate_improvement_plan(
            evaluation_id,
            self.get_responses(evaluation_id),
            self.active_indicators(),
            self.get_improvements(evaluation_id),
            today=today,
        )
        if new_items:
            self.store.improvements.extend(new_items)
            logger.info("Added %d improvement items to evaluation %s", len(new_items), evaluation_id)
        return self.get_improvements(evaluation_id)

    def update_improvement(self, item_id: str, status: Optional[str] = None, owner: Optional[str] = None,
                           due_date: Optional[str] = None, notes: Optional[str] = None) -> Optional[ImprovementItem]:
        item = self.store.improvements.get(item_id)
        if item is None:
            return None
        if status is not None:
            try:
                item.status = ImprovementStatus(status)
            except ValueError as e:
                raise ValidationError(f"Unknown improvement status {status!r}") from e
        if owner is not None:
            item.owner = owner
        if due_date is not None:
            item.due_date = due_date
        if notes is not None:
            item.notes = notes
        return self.store.improvements.upsert(item)

    # --- Views ---

    def get_dashboard(self) -> dict:
        return build_dashboard(
            self.store.institutions.list(),
            self.store.evaluations.list(),
            self.store.responses.list(),
            self.store.risks.list(),
        )

    def get_report(self, institution_id: str, today: Optional[date] = None) -> Optional[ReportData]:
        """Report for the institution's most recent evaluation, refreshing its plan"""
        institution = self.get_institution(institution_id)
        evaluation = self.latest_evaluation(institution_id)
        if institution is None or evaluation is None:
            return None
        improvements = self.generate_improvement_plan(evaluation.id, today=today)
        return build_report(
            institution,
            evaluation,
            self.get_responses(evaluation.id),
            self.get_indicators(),
            improvements,
        )

    # --- Settings ---

    def get_settings(self) -> Settings:
        return self.store.get_settings()

    def save_settings(self, settings: Settings) -> Settings:
        return self.store.save_settings(settings)
