"""Core domain models for the Waqf evaluation system"""

import uuid
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Optional
from datetime import datetime


def generate_id() -> str:
    """Generate a random record identifier"""
    return uuid.uuid4().hex[:26]


def now_iso() -> str:
    return datetime.now().isoformat(timespec="milliseconds")


class InstitutionType(Enum):
    """Endowment institution types"""
    GENERAL = "وقفية عامة"
    PRIVATE = "وقفية خاصة"


class InstitutionStatus(Enum):
    """Operating status of an institution"""
    ACTIVE = "فاعلة"
    INACTIVE = "غير فاعلة"
    LIQUIDATING = "قيد التصفية"
    SUSPENDED = "متوقفة"
    OTHER = "أخرى"


class BoardStatus(Enum):
    """Board of directors status"""
    CURRENT = "قائم"
    EXPIRED = "منتهي"
    ABSENT = "غير موجود"


class EvaluationStatus(Enum):
    DRAFT = "draft"
    FINAL = "final"


class RiskCategory(Enum):
    """Risk register categories"""
    STRATEGIC = "Strategic"
    FINANCIAL = "Financial"
    OPERATIONAL = "Operational"
    LEGAL = "Legal"


class RiskStatus(Enum):
    OPEN = "Open"
    MITIGATED = "Mitigated"
    CLOSED = "Closed"


class Priority(Enum):
    """Improvement item priority"""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ImprovementStatus(Enum):
    TODO = "ToDo"
    DOING = "Doing"
    DONE = "Done"


def _enum(enum_cls, value, default):
    if isinstance(value, enum_cls):
        return value
    if value is None or value == "":
        return default
    return enum_cls(value)


@dataclass
class Document:
    """Metadata of an uploaded file; the content itself is not kept"""
    id: str
    name: str
    type: str
    size: str
    upload_date: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Document":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            type=data.get("type", ""),
            size=data.get("size", ""),
            upload_date=data.get("upload_date", ""),
        )


@dataclass
class Institution:
    """Represents an endowment institution"""
    id: str
    name: str
    type: InstitutionType = InstitutionType.GENERAL
    capital_omr: float = 0
    employees_omani: int = 0
    employees_non_omani: int = 0
    contact_phone: str = ""
    email: str = ""
    governorate: str = ""
    wilayat: str = ""
    establishment_date: str = ""
    license_number: str = ""
    manager_name: str = ""
    notes: str = ""
    documents: List[Document] = field(default_factory=list)
    created_at: str = field(default_factory=now_iso)

    @property
    def total_employees(self) -> int:
        return self.employees_omani + self.employees_non_omani

    def to_dict(self) -> dict:
        data = asdict(self)
        data["type"] = self.type.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Institution":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            type=_enum(InstitutionType, data.get("type"), InstitutionType.GENERAL),
            capital_omr=float(data.get("capital_omr") or 0),
            employees_omani=int(data.get("employees_omani") or 0),
            employees_non_omani=int(data.get("employees_non_omani") or 0),
            contact_phone=data.get("contact_phone", ""),
            email=data.get("email") or "",
            governorate=data.get("governorate") or "",
            wilayat=data.get("wilayat") or "",
            establishment_date=data.get("establishment_date") or "",
            license_number=data.get("license_number") or "",
            manager_name=data.get("manager_name") or "",
            notes=data.get("notes") or "",
            documents=[Document.from_dict(d) for d in data.get("documents") or []],
            created_at=data.get("created_at") or now_iso(),
        )


@dataclass
class Indicator:
    """A single weighted evaluation question belonging to an axis"""
    id: str
    axis: str
    text: str
    weight: float = 1
    active: bool = True

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Indicator":
        return cls(
            id=data["id"],
            axis=data.get("axis", ""),
            text=data.get("text", ""),
            weight=data.get("weight", 1),
            active=data.get("active", True),
        )


@dataclass
class Evaluation:
    """An evaluation of one institution for one cycle year"""
    id: str
    institution_id: str
    cycle_year: int
    cycle_date: str = field(default_factory=now_iso)
    evaluator_name: str = ""
    status: EvaluationStatus = EvaluationStatus.DRAFT
    attachments: List[Document] = field(default_factory=list)
    created_at: str = field(default_factory=now_iso)

    def finalize(self):
        """Mark the evaluation as final"""
        self.status = EvaluationStatus.FINAL

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Evaluation":
        return cls(
            id=data["id"],
            institution_id=data.get("institution_id", ""),
            cycle_year=int(data.get("cycle_year") or 0),
            cycle_date=data.get("cycle_date") or "",
            evaluator_name=data.get("evaluator_name") or "",
            status=_enum(EvaluationStatus, data.get("status"), EvaluationStatus.DRAFT),
            attachments=[Document.from_dict(d) for d in data.get("attachments") or []],
            created_at=data.get("created_at") or "",
        )


@dataclass
class Response:
    """Score given to one indicator within one evaluation"""
    id: str
    evaluation_id: str
    indicator_id: str
    score: int
    evidence_text: str = ""
    updated_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Response":
        return cls(
            id=data["id"],
            evaluation_id=data.get("evaluation_id", ""),
            indicator_id=data.get("indicator_id", ""),
            score=int(data.get("score") or 0),
            evidence_text=data.get("evidence_text") or "",
            updated_at=data.get("updated_at") or "",
        )


@dataclass
class CustomRequirement:
    id: str
    text: str
    met: bool = False

    def toggle(self):
        self.met = not self.met


@dataclass
class ComplianceRecord:
    """Regulatory compliance snapshot of an institution for a cycle year"""
    id: str
    institution_id: str
    cycle_year: int
    institution_status: InstitutionStatus = InstitutionStatus.ACTIVE
    board_status: BoardStatus = BoardStatus.CURRENT
    board_end_date: str = ""
    has_executive_management: bool = False
    has_auditor_company: bool = False
    has_minutes_prev_year: bool = False
    has_financial_report_prev_year: bool = False
    custom_requirements: List[CustomRequirement] = field(default_factory=list)
    followup_actions: str = ""
    notes: str = ""
    last_updated_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["institution_status"] = self.institution_status.value
        data["board_status"] = self.board_status.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ComplianceRecord":
        return cls(
            id=data["id"],
            institution_id=data.get("institution_id", ""),
            cycle_year=int(data.get("cycle_year") or 0),
            institution_status=_enum(InstitutionStatus, data.get("institution_status"), InstitutionStatus.ACTIVE),
            board_status=_enum(BoardStatus, data.get("board_status"), BoardStatus.CURRENT),
            board_end_date=data.get("board_end_date") or "",
            has_executive_management=bool(data.get("has_executive_management")),
            has_auditor_company=bool(data.get("has_auditor_company")),
            has_minutes_prev_year=bool(data.get("has_minutes_prev_year")),
            has_financial_report_prev_year=bool(data.get("has_financial_report_prev_year")),
            custom_requirements=[
                CustomRequirement(id=r["id"], text=r.get("text", ""), met=bool(r.get("met")))
                for r in data.get("custom_requirements") or []
            ],
            followup_actions=data.get("followup_actions") or "",
            notes=data.get("notes") or "",
            last_updated_at=data.get("last_updated_at") or "",
        )


@dataclass
class RiskRegisterItem:
    """Represents an identified institutional risk"""
    id: str
    institution_id: str
    risk_title: str
    category: RiskCategory = RiskCategory.OPERATIONAL
    probability: int = 1
    impact: int = 1
    mitigation_plan: str = ""
    status: RiskStatus = RiskStatus.OPEN

    @property
    def severity(self) -> int:
        return self.probability * self.impact

    def mark_mitigated(self):
        self.status = RiskStatus.MITIGATED

    def close(self):
        self.status = RiskStatus.CLOSED

    def reopen(self):
        self.status = RiskStatus.OPEN

    def to_dict(self) -> dict:
        data = asdict(self)
        data["category"] = self.category.value
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "RiskRegisterItem":
        return cls(
            id=data["id"],
            institution_id=data.get("institution_id", ""),
            risk_title=data.get("risk_title", ""),
            category=_enum(RiskCategory, data.get("category"), RiskCategory.OPERATIONAL),
            probability=int(data.get("probability") or 1),
            impact=int(data.get("impact") or 1),
            mitigation_plan=data.get("mitigation_plan") or "",
            status=_enum(RiskStatus, data.get("status"), RiskStatus.OPEN),
        )


@dataclass
class ImprovementItem:
    """A remediation task derived from a low indicator score"""
    id: str
    evaluation_id: str
    indicator_id: str
    priority: Priority
    issue_summary: str
    recommended_action: str
    owner: str
    due_date: str
    status: ImprovementStatus = ImprovementStatus.TODO
    notes: str = ""

    def to_dict(self) -> dict:
        data = asdict(self)
        data["priority"] = self.priority.value
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ImprovementItem":
        return cls(
            id=data["id"],
            evaluation_id=data.get("evaluation_id", ""),
            indicator_id=data.get("indicator_id", ""),
            priority=_enum(Priority, data.get("priority"), Priority.MEDIUM),
            issue_summary=data.get("issue_summary", ""),
            recommended_action=data.get("recommended_action", ""),
            owner=data.get("owner", ""),
            due_date=data.get("due_date", ""),
            status=_enum(ImprovementStatus, data.get("status"), ImprovementStatus.TODO),
            notes=data.get("notes") or "",
        )


@dataclass
class Settings:
    """Singleton application settings"""
    org_name: str = "وزارة الأوقاف والشؤون الدينية"
    manager_name: str = "د. عبدالرحمن النوفلي"
    dark_mode: bool = False

    @property
    def theme(self) -> str:
        return "dark" if self.dark_mode else "light"

    def to_dict(self) -> dict:
        # stored with camelCase keys under waqf_settings
        return {
            "orgName": self.org_name,
            "managerName": self.manager_name,
            "darkMode": self.dark_mode,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        defaults = cls()
        return cls(
            org_name=data.get("orgName", defaults.org_name),
            manager_name=data.get("managerName", defaults.manager_name),
            dark_mode=bool(data.get("darkMode", defaults.dark_mode)),
        )


# ---------------------------------------------------------------------------
# Form drafts: partial records merged into complete ones at save time
# ---------------------------------------------------------------------------

@dataclass
class InstitutionDraft:
    id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    capital_omr: Optional[float] = None
    employees_omani: Optional[int] = None
    employees_non_omani: Optional[int] = None
    contact_phone: Optional[str] = None
    email: Optional[str] = None
    governorate: Optional[str] = None
    wilayat: Optional[str] = None
    establishment_date: Optional[str] = None
    license_number: Optional[str] = None
    manager_name: Optional[str] = None
    notes: Optional[str] = None
    documents: Optional[List[Document]] = None
    created_at: Optional[str] = None

    @classmethod
    def from_form(cls, data: dict) -> "InstitutionDraft":
        known = {f for f in cls.__dataclass_fields__}
        values = {k: v for k, v in data.items() if k in known}
        if values.get("documents") is not None:
            values["documents"] = [
                d if isinstance(d, Document) else Document.from_dict(d)
                for d in values["documents"]
            ]
        return cls(**values)

    def to_record(self) -> Institution:
        """Merge the draft into a complete institution record"""
        return Institution(
            id=self.id or generate_id(),
            name=(self.name or "").strip(),
            type=_enum(InstitutionType, self.type, InstitutionType.GENERAL),
            capital_omr=_number(self.capital_omr, float),
            employees_omani=_number(self.employees_omani, int),
            employees_non_omani=_number(self.employees_non_omani, int),
            contact_phone=self.contact_phone or "",
            email=self.email or "",
            governorate=self.governorate or "",
            wilayat=self.wilayat or "",
            establishment_date=self.establishment_date or "",
            license_number=self.license_number or "",
            manager_name=self.manager_name or "",
            notes=self.notes or "",
            documents=list(self.documents or []),
            created_at=self.created_at or now_iso(),
        )


@dataclass
class ComplianceDraft:
    institution_id: str
    cycle_year: int
    id: Optional[str] = None
    institution_status: Optional[str] = InstitutionStatus.ACTIVE.value
    board_status: Optional[str] = BoardStatus.CURRENT.value
    board_end_date: str = ""
    has_executive_management: bool = False
    has_auditor_company: bool = False
    has_minutes_prev_year: bool = False
    has_financial_report_prev_year: bool = False
    custom_requirements: List[CustomRequirement] = field(default_factory=list)
    followup_actions: str = ""
    notes: str = ""

    @classmethod
    def from_record(cls, record: ComplianceRecord) -> "ComplianceDraft":
        return cls(
            id=record.id,
            institution_id=record.institution_id,
            cycle_year=record.cycle_year,
            institution_status=record.institution_status.value,
            board_status=record.board_status.value,
            board_end_date=record.board_end_date,
            has_executive_management=record.has_executive_management,
            has_auditor_company=record.has_auditor_company,
            has_minutes_prev_year=record.has_minutes_prev_year,
            has_financial_report_prev_year=record.has_financial_report_prev_year,
            custom_requirements=[CustomRequirement(r.id, r.text, r.met) for r in record.custom_requirements],
            followup_actions=record.followup_actions,
            notes=record.notes,
        )

    def add_requirement(self, text: str) -> Optional[CustomRequirement]:
        """Append an unmet custom requirement; blank text is ignored"""
        if not text or not text.strip():
            return None
        requirement = CustomRequirement(id=generate_id(), text=text.strip())
        self.custom_requirements.append(requirement)
        return requirement

    def toggle_requirement(self, requirement_id: str):
        for requirement in self.custom_requirements:
            if requirement.id == requirement_id:
                requirement.toggle()

    def remove_requirement(self, requirement_id: str):
        self.custom_requirements = [r for r in self.custom_requirements if r.id != requirement_id]

    def to_record(self) -> ComplianceRecord:
        return ComplianceRecord(
            id=self.id or generate_id(),
            institution_id=self.institution_id,
            cycle_year=self.cycle_year,
            institution_status=_enum(InstitutionStatus, self.institution_status, InstitutionStatus.ACTIVE),
            board_status=_enum(BoardStatus, self.board_status, BoardStatus.CURRENT),
            board_end_date=self.board_end_date or "",
            has_executive_management=bool(self.has_executive_management),
            has_auditor_company=bool(self.has_auditor_company),
            has_minutes_prev_year=bool(self.has_minutes_prev_year),
            has_financial_report_prev_year=bool(self.has_financial_report_prev_year),
            custom_requirements=list(self.custom_requirements),
            followup_actions=self.followup_actions or "",
            notes=self.notes or "",
            last_updated_at=now_iso(),
        )


@dataclass
class RiskDraft:
    institution_id: str
    risk_title: Optional[str] = None
    category: Optional[str] = None
    probability: Optional[int] = None
    impact: Optional[int] = None
    mitigation_plan: Optional[str] = None

    def to_record(self) -> RiskRegisterItem:
        """New risks always start open"""
        return RiskRegisterItem(
            id=generate_id(),
            institution_id=self.institution_id,
            risk_title=(self.risk_title or "").strip(),
            category=_enum(RiskCategory, self.category, RiskCategory.OPERATIONAL),
            probability=_number(self.probability, int) or 1,
            impact=_number(self.impact, int) or 1,
            mitigation_plan=self.mitigation_plan or "",
            status=RiskStatus.OPEN,
        )


def _number(value, cast):
    """Coerce form input to a number, treating blanks and junk as zero"""
    if value is None or value == "":
        return cast(0)
    try:
        return cast(float(value))
    except (TypeError, ValueError):
        return cast(0)
