"""Console summary for the Waqf evaluation store"""

import argparse
import sys

from waqf_eval import __version__, __application__, __description__
from waqf_eval.config import Config
from waqf_eval.models import InstitutionDraft, ComplianceDraft, RiskDraft
from waqf_eval.scoring import classify_risk
from waqf_eval.storage import RecordStore, MemoryBackend, SqliteBackend
from waqf_eval.waqf_manager import WaqfManager


def load_sample_data(waqf: WaqfManager):
    """Populate an empty store with one scored institution"""
    inst = waqf.save_institution(InstitutionDraft(
        name="مؤسسة الخير الوقفية",
        type="وقفية عامة",
        capital_omr=250000,
        employees_omani=12,
        employees_non_omani=3,
        governorate="مسقط",
        wilayat="السيب",
    ))

    evaluation = waqf.get_or_create_evaluation(inst.id)
    for idx, indicator in enumerate(waqf.get_indicators()):
        waqf.save_response(evaluation.id, indicator.id, idx % 5 + 1)

    waqf.save_compliance(ComplianceDraft(
        institution_id=inst.id,
        cycle_year=evaluation.cycle_year,
        board_status="منتهي",
        has_executive_management=True,
        has_auditor_company=True,
    ))

    waqf.add_risk(RiskDraft(institution_id=inst.id, risk_title="تركز الاستثمار في العقار",
                            category="Financial", probability=4, impact=4))
    waqf.add_risk(RiskDraft(institution_id=inst.id, risk_title="تأخر القوائم المالية",
                            category="Legal", probability=2, impact=3))


def main(argv=None):
    """Main application entry point"""
    parser = argparse.ArgumentParser(description=__description__)
    parser.add_argument("--db", help="SQLite database to summarize (defaults to WAQF_DB_PATH)")
    parser.add_argument("--sample", action="store_true", help="use an in-memory store with sample data")
    args = parser.parse_args(argv)

    print("=" * 60)
    print(f"{__application__} v{__version__}")
    print(f"{__description__}")
    print("=" * 60)
    print()

    if args.sample:
        waqf = WaqfManager(RecordStore(MemoryBackend()))
        load_sample_data(waqf)
    else:
        waqf = WaqfManager(RecordStore(SqliteBackend(args.db or Config().DB_PATH)))

    dashboard = waqf.get_dashboard()
    print("📊 Dashboard")
    print("-" * 60)
    print(f"  - Institutions: {dashboard['institution_count']}")
    print(f"  - Total capital (OMR): {dashboard['total_capital']:,.0f}")
    print(f"  - Average score: {dashboard['average_score']} ({dashboard['maturity']})")

    print(f"\n🏛️ Institutions:")
    for inst in waqf.list_institutions():
        risk = waqf.compliance_risk(inst.id)
        print(f"  - {inst.name} - compliance risk {risk.score} ({risk.label})")
        for item in waqf.list_risks(inst.id):
            assessment = classify_risk(item.probability, item.impact)
            print(f"      * {item.risk_title}: {assessment.severity} {assessment.level.value}")

    matrix = dashboard["risk_matrix"]
    print(f"\n🔴 Risk register ({matrix['total']} total):")
    print(f"  - High: {matrix['high']}")
    print(f"  - Medium: {matrix['medium']}")
    print(f"  - Low: {matrix['low']}")

    print("\n" + "=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
