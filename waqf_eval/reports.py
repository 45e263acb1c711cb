"""Institution report data and PDF export"""

import glob
import html
import io
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import arabic_reshaper
from bidi.algorithm import get_display
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .dashboard import maturity_level
from .models import (
    Evaluation, ImprovementItem, Indicator, Institution, Priority, Response, Settings,
)

logger = logging.getLogger(__name__)

FONT_NAME = 'ArabicFont'

FONT_PATHS = [
    '/usr/share/fonts/truetype/noto/NotoSansArabic-Regular.ttf',
    '/usr/share/fonts/opentype/noto/NotoSansArabic-Regular.ttf',
    '/usr/share/fonts/truetype/noto/NotoNaskhArabic-Regular.ttf',
    '/usr/share/fonts/truetype/freefont/FreeSans.ttf',
    '/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf',
    '/usr/share/fonts/TTF/DejaVuSans.ttf',
    'static/fonts/Amiri-Regular.ttf',
]

PRIORITY_COLORS = {
    Priority.HIGH: '#ef4444',
    Priority.MEDIUM: '#f59e0b',
    Priority.LOW: '#10b981',
}


@dataclass
class AxisScore:
    index: int
    axis: str
    average: float
    count: int

    @property
    def subject(self) -> str:
        return f"{self.index}. {self.axis}"

    def to_dict(self) -> dict:
        return {"subject": self.subject, "axis": self.axis, "A": self.average, "count": self.count, "fullMark": 5}


@dataclass
class ReportData:
    institution: Institution
    evaluation: Evaluation
    axis_scores: List[AxisScore]
    improvements: List[ImprovementItem]
    improvement_stats: Dict[str, int] = field(default_factory=dict)

    @property
    def overall_average(self) -> float:
        scored = [a for a in self.axis_scores if a.count]
        if not scored:
            return 0
        total = sum(a.average * a.count for a in scored)
        return round(total / sum(a.count for a in scored), 2)

    def to_dict(self) -> dict:
        return {
            "institution": self.institution.to_dict(),
            "evaluation": self.evaluation.to_dict(),
            "radar": [a.to_dict() for a in self.axis_scores],
            "overall_average": self.overall_average,
            "maturity": maturity_level(self.overall_average)["label"],
            "improvements": [i.to_dict() for i in self.improvements],
            "improvement_stats": self.improvement_stats,
        }


def axis_scores(responses: List[Response], indicators: List[Indicator]) -> List[AxisScore]:
    """Average score per axis, axes in catalog order.

    Responses whose indicator is no longer in the catalog are ignored.
    """
    by_id = {ind.id: ind for ind in indicators}
    totals: Dict[str, List[float]] = {}
    for indicator in indicators:
        totals.setdefault(indicator.axis, [0, 0])

    for response in responses:
        indicator = by_id.get(response.indicator_id)
        if indicator is None:
            continue
        bucket = totals[indicator.axis]
        bucket[0] += response.score
        bucket[1] += 1

    return [
        AxisScore(
            index=idx,
            axis=axis,
            average=round(total / count, 2) if count else 0,
            count=count,
        )
        for idx, (axis, (total, count)) in enumerate(totals.items(), start=1)
    ]


def improvement_stats(improvements: List[ImprovementItem]) -> Dict[str, int]:
    """Improvement items per priority, empty priorities omitted"""
    stats = {}
    for priority in Priority:
        count = sum(1 for item in improvements if item.priority == priority)
        if count:
            stats[priority.value] = count
    return stats


def build_report(institution: Institution, evaluation: Evaluation, responses: List[Response],
                 indicators: List[Indicator], improvements: List[ImprovementItem]) -> ReportData:
    return ReportData(
        institution=institution,
        evaluation=evaluation,
        axis_scores=axis_scores(responses, indicators),
        improvements=improvements,
        improvement_stats=improvement_stats(improvements),
    )


# ============================================================================
# PDF EXPORT
# ============================================================================

def register_arabic_font(font_path: Optional[str] = None) -> Optional[str]:
    """Register the first usable Arabic-capable TTF and return its font name"""
    if FONT_NAME in pdfmetrics.getRegisteredFontNames():
        return FONT_NAME

    candidates = [font_path] if font_path else []
    candidates += glob.glob('/usr/share/fonts/**/[Nn]oto*[Aa]rabic*.ttf', recursive=True)
    candidates += glob.glob('/usr/share/fonts/**/[Aa]miri*.ttf', recursive=True)
    candidates += FONT_PATHS

    for path in candidates:
        if path and os.path.exists(path):
            try:
                pdfmetrics.registerFont(TTFont(FONT_NAME, path))
            except Exception as e:
                logger.warning("Failed to register font %s: %s", path, e)
                continue
            logger.info("Registered Arabic font: %s", path)
            return FONT_NAME

    logger.warning("No Arabic font found, PDF will show boxes for Arabic text")
    return None


def shape(text) -> str:
    """Reshape and reorder Arabic text for left-to-right PDF rendering"""
    if text is None:
        return ""
    return html.escape(get_display(arabic_reshaper.reshape(str(text))), quote=False)


def render_report_pdf(report: ReportData, settings: Optional[Settings] = None,
                      font_path: Optional[str] = None) -> bytes:
    """Render a report to A4 PDF bytes"""
    settings = settings or Settings()
    font = register_arabic_font(font_path) or 'Helvetica'
    bold = font if font != 'Helvetica' else 'Helvetica-Bold'

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle('ReportTitle', parent=styles['Title'], fontName=bold, alignment=TA_CENTER)
    heading_style = ParagraphStyle('ReportHeading', parent=styles['Heading2'], fontName=bold, alignment=TA_RIGHT)
    body_style = ParagraphStyle('ReportBody', parent=styles['Normal'], fontName=font, alignment=TA_RIGHT, leading=16)
    cell_style = ParagraphStyle('ReportCell', parent=body_style, fontSize=9, leading=12)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=A4,
        rightMargin=1.5 * cm, leftMargin=1.5 * cm, topMargin=1.5 * cm, bottomMargin=1.5 * cm,
        title=f"Report-{report.institution.name}",
    )

    institution = report.institution
    story = [
        Paragraph(shape(settings.org_name), title_style),
        Paragraph(shape(f"تقرير تقييم: {institution.name}"), heading_style),
        Paragraph(shape(f"دورة التقييم: {report.evaluation.cycle_year}"), body_style),
        Paragraph(shape(f"نوع المؤسسة: {institution.type.value}"), body_style),
        Paragraph(shape(f"متوسط الأداء: {report.overall_average} / 5"), body_style),
        Paragraph(shape(f"مستوى النضج: {maturity_level(report.overall_average)['label']}"), body_style),
        Spacer(1, 0.5 * cm),
        Paragraph(shape("نتائج المحاور"), heading_style),
    ]

    axis_rows = [[Paragraph(shape("المتوسط"), cell_style), Paragraph(shape("المحور"), cell_style)]]
    for axis in report.axis_scores:
        axis_rows.append([Paragraph(f"{axis.average:.2f}", cell_style), Paragraph(shape(axis.subject), cell_style)])
    axis_table = Table(axis_rows, colWidths=[3 * cm, 14 * cm])
    axis_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#ccfbf1')),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
    ]))
    story += [axis_table, Spacer(1, 0.5 * cm), Paragraph(shape("خطة التحسين"), heading_style)]

    if report.improvements:
        plan_rows = [[
            Paragraph(shape("تاريخ الاستحقاق"), cell_style),
            Paragraph(shape("المسؤول"), cell_style),
            Paragraph(shape("الأولوية"), cell_style),
            Paragraph(shape("الملاحظة"), cell_style),
        ]]
        row_styles = []
        for row, item in enumerate(report.improvements, start=1):
            plan_rows.append([
                Paragraph(item.due_date, cell_style),
                Paragraph(shape(item.owner), cell_style),
                item.priority.value,
                Paragraph(shape(item.issue_summary), cell_style),
            ])
            row_styles.append(('TEXTCOLOR', (2, row), (2, row), colors.HexColor(PRIORITY_COLORS[item.priority])))
        plan_table = Table(plan_rows, colWidths=[3 * cm, 3.5 * cm, 2 * cm, 8.5 * cm], repeatRows=1)
        plan_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#e0e7ff')),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ] + row_styles))
        story.append(plan_table)
    else:
        story.append(Paragraph(shape("لا توجد بنود تحسين"), body_style))

    story += [
        Spacer(1, 1 * cm),
        Paragraph(shape(f"المشرف: {settings.manager_name}"), body_style),
    ]

    doc.build(story)
    return buffer.getvalue()
