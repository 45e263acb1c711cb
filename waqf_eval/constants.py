"""Fixed lookup tables and the default indicator catalog"""

from .models import Indicator


GOVERNORATES = [
    "مسقط", "ظفار", "مسندم", "البريمي", "الداخلية", "شمال الباطنة",
    "جنوب الباطنة", "الظاهرة", "جنوب الشرقية", "شمال الشرقية", "الوسطى",
]

OMAN_LOCATIONS = {
    "مسقط": ["مسقط", "السيب", "مطرح", "بوشر", "العامرات", "قريات"],
    "ظفار": ["صلالة", "طاقة", "مرباط", "رخيوت", "ثمريت", "ضلكوت", "المزيونة", "مقبل", "شليم وجزر الحلانيات", "سدح"],
    "مسندم": ["خصب", "دبا", "بخاء", "مدحاء"],
    "البريمي": ["البريمي", "محضة", "السينة"],
    "الداخلية": ["نزوى", "بهلاء", "منح", "الحمراء", "أدم", "إزكي", "سمائل", "بدبد", "الجبل الأخضر"],
    "شمال الباطنة": ["صحار", "شناص", "لوا", "صحم", "الخابورة", "السويق"],
    "جنوب الباطنة": ["الرستاق", "العوابي", "نخل", "وادي المعاول", "بركاء", "المصنعة"],
    "الظاهرة": ["عبري", "ينقل", "ضنك"],
    "جنوب الشرقية": ["صور", "الكامل والوافي", "جعلان بني بوحسن", "جعلان بني بوعلي", "مصيرة"],
    "شمال الشرقية": ["إبراء", "المضيبي", "بدية", "القابل", "وادي بني خالد", "دماء والطائيين", "سناو"],
    "الوسطى": ["هيماء", "محوت", "الدقم", "الجازر"],
}


def wilayats_for(governorate):
    """Wilayats selectable for a governorate (empty for unknown ones)"""
    return list(OMAN_LOCATIONS.get(governorate or "", []))


# Storage keys, one per collection
INSTITUTIONS_KEY = "waqf_institutions"
INDICATORS_KEY = "waqf_indicators"
EVALUATIONS_KEY = "waqf_evaluations"
RESPONSES_KEY = "waqf_responses"
COMPLIANCE_KEY = "waqf_compliance"
IMPROVEMENTS_KEY = "waqf_improvements"
RISKS_KEY = "waqf_risks"
SETTINGS_KEY = "waqf_settings"

ALL_KEYS = [
    INSTITUTIONS_KEY, INDICATORS_KEY, EVALUATIONS_KEY, RESPONSES_KEY,
    COMPLIANCE_KEY, IMPROVEMENTS_KEY, RISKS_KEY, SETTINGS_KEY,
]

# Maturity bands for average scores, highest first
MATURITY_LEVELS = [
    {"label": "ممتاز", "min": 4.5, "color": "#10b981"},
    {"label": "جيد جداً", "min": 3.5, "color": "#3b82f6"},
    {"label": "جيد", "min": 2.5, "color": "#f59e0b"},
    {"label": "يحتاج تحسين", "min": 1.5, "color": "#f97316"},
    {"label": "ضعيف", "min": 0, "color": "#ef4444"},
]

MIN_SCORE = 1
MAX_SCORE = 5

DEFAULT_AXIS = "عام"

IMPROVEMENT_THRESHOLD = 3.5
HIGH_PRIORITY_THRESHOLD = 2.5
IMPROVEMENT_DUE_MONTHS = 3
IMPROVEMENT_ISSUE_PREFIX = "انخفاض في المؤشر: "
IMPROVEMENT_ACTION = "مراجعة السياسات والإجراءات وتحديد خطة تصحيحية."
IMPROVEMENT_OWNER = "الإدارة التنفيذية"


_AXIS_SHARIA = "الشرعي"
_AXIS_ADMIN = "الإجراءات الإدارية والمالية"
_AXIS_GOVERNANCE = "الحوكمة"
_AXIS_INNOVATION = "الابتكار والتطوير"
_AXIS_SUSTAINABILITY = "الاستدامة"

_DEFAULT_CATALOG = [
    ("SH-01", _AXIS_SHARIA, "هل يتم إنفاق عائد غلة الوقف على الأغراض التي حددها الواقِفون؟"),
    ("SH-02", _AXIS_SHARIA, "هل هناك احترام تام لشروط الوقف وعدم التعديل فيها إلا بفتوى شرعية؟"),
    ("SH-03", _AXIS_SHARIA, "هل يتم الالتزام بالمقاصد الشرعية والحفاظ على أصول الوقف وصيانتها للأجيال القادمة؟"),
    ("SH-04", _AXIS_SHARIA, "هل توجد رقابة شرعية مستقلة على كافة المعاملات؟"),
    ("SH-05", _AXIS_SHARIA, "هل تلتزم المؤسسة بتجنب المعاملات غير الشرعية؟"),
    ("SH-06", _AXIS_SHARIA, "هل يتم إصدار تقارير شرعية دورية مستقلة؟"),

    ("AD-01", _AXIS_ADMIN, "هل توجد خطة استراتيجية تتضمن رؤية ورسالة المؤسسة والأهداف المقترنة بالخطة مع جدول زمني محدد؟"),
    ("AD-02", _AXIS_ADMIN, "هل توجد مؤشرات قياس واضحة مرتبطة بمشاريع الخطة الخمسية؟"),
    ("AD-03", _AXIS_ADMIN, "هل توجد لوائح داخلية وأدلة إجراءات العمل؟"),
    ("AD-04", _AXIS_ADMIN, "هل يتم تنفيذ المشاريع حسب الآليات المعتمدة وفي المخطط الزمني المحدد؟"),
    ("AD-05", _AXIS_ADMIN, "هل توجد لائحة موارد بشرية معتمدة تتضمن إجراءات التوظيف والترقيات والحوافز وتحسين بيئة العمل وإجراءات نهاية الخدمة؟"),
    ("AD-06", _AXIS_ADMIN, "هل توجد بطاقة وصف وظيفي لكل موظف تحدد مهام ومسؤوليات الوظيفة؟"),
    ("AD-07", _AXIS_ADMIN, "هل يتم تطبيق نظام لتقييم أداء الموظفين بموضوعية؟"),
    ("AD-08", _AXIS_ADMIN, "هل توجد خطة تدريب سنوية لتنفيذ دورات وبرامج لتنمية مهارات الموظفين؟"),
    ("AD-09", _AXIS_ADMIN, "هل توجد ميزانية سنوية جارية ورأسمالية معتمدة؟"),
    ("AD-10", _AXIS_ADMIN, "هل توجد آلية معتمدة للصرف حسب تفويضات مجلس الإدارة؟"),
    ("AD-11", _AXIS_ADMIN, "هل يتم استخدام برامج مالية موثوقة لتوثيق العمليات المالية؟"),
    ("AD-12", _AXIS_ADMIN, "هل خطوات حصول المستفيد على الدعم/الخدمة واضحة ومكتوبة؟"),
    ("AD-13", _AXIS_ADMIN, "هل يتم إجراء استبيانات أو مقابلات لقياس جودة الخدمات؟"),
    ("AD-14", _AXIS_ADMIN, "هل توجد حسابات إعلامية رقمية للمؤسسة، وهل يتم معالجة المقترحات والشكاوى؟"),

    ("GOV-01", _AXIS_GOVERNANCE, "هل تم تعيين مكتب تدقيق خارجي معتمد؟"),
    ("GOV-02", _AXIS_GOVERNANCE, "هل يتم إصدار القوائم المالية في المواعيد المحددة؟ وهل يتم الإفصاح عنها؟"),
    ("GOV-03", _AXIS_GOVERNANCE, "هل توجد إجراءات داخلية لمراقبة الإيرادات والمصروفات؟"),
    ("GOV-04", _AXIS_GOVERNANCE, "هل توجد آلية لتقليل المصاريف غير الضرورية؟"),
    ("GOV-05", _AXIS_GOVERNANCE, "هل يوجد نظام فعال لتحصيل الإيجارات والعوائد؟"),
    ("GOV-06", _AXIS_GOVERNANCE, "هل تم تخصيص نسبة الاحتياطي من رأس المال؟"),
    ("GOV-07", _AXIS_GOVERNANCE, "هل توجد سياسة استثمارية تتضمن الأهداف والضوابط الشرعية ومعايير تقييم الاستثمار؟"),
    ("GOV-08", _AXIS_GOVERNANCE, "هل المحفظة الاستثمارية متوافقة مع الشريعة؟"),
    ("GOV-09", _AXIS_GOVERNANCE, "هل توجد لجنة مستقلة للاستثمار؟"),
    ("GOV-10", _AXIS_GOVERNANCE, "هل يتم مراعاة تقليل الاعتماد على نوع واحد من الاستثمار (عقار، أسهم، صناديق...)؟"),
    ("GOV-11", _AXIS_GOVERNANCE, "هل يتم إجراء تحليل دوري للمخاطر الاستثمارية؟"),

    ("INV-01", _AXIS_INNOVATION, "هل يتم تشجيع الأفكار الجديدة من الموظفين والمستفيدين؟"),
    ("INV-02", _AXIS_INNOVATION, "هل يتم مراعاة إدراج الابتكار في أهداف المؤسسة وخططها الاستراتيجية؟"),
    ("INV-03", _AXIS_INNOVATION, "هل يتم تقديم خدمات عبر الإنترنت أو عبر تطبيقات رقمية مبتكرة؟"),
    ("INV-04", _AXIS_INNOVATION, "هل توجد أنظمة إلكترونية ذكية في إدارة الأصول الوقفية؟"),

    ("SUS-01", _AXIS_SUSTAINABILITY, "هل تعتمد المؤسسة على مصادر إيرادات متنوعة مثل: (التبرعات والاستثمار...)؟"),
    ("SUS-02", _AXIS_SUSTAINABILITY, "ما مدى قدرة المؤسسة على إدارة مواردها بشكل فعّال؟"),
    ("SUS-03", _AXIS_SUSTAINABILITY, "ما مدى تأثير مشاريع المؤسسة في المجتمعات المستفيدة على المدى البعيد؟"),
    ("SUS-04", _AXIS_SUSTAINABILITY, "هل المؤسسة تساهم في تمكين المجتمعات المحلية من خلال التعليم والصحة والبرامج التنموية؟"),
    ("SUS-05", _AXIS_SUSTAINABILITY, "هل تشارك المؤسسة الفئات المستفيدة في تحديد احتياجاتهم؟"),
]


def default_indicators():
    """Fresh copy of the default catalog"""
    return [Indicator(id=code, axis=axis, text=text) for code, axis, text in _DEFAULT_CATALOG]
