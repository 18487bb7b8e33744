from typing import Dict, List, Tuple

# Display order and Chinese headings of the six rubric criteria
CRITERIA_ORDER: List[Tuple[str, str]] = [
    ("realContext", "真實情境"),
    ("problemSolving", "問題解決"),
    ("interdisciplinary", "跨領域/學科素養"),
    ("technicalQuality", "一般命題原則"),
    ("editorialQuality", "文句與格式檢核"),
    ("contentReview", "內容審查"),
]

STATUS_LABELS: Dict[str, Tuple[str, str]] = {
    "excellent": ("🟢", "優良"),
    "good": ("🔵", "良好"),
    "warning": ("🟡", "待改進"),
    "critical": ("🔴", "嚴重問題"),
}


def score_band(score: float) -> Tuple[str, str]:
    """Colour band for an overall score: (icon, label)."""
    if score >= 80:
        return "🟢", "優良"
    elif score >= 60:
        return "🟡", "尚可"
    else:
        return "🔴", "需修正"


def status_badge(status: str) -> str:
    icon, label = STATUS_LABELS.get(status, ("⚪", status))
    return f"{icon} {label}"


def ordered_criteria(report: dict) -> List[Tuple[str, str, dict]]:
    """(key, heading, criterion) for each criterion present in a camelCase report."""
    breakdown = report.get("criteriaBreakdown", {})
    return [
        (key, heading, breakdown[key])
        for key, heading in CRITERIA_ORDER
        if key in breakdown
    ]
