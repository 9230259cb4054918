"""
Localized chat texts.
Decision confirmations are keyed by (decision, language); unknown languages
fall back to Malay.
"""

DEFAULT_LANGUAGE = "ms"

DECISION_TEMPLATES = {
    "ms": {
        "approve": "{applicant} permohonan cuti{range} telah diluluskan oleh {approver}.",
        "reject": "{applicant} permohonan cuti{range} telah ditolak oleh {approver}.",
        "reject_capacity": (
            "{applicant} permohonan cuti baharu pada{range} telah ditolak oleh {approver} "
            "(kerana mencapai had maksimum {capacity} orang sehari)."
        ),
        "updated": "{applicant} status permohonan cuti{range} telah dikemas kini oleh {approver}.",
    },
    "zh": {
        "approve": "{applicant} 的请假申请已被 {approver} 接受。",
        "reject": "{applicant} 的请假申请已被 {approver} 拒绝。",
        "reject_capacity": (
            "{applicant} 的请假申请因当天请假人数已达上限（{capacity}人），已被 {approver} 拒绝。"
        ),
        "updated": "{applicant} 的请假申请状态已由 {approver} 更新。",
    },
    "en": {
        "approve": "{applicant} leave request{range} has been approved by {approver}.",
        "reject": "{applicant} leave request{range} has been rejected by {approver}.",
        "reject_capacity": (
            "{applicant} new leave request on{range} has been rejected by {approver} "
            "(the daily limit of {capacity} people has been reached)."
        ),
        "updated": "{applicant} leave request{range} status has been updated by {approver}.",
    },
}

DEFAULT_APPLICANT = {"ms": "Pemohon", "zh": "申请人", "en": "Applicant"}
DEFAULT_APPROVER = {"ms": "Admin", "zh": "管理员", "en": "Admin"}

CAPACITY_FOLLOW_UP = (
    "Permohonan cuti baharu pada {date_range} "
    "(kerana mencapai had maksimum {capacity} orang sehari)"
)
CAPACITY_DEFAULT_RANGE = "the requested dates"

HELP_MENU_LINES = [
    "请假指令帮助",
    "",
    "使用以下快捷方式查看已批准的请假记录:",
    "- 'leave' 或 'l'：显示当前月份的已批准请假记录。",
    "- 'leave11'、'leave 11'、'l11' 或 'l 11'：显示指定月份的已批准请假。"
    "如果该月份在今年已过，将自动使用下一年。",
    "- '25leave10'、'25 leave 10'、'25l10' 或 '25 l 10'：以年份优先的格式查看指定月份的已批准请假"
    "（例如：2025年10月）。",
    "- '25leave'、'25 leave'、'25l' 或 '25 l'：查看该年份所有已批准的请假（例如：2025年）。",
    "",
    "快速审批快捷方式:",
    "- 'y'、'yes'、'ok'、'okay' 或 'k'：表示批准。",
    "- 'no'、'n'、'cannot' 或 'not ok'：表示拒绝。",
    "- 也可以直接回复某条请假请求的对话，输入上述任意审批指令来快速处理该请求。",
    "",
    "相关网址说明:",
    "- https://al.autocash.my ：查看所有司机请假记录及设定司机资料的管理网址",
    "- https://ll.autocash.my ：LOWBED 司机请假的网址",
    "- https://sl.autocash.my ：SAND 司机请假的网址",
    "- https://kl.autocash.my ：KSK 司机请假的网址",
    "",
    "随时发送 'help' 或 'h' 可再次查看此菜单。",
]


def help_menu() -> str:
    return "\n".join(HELP_MENU_LINES)


def render_decision_text(
    decision: str,
    language: str,
    applicant: str | None,
    approver: str | None,
    date_range_label: str | None = None,
    capacity_reject: bool = False,
    capacity: int = 3,
) -> str:
    """Confirmation sentence for a decision in the given language."""
    templates = DECISION_TEMPLATES.get(language) or DECISION_TEMPLATES[DEFAULT_LANGUAGE]
    lang = language if language in DECISION_TEMPLATES else DEFAULT_LANGUAGE

    label = (date_range_label or "").strip()
    if decision == "approve":
        key = "approve"
    elif decision == "reject":
        key = "reject_capacity" if capacity_reject and label else "reject"
    else:
        key = "updated"

    return templates[key].format(
        applicant=applicant or DEFAULT_APPLICANT[lang],
        approver=approver or DEFAULT_APPROVER[lang],
        range=f" ({label})" if label else "",
        capacity=capacity,
    )


def render_capacity_follow_up(date_range_label: str | None, capacity: int = 3) -> str:
    return CAPACITY_FOLLOW_UP.format(
        date_range=(date_range_label or "").strip() or CAPACITY_DEFAULT_RANGE, capacity=capacity
    )
