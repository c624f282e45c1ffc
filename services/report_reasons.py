"""
Mapping from report checkboxes to the reason string sent with a report.
"""

from typing import List, Mapping, Tuple, Union

from common.exceptions import ValidationException
from config.config import settings
from entities.report import ReportReasonFlags

# (flag, canonical reason) in the order reasons are listed
REPORT_REASONS: Tuple[Tuple[str, str], ...] = (
    ("sexual", "Sexual content"),
    ("violent", "Violence"),
    ("hateful", "Hate speech"),
    ("harmful", "Harmful content"),
    ("child_abuse", "Child abuse"),
    ("infringes", "Copyright infringement"),
    ("terrorism", "Promotes terrorism"),
    ("spam", "Spam"),
)

DEFAULT_REPORT_REASON = settings.default_report_reason
REASON_DELIMITER = ", "

FlagsLike = Union[ReportReasonFlags, Mapping[str, bool]]


def _as_flags(flags: FlagsLike) -> ReportReasonFlags:
    if isinstance(flags, ReportReasonFlags):
        return flags
    known = dict(REPORT_REASONS)
    unknown = [name for name in flags if name not in known]
    if unknown:
        raise ValidationException(
            detail=f"Unknown report reason flag(s): {', '.join(sorted(unknown))}",
            field="reasons",
            value=unknown
        )
    return ReportReasonFlags(**{name: bool(value) for name, value in flags.items()})


def reason_list(flags: FlagsLike) -> List[str]:
    """Canonical reasons of the set flags, in declared order."""
    resolved = _as_flags(flags)
    return [reason for name, reason in REPORT_REASONS if getattr(resolved, name)]


def build_reason(flags: FlagsLike) -> str:
    reasons = reason_list(flags)
    if not reasons:
        return DEFAULT_REPORT_REASON
    return REASON_DELIMITER.join(reasons)


def toggle_flag(flags: ReportReasonFlags, name: str) -> ReportReasonFlags:
    """Copy of `flags` with `name` flipped."""
    if name not in dict(REPORT_REASONS):
        raise ValidationException(detail=f"Unknown report reason flag: {name}", field="flag", value=name)
    return flags.model_copy(update={name: not getattr(flags, name)})
