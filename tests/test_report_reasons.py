import pytest

from common.exceptions import ValidationException
from entities.report import ReportReasonFlags
from services.report_reasons import (
    DEFAULT_REPORT_REASON,
    REPORT_REASONS,
    build_reason,
    reason_list,
    toggle_flag,
)


def test_no_flags_gives_default_reason():
    assert build_reason(ReportReasonFlags()) == "Inappropriate content"
    assert build_reason({}) == DEFAULT_REPORT_REASON


def test_reasons_follow_declared_order_not_toggle_order():
    flags = ReportReasonFlags()
    flags = toggle_flag(flags, "spam")
    flags = toggle_flag(flags, "sexual")
    assert build_reason(flags) == "Sexual content, Spam"


def test_all_flags_set():
    flags = ReportReasonFlags(**{name: True for name in ReportReasonFlags.flag_names()})
    assert build_reason(flags) == ", ".join(reason for _, reason in REPORT_REASONS)


def test_mapping_input():
    assert build_reason({"violent": True, "hateful": False, "child_abuse": True}) == "Violence, Child abuse"


def test_unknown_flag_raises():
    with pytest.raises(ValidationException):
        build_reason({"rude": True})
    with pytest.raises(ValidationException):
        toggle_flag(ReportReasonFlags(), "rude")


def test_toggle_flag_returns_copy():
    flags = ReportReasonFlags()
    toggled = toggle_flag(flags, "terrorism")
    assert toggled.terrorism is True
    assert flags.terrorism is False
    assert toggle_flag(toggled, "terrorism").terrorism is False


def test_flag_order_matches_reason_table():
    assert ReportReasonFlags.flag_names() == [name for name, _ in REPORT_REASONS]
    assert reason_list({"infringes": True}) == ["Copyright infringement"]
