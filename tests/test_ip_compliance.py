import pytest

from IpTracking_module.ip_compliance import (
    MAX_ASSIGNED_ADDRESSES,
    ComplianceStatus,
    classify,
    parse_assigned,
    remove_from_assignment,
    validate_assigned_syntax,
    validate_assignment,
)
from IpTracking_module.ip_exceptions import IpAssignmentError
from IpTracking_module.ip_validator import UNKNOWN_IP

ASSIGNED = "192.168.1.100,10.0.0.50"


def test_parse_assigned_splits_trims_and_keeps_order():
    assert parse_assigned(" 10.0.0.2 ;10.0.0.1,, ,10.0.0.2;") == ["10.0.0.2", "10.0.0.1", "10.0.0.2"]


@pytest.mark.parametrize("raw", [None, "", "   ", ",;,"])
def test_parse_assigned_empty(raw):
    assert parse_assigned(raw) == []


def test_classify_match_and_mismatch():
    assert classify("192.168.1.100", ASSIGNED) is ComplianceStatus.MATCH
    assert classify("203.0.113.9", ASSIGNED) is ComplianceStatus.MISMATCH


@pytest.mark.parametrize("assigned", [None, "", "   "])
@pytest.mark.parametrize("observed", ["192.168.1.100", UNKNOWN_IP, None])
def test_classify_without_assignment_is_unconstrained(assigned, observed):
    assert classify(observed, assigned) is ComplianceStatus.NO_ASSIGNMENT


@pytest.mark.parametrize("observed", [None, "", UNKNOWN_IP])
def test_classify_unknown_address_never_matches(observed):
    assert classify(observed, ASSIGNED) is ComplianceStatus.UNKNOWN_ADDRESS


def test_classify_ipv6_is_case_insensitive():
    assert classify("2001:DB8::1", "2001:db8::1") is ComplianceStatus.MATCH


def test_classify_ipv4_is_literal():
    assert classify("192.168.001.100", ASSIGNED) is ComplianceStatus.MISMATCH


def test_validate_assigned_syntax():
    assert validate_assigned_syntax("")
    assert validate_assigned_syntax("10.0.0.1; ::1")
    assert not validate_assigned_syntax("10.0.0.1,not-an-ip")


def test_validate_assignment_rejects_duplicates_after_normalisation():
    with pytest.raises(IpAssignmentError):
        validate_assignment("2001:db8::1,2001:DB8::1", user_id=7)


def test_validate_assignment_caps_list_length():
    raw = ",".join(f"10.0.0.{i}" for i in range(MAX_ASSIGNED_ADDRESSES + 1))
    with pytest.raises(IpAssignmentError) as exc_info:
        validate_assignment(raw)
    assert "Too many" in exc_info.value.message


def test_validate_assignment_reports_bad_element():
    with pytest.raises(IpAssignmentError) as exc_info:
        validate_assignment("10.0.0.1,999.0.0.1", user_id=3)
    assert exc_info.value.ip_address == "999.0.0.1"
    assert exc_info.value.user_id == 3


def test_remove_from_assignment():
    assert remove_from_assignment(ASSIGNED, "10.0.0.50") == "192.168.1.100"
    assert remove_from_assignment("10.0.0.50", "10.0.0.50") is None
    with pytest.raises(IpAssignmentError):
        remove_from_assignment(ASSIGNED, "10.9.9.9")
    with pytest.raises(IpAssignmentError):
        remove_from_assignment(None, "10.9.9.9")
