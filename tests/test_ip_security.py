import pytest

from IpTracking_module.ip_exceptions import IpSecurityRejection, IpValidationError
from IpTracking_module.ip_security import (
    is_secure_input,
    sanitize,
    sanitize_or_unknown,
)
from IpTracking_module.ip_validator import UNKNOWN_IP


def test_sanitize_trims_and_strips_control_characters():
    assert sanitize("  192.168.1.100 ") == "192.168.1.100"
    assert sanitize("192.168.1.100\x00") == "192.168.1.100"


@pytest.mark.parametrize("value", ["10.0.0.1", " 2001:db8::1 ", "192.168.1.100\x07", UNKNOWN_IP])
def test_sanitize_is_stable(value):
    first = sanitize(value)
    assert sanitize(first) == first


def test_sanitize_passes_sentinel():
    assert sanitize(UNKNOWN_IP) == UNKNOWN_IP


@pytest.mark.parametrize("value", [None, "1.1.1", "1" * 46, "999.1.1.1", "abcdefgh"])
def test_sanitize_rejects_invalid(value):
    with pytest.raises(IpValidationError):
        sanitize(value)


@pytest.mark.parametrize(
    "value",
    ["10.0.0.1; DROP TABLE users", "<script>10.0.0.1", "10.0.0.1' OR '1'='1", "select 1.2.3.4"],
)
def test_sanitize_rejects_injection_as_security_rejection(value, caplog):
    with pytest.raises(IpSecurityRejection):
        sanitize(value)
    assert any(record.levelname == "WARNING" for record in caplog.records)


def test_secure_checks():
    assert is_secure_input(None)
    assert not is_secure_input("<img src=x>")


def test_sanitize_or_unknown_degrades_to_sentinel():
    assert sanitize_or_unknown("10.0.0.1") == "10.0.0.1"
    assert sanitize_or_unknown("<script>") == UNKNOWN_IP
    assert sanitize_or_unknown(None) == UNKNOWN_IP
