import pytest

from IpTracking_module.ip_validator import (
    UNKNOWN_IP,
    is_ipv4,
    is_ipv6,
    is_unknown,
    is_valid_ip,
    normalize_ip,
)


@pytest.mark.parametrize("value", ["192.168.1.100", "10.0.0.1", "255.255.255.255", "0.0.0.0", "010.001.000.001"])
def test_ipv4_accepts_dotted_quads(value):
    assert is_ipv4(value)
    assert is_valid_ip(value)


@pytest.mark.parametrize("value", ["256.1.1.1", "1.2.3", "1.2.3.4.5", "a.b.c.d", "", None])
def test_ipv4_rejects_malformed(value):
    assert not is_ipv4(value)


@pytest.mark.parametrize(
    "value",
    ["2001:db8:85a3::8a2e:370:7334", "::1", "fe80::1", "2001:0DB8:0000:0000:0000:0000:1428:57AB", "::ffff:10.0.0.1"],
)
def test_ipv6_accepts_full_and_compressed(value):
    assert is_ipv6(value)
    assert is_valid_ip(value)


@pytest.mark.parametrize("value", ["fe80::1%eth0", "2001:db8::g", "1::2::3", "192.168.1.1", "Unknown"])
def test_ipv6_rejects_invalid(value):
    assert not is_ipv6(value)


def test_sentinel_is_not_an_address():
    assert is_unknown(UNKNOWN_IP)
    assert is_unknown(None)
    assert is_unknown("  ")
    assert not is_unknown("10.0.0.1")
    assert not is_valid_ip(UNKNOWN_IP)


def test_normalize_lowercases_ipv6_only():
    assert normalize_ip("  2001:DB8::ABCD ") == "2001:db8::abcd"
    assert normalize_ip(" 010.0.0.1 ") == "010.0.0.1"
    assert normalize_ip("") == UNKNOWN_IP
    assert normalize_ip(None) == UNKNOWN_IP
