"""
Syntactic IPv4 / IPv6 classification.
Pure functions: no configuration, no I/O.
"""
import ipaddress
import re
from typing import Optional

# Placeholder stored when no usable address could be determined
UNKNOWN_IP = "Unknown"

# Dotted quad, each octet 0-255; leading zeros are accepted and kept literal
IPV4_PATTERN = re.compile(
    r"^((25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)

IPV6_CHARS = re.compile(r"^[0-9a-fA-F:.]+$")


def is_unknown(ip_address: Optional[str]) -> bool:
    """None, blank and the sentinel all mean "no usable address"."""
    return ip_address is None or ip_address.strip() in ("", UNKNOWN_IP)


def is_ipv4(ip_address: Optional[str]) -> bool:
    if not ip_address:
        return False
    return IPV4_PATTERN.match(ip_address.strip()) is not None


def is_ipv6(ip_address: Optional[str]) -> bool:
    """
    Full and compressed forms, including an embedded IPv4 tail (::ffff:10.0.0.1).
    Zone identifiers (fe80::1%eth0) are rejected.
    """
    if not ip_address:
        return False
    candidate = ip_address.strip()
    if ":" not in candidate or not IPV6_CHARS.match(candidate):
        return False
    try:
        ipaddress.IPv6Address(candidate)
    except ValueError:
        return False
    return True


def is_valid_ip(ip_address: Optional[str]) -> bool:
    if ip_address is None or not ip_address.strip():
        return False
    return is_ipv4(ip_address) or is_ipv6(ip_address)


def normalize_ip(ip_address: Optional[str]) -> str:
    """
    Comparison / display form: trimmed, IPv6 hex lowercased.
    IPv4 is left literal (no leading-zero canonicalisation).
    """
    if is_unknown(ip_address):
        return UNKNOWN_IP

    trimmed = ip_address.strip()
    if ":" in trimmed:
        return trimmed.lower()

    return trimmed
