"""
Input sanitisation for anything that will be written to an IP column.
"""
import logging
import re
from typing import Optional

from .ip_exceptions import IpSecurityRejection, IpValidationError
from .ip_validator import UNKNOWN_IP, is_valid_ip

logger = logging.getLogger(__name__)

MIN_IP_LENGTH = 7  # "1.1.1.1"
MAX_IP_LENGTH = 45  # IPv6 with embedded IPv4

MALICIOUS_PATTERN = re.compile(r"[<>\"'&;\\|`$(){}\[\]*?~#%^!@+=]")
SQL_INJECTION_PATTERN = re.compile(
    r"(union|select|insert|update|delete|drop|create|alter|exec|execute|script|javascript|vbscript)",
    re.IGNORECASE,
)
XSS_PATTERN = re.compile(
    r"(script|iframe|object|embed|form|input|img|svg|onload|onerror|onclick)",
    re.IGNORECASE,
)
CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def _deny_listed(value: str) -> Optional[str]:
    if MALICIOUS_PATTERN.search(value):
        return "malicious characters"
    if SQL_INJECTION_PATTERN.search(value):
        return "SQL injection pattern"
    if XSS_PATTERN.search(value):
        return "markup/script pattern"
    return None


def sanitize(ip_address: Optional[str]) -> str:
    """
    Return the storable form of ip_address or raise.

    The unknown sentinel passes through. Everything else must be 7-45
    characters, free of deny-listed patterns, and a valid IPv4/IPv6 literal
    once whitespace and control characters are stripped.
    sanitize(sanitize(x)) == sanitize(x).
    """
    if ip_address is None:
        raise IpValidationError("IP address cannot be null", None, "null input")

    trimmed = ip_address.strip()
    if trimmed == UNKNOWN_IP:
        return UNKNOWN_IP

    if len(trimmed) > MAX_IP_LENGTH:
        raise IpValidationError("IP address exceeds maximum allowed length", trimmed, "length validation failed")
    if len(trimmed) < MIN_IP_LENGTH:
        raise IpValidationError("IP address is too short to be valid", trimmed, "minimum length validation failed")

    reason = _deny_listed(trimmed)
    if reason:
        logger.warning("Rejected IP input (%s): %r", reason, trimmed)
        raise IpSecurityRejection(
            "IP address contains potentially malicious characters", trimmed, reason
        )

    sanitized = CONTROL_CHARS.sub("", trimmed).strip()

    if len(sanitized) < MIN_IP_LENGTH:
        raise IpValidationError("IP address is too short to be valid", sanitized, "minimum length validation failed")

    if not is_valid_ip(sanitized):
        raise IpValidationError("IP address format is invalid after sanitization", sanitized, "format validation failed")

    if sanitized != ip_address:
        logger.debug("Sanitized IP address %r -> %r", ip_address, sanitized)
    return sanitized


def is_secure_input(ip_address: Optional[str]) -> bool:
    """Deny-list and control character check only; no format validation."""
    if ip_address is None:
        return True

    trimmed = ip_address.strip()
    if len(trimmed) > MAX_IP_LENGTH:
        return False
    if _deny_listed(trimmed):
        return False
    return not CONTROL_CHARS.search(trimmed)


def sanitize_or_unknown(ip_address: Optional[str]) -> str:
    """Capture-path variant: a rejected address degrades to the sentinel."""
    try:
        return sanitize(ip_address)
    except IpValidationError as e:
        logger.warning("Observed IP address not storable, recording as %s: %s", UNKNOWN_IP, e.message)
        return UNKNOWN_IP
