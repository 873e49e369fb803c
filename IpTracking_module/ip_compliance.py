"""
IP compliance: how an observed address relates to a person's assigned list.
"""
import logging
import re
from enum import Enum
from typing import List, Optional

from .ip_exceptions import IpAssignmentError
from .ip_validator import is_unknown, is_valid_ip, normalize_ip

logger = logging.getLogger(__name__)

ASSIGNMENT_SEPARATORS = re.compile(r"[,;]")
MAX_ASSIGNED_ADDRESSES = 10


class ComplianceStatus(str, Enum):
    MATCH = "MATCH"
    MISMATCH = "MISMATCH"
    NO_ASSIGNMENT = "NO_ASSIGNMENT"
    UNKNOWN_ADDRESS = "UNKNOWN_ADDRESS"


def parse_assigned(raw: Optional[str]) -> List[str]:
    """
    Split on ',' or ';', trim, drop empty segments.
    Order and duplicates are preserved.
    """
    if raw is None or not raw.strip():
        return []
    return [part.strip() for part in ASSIGNMENT_SEPARATORS.split(raw) if part.strip()]


def classify(observed_address: Optional[str], assigned_raw: Optional[str]) -> ComplianceStatus:
    """First matching rule wins; every input pair lands in exactly one status."""
    if assigned_raw is None or not assigned_raw.strip():
        return ComplianceStatus.NO_ASSIGNMENT

    if is_unknown(observed_address):
        return ComplianceStatus.UNKNOWN_ADDRESS

    observed = normalize_ip(observed_address)
    assigned = {normalize_ip(ip) for ip in parse_assigned(assigned_raw)}

    if observed in assigned:
        return ComplianceStatus.MATCH
    return ComplianceStatus.MISMATCH


def validate_assigned_syntax(raw: Optional[str]) -> bool:
    """Every element must be a valid IPv4 or IPv6 literal. An empty list is valid."""
    return all(is_valid_ip(ip) for ip in parse_assigned(raw))


def validate_assignment(raw: Optional[str], user_id: Optional[int] = None) -> List[str]:
    """
    Stricter check used before storing an assignment.
    Returns the parsed list; raises IpAssignmentError on the first problem found.
    """
    addresses = parse_assigned(raw)
    if not addresses:
        return []

    for ip in addresses:
        if not is_valid_ip(ip):
            raise IpAssignmentError(
                f"Invalid IP address format: {ip}", "validate", user_id, ip
            )

    normalized = [normalize_ip(ip) for ip in addresses]
    if len(set(normalized)) != len(normalized):
        raise IpAssignmentError(
            "Duplicate IP addresses found in assignment", "validate", user_id, raw
        )

    if len(addresses) > MAX_ASSIGNED_ADDRESSES:
        raise IpAssignmentError(
            f"Too many IP addresses assigned (max: {MAX_ASSIGNED_ADDRESSES}, found: {len(addresses)})",
            "validate", user_id, raw
        )

    return addresses


def remove_from_assignment(current: Optional[str], ip_to_remove: str, user_id: Optional[int] = None) -> Optional[str]:
    """
    Drop every occurrence of ip_to_remove. Returns None when nothing is left,
    which means "no constraint".
    """
    addresses = parse_assigned(current)
    if not addresses:
        raise IpAssignmentError("Cannot remove IP from empty assignment", "remove", user_id, ip_to_remove)

    target = normalize_ip(ip_to_remove)
    remaining = [ip for ip in addresses if normalize_ip(ip) != target]
    if len(remaining) == len(addresses):
        raise IpAssignmentError(
            f"IP address {ip_to_remove} not found in current assignment", "remove", user_id, ip_to_remove
        )

    return ",".join(remaining) if remaining else None
