"""
Privacy-aware rendering of IP addresses.

anonymize() keeps the network part of an address and masks the host part;
display() decides, from the immutable IpTrackingSettings, whether and how
much to mask before an address leaves the service.
"""
import logging
from typing import List, Optional, assert_never

from config import AnonymizationLevel, IpTrackingSettings, get_ip_tracking_settings
from .ip_validator import UNKNOWN_IP, is_ipv4, is_ipv6, is_unknown, normalize_ip

logger = logging.getLogger(__name__)

GENERIC_MASK = "***"
FULL_MASK = "***.***.***.***"
IPV6_GROUPS = 8
MASK_WIDTH = 4


def _mask_token(settings: IpTrackingSettings, width: int) -> str:
    return settings.mask_character * width


def _anonymize_ipv4(address: str, settings: IpTrackingSettings) -> str:
    octets = address.split(".")
    keep = min(settings.ipv4_preserve_octets, 4)
    token = _mask_token(settings, 3)
    return ".".join(octet if i < keep else token for i, octet in enumerate(octets))


def _group_span(group: str) -> int:
    # A dotted IPv4 tail occupies the last two 16-bit groups
    return 2 if "." in group else 1


def _mask_groups(groups: List[str], first_index: int, keep: int, token: str) -> List[str]:
    masked = []
    position = first_index
    for group in groups:
        span = _group_span(group)
        masked.append(group if position + span <= keep else token)
        position += span
    return masked


def _anonymize_ipv6(address: str, settings: IpTrackingSettings) -> str:
    keep = min(settings.ipv6_preserve_groups, IPV6_GROUPS)
    token = _mask_token(settings, MASK_WIDTH)
    lowered = address.lower()

    if "::" not in lowered:
        groups = lowered.split(":")
        return ":".join(_mask_groups(groups, 0, keep, token))

    head, tail = lowered.split("::", 1)
    head_groups = head.split(":") if head else []
    tail_groups = tail.split(":") if tail else []
    # Tail groups sit at the end of the 128-bit address, after the compressed zeros
    tail_start = IPV6_GROUPS - sum(_group_span(group) for group in tail_groups)

    masked_head = _mask_groups(head_groups, 0, keep, token)
    masked_tail = _mask_groups(tail_groups, tail_start, keep, token)
    return ":".join(masked_head) + "::" + ":".join(masked_tail)


def anonymize(address: Optional[str], settings: Optional[IpTrackingSettings] = None) -> str:
    """
    192.168.1.100 -> 192.168.1.xxx
    2001:db8:85a3::8a2e:370:7334 -> 2001:db8:85a3::xxxx:xxxx:xxxx
    Anything unrecognised (including an already-masked value) -> ***.
    """
    settings = settings or get_ip_tracking_settings()

    if is_unknown(address):
        return UNKNOWN_IP

    trimmed = address.strip()

    if is_ipv4(trimmed):
        return _anonymize_ipv4(trimmed, settings)

    # Embedded-IPv4 forms are masked like any other IPv6 literal
    if is_ipv6(trimmed):
        return _anonymize_ipv6(trimmed, settings)

    return GENERIC_MASK


def display(
    address: Optional[str],
    respect_privacy: bool = True,
    level: Optional[AnonymizationLevel] = None,
    settings: Optional[IpTrackingSettings] = None,
) -> str:
    settings = settings or get_ip_tracking_settings()

    if is_unknown(address):
        return UNKNOWN_IP

    if not respect_privacy or not settings.privacy_enabled:
        return normalize_ip(address)

    level = level or settings.anonymization_level
    if level is AnonymizationLevel.NONE:
        return normalize_ip(address)
    if level is AnonymizationLevel.PARTIAL:
        return anonymize(address, settings)
    if level is AnonymizationLevel.FULL:
        return FULL_MASK
    assert_never(level)


def display_for_report(address: Optional[str], settings: Optional[IpTrackingSettings] = None) -> str:
    """Reports follow anonymize_reports rather than the interactive privacy switch."""
    settings = settings or get_ip_tracking_settings()
    if settings.anonymize_reports:
        return anonymize(address, settings)
    return normalize_ip(address)
