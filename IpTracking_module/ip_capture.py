"""
Client IP extraction, proxy-header aware.
Degrades to the UNKNOWN_IP sentinel instead of failing or blocking.
"""
import logging
import time
from typing import Optional

from config import IpTrackingSettings, get_ip_tracking_settings
from .ip_validator import UNKNOWN_IP, is_valid_ip

logger = logging.getLogger(__name__)

IP_HEADER_CANDIDATES = (
    "X-Forwarded-For",
    "X-Real-IP",
    "Proxy-Client-IP",
    "WL-Proxy-Client-IP",
    "HTTP_X_FORWARDED_FOR",
    "HTTP_CLIENT_IP",
    "HTTP_FORWARDED_FOR",
)

PLACEHOLDER_VALUES = {"unknown", "null", "-"}


def _usable_header_value(value: Optional[str]) -> bool:
    if value is None or not value.strip():
        return False
    return value.strip().lower() not in PLACEHOLDER_VALUES


def get_client_ip(request, settings: Optional[IpTrackingSettings] = None) -> str:
    """Extract client IP address from request"""
    settings = settings or get_ip_tracking_settings()

    if request is None:
        logger.warning("Request is missing, returning unknown IP default")
        return UNKNOWN_IP

    if not settings.enabled:
        logger.debug("IP tracking is disabled, returning unknown IP default")
        return UNKNOWN_IP

    deadline = time.monotonic() + settings.capture_timeout_ms / 1000.0
    try:
        for header in IP_HEADER_CANDIDATES:
            if time.monotonic() > deadline:
                logger.warning(
                    "IP extraction timeout exceeded (%sms), returning unknown default",
                    settings.capture_timeout_ms
                )
                return UNKNOWN_IP

            value = request.headers.get(header)
            if not _usable_header_value(value):
                continue

            # Proxies append; the first entry is the originating client
            candidate = value.split(",")[0].strip()
            if is_valid_ip(candidate):
                logger.debug("Extracted IP address from header %s: %s", header, candidate)
                return candidate

        if request.client and is_valid_ip(request.client.host):
            return request.client.host

        logger.warning("Could not extract valid IP address from request, returning unknown default")
        return UNKNOWN_IP
    except Exception as e:
        logger.error("Error extracting IP address from request: %s", e, exc_info=True)
        return UNKNOWN_IP
