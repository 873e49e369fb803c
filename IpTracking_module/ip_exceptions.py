"""
Exceptions raised by the IP tracking layer.
Routers translate these into 4xx responses; none of them are retried.
"""
from typing import Optional


class IpValidationError(ValueError):
    """Address input failed length, syntax or character checks."""

    def __init__(self, message: str, ip_address: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.ip_address = ip_address
        self.reason = reason


class IpSecurityRejection(IpValidationError):
    """Address input matched the injection / markup deny-list."""


class IpAssignmentError(ValueError):
    """An assigned-address list could not be accepted."""

    def __init__(self, message: str, operation: str = "validate", user_id: Optional[int] = None,
                 ip_address: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.user_id = user_id
        self.ip_address = ip_address
