"""
IP tracking admin schemas
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from config import AnonymizationLevel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IpTrackingConfigResponse(CamelModel):
    enabled: bool
    privacy_enabled: bool
    anonymize_reports: bool
    audit_logging_enabled: bool
    retention_days: int
    anonymization_level: AnonymizationLevel
    ipv4_preserve_octets: int
    ipv6_preserve_groups: int
    mask_character: str
    capture_timeout_ms: int


class AssignedIpUpdateRequest(CamelModel):
    ip_addresses: Optional[str] = Field(
        None,
        max_length=1000,
        description="Comma or semicolon separated list; empty clears the assignment"
    )


class AssignedIpResponse(CamelModel):
    user_id: int
    assigned_ip_addresses: List[str] = Field(default_factory=list, description="Displayed per privacy policy")
    count: int = 0


class IpValidationRequest(CamelModel):
    ip_address: Optional[str] = None


class IpValidationResponse(CamelModel):
    ip_address: Optional[str] = None
    secure: bool
    valid: bool
    sanitized: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None


class AuditLogEntryResponse(CamelModel):
    id: int
    user_id: Optional[int] = None
    ip_address: Optional[str] = None
    action: str
    admin_user_id: Optional[int] = None
    timestamp: datetime
    details: Optional[Dict[str, Any]] = None


class MismatchSummary(CamelModel):
    user_id: int
    user_name: Optional[str] = None
    mismatch_count: int
    observed_addresses: List[str]


class ComplianceReportResponse(CamelModel):
    start_date: date
    end_date: date
    total_records: int
    counts: Dict[str, int]
    compliance_percentage: float
    mismatches: List[MismatchSummary]
    anonymized: bool


class RetentionStatusResponse(CamelModel):
    audit_logging_enabled: bool
    retention_days: int
    policy_active: bool


class RetentionEnforceResponse(CamelModel):
    deleted_records: int
    retention_days: int


class SuspiciousAccessResponse(CamelModel):
    user_id: int
    time_window_hours: int
    access_count: int
    distinct_admins: int
    suspicious_activity: bool
    checked_at: datetime
