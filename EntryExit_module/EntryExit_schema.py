"""
EntryExit Schemas - Pydantic models for request/response validation
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .EntryExit_model import EntryExitType


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EntryExitRequest(CamelModel):
    """
    GPS ranges are deliberately not enforced here: an out-of-range coordinate is
    a rejected redemption (400, INVALID_GPS), not a malformed request.
    """
    code_value: str = Field(..., min_length=1, max_length=64, description="Today's daily code value")
    timestamp: Optional[datetime] = Field(None, description="Event time (ISO-8601); defaults to now")
    latitude: Optional[float] = Field(None, description="Latitude (-90 to 90)")
    longitude: Optional[float] = Field(None, description="Longitude (-180 to 180)")


class EntryExitResponse(CamelModel):
    kind: EntryExitType
    timestamp: datetime
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class EntryExitStatusResponse(CamelModel):
    status: str = Field(..., description="INSIDE or OUTSIDE")
    usage_count: int
    next_kind: Optional[EntryExitType] = None
    last_kind: Optional[EntryExitType] = None
    last_timestamp: Optional[datetime] = None
