"""
DailyCode Schemas - camelCase on the wire
"""
from datetime import date

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DailyCodeResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    code_value: str = Field(..., description="Opaque redeemable value")
    valid_date: date = Field(..., description="Local calendar date the code is valid on")
    usage_count: int = Field(..., ge=0, le=2)
    max_usage: int = Field(2, description="Redemptions allowed per day (ENTRY + EXIT)")
