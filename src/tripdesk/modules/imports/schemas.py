from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticUndefined


class _Extracted(BaseModel):
    # Keep whatever extra keys the model returns; operators may still find them useful.
    model_config = ConfigDict(extra="allow")

    # Models send null for "not found"; fall back to the field default.
    @field_validator("*", mode="before")
    @classmethod
    def _null_to_default(cls, value: Any, info) -> Any:
        field = cls.model_fields.get(info.field_name)
        if value is not None or field is None:
            return value
        if field.default_factory is not None:
            return field.default_factory()
        if field.default is not PydanticUndefined:
            return field.default
        return value


class ExtractedStop(_Extracted):
    stop_type: str = "custom"
    venue_name: str | None = None
    custom_name: str | None = None
    address: str | None = None
    scheduled_time: str | None = None
    duration_minutes: int | None = None
    notes: str | None = None

    matched_venue_id: int | None = None
    match_confidence: float | None = None
    match_type: str | None = None


class ExtractedDay(_Extracted):
    date: str | None = None
    title: str | None = None
    description: str | None = None
    stops: list[ExtractedStop] = Field(default_factory=list)


class ExtractedGuest(_Extracted):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    is_primary: bool = False
    dietary_restrictions: str | None = None
    accessibility_needs: str | None = None
    special_requests: str | None = None


class ExtractedInclusion(_Extracted):
    inclusion_type: str = "custom"
    description: str | None = None
    pricing_type: str = "flat"
    quantity: float | None = None
    unit_price: float | None = None


class ExtractedProposal(_Extracted):
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    trip_type: str | None = None
    trip_title: str | None = None
    party_size: int | None = None
    start_date: str | None = None
    end_date: str | None = None
    introduction: str | None = None
    special_notes: str | None = None


class SourceFileStatus(BaseModel):
    filename: str
    status: str
    error: str | None = None


class SmartImportResult(_Extracted):
    confidence: float = 0.0
    proposal: ExtractedProposal = Field(default_factory=ExtractedProposal)
    days: list[ExtractedDay] = Field(default_factory=list)
    guests: list[ExtractedGuest] = Field(default_factory=list)
    inclusions: list[ExtractedInclusion] = Field(default_factory=list)
    extraction_notes: str | None = None
    source_files: list[SourceFileStatus] = Field(default_factory=list)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        try:
            conf = float(value)
        except (TypeError, ValueError):
            return 0.0
        if math.isnan(conf):
            return 0.0
        return min(max(conf, 0.0), 1.0)
