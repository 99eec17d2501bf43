"""Pydantic models for payloads returned by the ThingSpeak read API.

Feed entries are validated leniently: a malformed value inside one entry is
kept as something the parser can reject, so a single bad entry never fails a
whole history payload.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FIELD_NUMBERS = range(1, 7)


class ThingSpeakEntry(BaseModel):
    """One feed entry; field values arrive as numeric strings or null."""

    model_config = ConfigDict(extra="ignore")

    created_at: Optional[str] = None
    entry_id: Optional[int] = None
    field1: Optional[str] = None
    field2: Optional[str] = None
    field3: Optional[str] = None
    field4: Optional[str] = None
    field5: Optional[str] = None
    field6: Optional[str] = None

    @field_validator("created_at", mode="before")
    @classmethod
    def _timestamp_text(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("entry_id", mode="before")
    @classmethod
    def _entry_id(cls, value: Any) -> Optional[int]:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().isdigit():
            return int(value)
        return None

    @field_validator("field1", "field2", "field3", "field4", "field5", "field6", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return None
        return str(value)

    def value_for(self, field_number: int) -> Optional[str]:
        if field_number not in FIELD_NUMBERS:
            return None
        return getattr(self, f"field{field_number}")


class ThingSpeakChannel(BaseModel):
    """Channel descriptor attached to history responses."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_entry_id: Optional[int] = None
    field1: Optional[str] = None
    field2: Optional[str] = None
    field3: Optional[str] = None
    field4: Optional[str] = None
    field5: Optional[str] = None
    field6: Optional[str] = None


class ThingSpeakHistory(BaseModel):
    model_config = ConfigDict(extra="ignore")

    channel: Optional[ThingSpeakChannel] = None
    feeds: List[ThingSpeakEntry] = Field(default_factory=list)

    @field_validator("feeds", mode="before")
    @classmethod
    def _drop_non_objects(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]
        return value
