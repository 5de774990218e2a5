from __future__ import annotations

from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationInfo,
    field_validator,
    model_validator,
)

from .utils import normalize_timestamp


def _require_text(v: Optional[str], field: str) -> Optional[str]:
    """Strip whitespace and reject values that are empty afterwards."""
    if v is None:
        return v
    s = v.strip()
    if not s:
        raise ValueError(f"{field} cannot be empty")
    return s


def _check_timestamp(v: Optional[str]) -> Optional[str]:
    """Reject publishedAt values that are not ISO8601 dates or datetimes."""
    if v is None:
        return v
    try:
        normalize_timestamp(v)
    except ValueError as e:
        raise ValueError("publishedAt must be a valid ISO date string") from e
    return v


# PUBLIC_INTERFACE
class AnnouncementCreate(BaseModel):
    """
    Schema for creating a new announcement.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "title": "Maintenance",
                "body": "System down 2AM-3AM",
                "publishedAt": "2025-02-01T02:00:00Z",
                "highlight": True,
            }
        },
    )

    title: StrictStr = Field(..., description="Announcement title; trimmed, must not be empty")
    body: StrictStr = Field(..., description="Announcement body; trimmed, inner line breaks preserved")
    published_at: Optional[StrictStr] = Field(
        default=None,
        alias="publishedAt",
        description="ISO8601 date or datetime; defaults to the time of creation",
    )
    highlight: Optional[StrictBool] = Field(default=None, description="Emphasise on the feed; defaults to false")

    @field_validator("title", "body")
    @classmethod
    def validate_text(cls, v: str, info: ValidationInfo) -> str:
        return _require_text(v, info.field_name)  # type: ignore[return-value]

    @field_validator("published_at")
    @classmethod
    def validate_published_at(cls, v: Optional[str]) -> Optional[str]:
        return _check_timestamp(v)


# PUBLIC_INTERFACE
class AnnouncementUpdate(BaseModel):
    """
    Schema for updating an existing announcement.
    All fields are optional; at least one must be supplied and only supplied
    fields are changed. Explicit nulls are rejected.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"highlight": True}},
    )

    title: Optional[StrictStr] = Field(default=None, description="New title")
    body: Optional[StrictStr] = Field(default=None, description="New body")
    published_at: Optional[StrictStr] = Field(default=None, alias="publishedAt", description="New ISO8601 timestamp")
    highlight: Optional[StrictBool] = Field(default=None, description="New highlight flag")

    @field_validator("title", "body")
    @classmethod
    def validate_text(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        return _require_text(v, info.field_name)

    @field_validator("published_at")
    @classmethod
    def validate_published_at(cls, v: Optional[str]) -> Optional[str]:
        return _check_timestamp(v)

    @model_validator(mode="after")
    def validate_fields_present(self) -> "AnnouncementUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        """Supplied fields keyed by their stored names (publishedAt, not published_at)."""
        return self.model_dump(exclude_unset=True, by_alias=True)


# PUBLIC_INTERFACE
class AnnouncementOut(BaseModel):
    """
    Schema returned by the API for an announcement.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "3f1c2a8e-9c57-4c1e-8b44-2b3f0f3c9d10",
                "title": "Maintenance",
                "body": "System down 2AM-3AM",
                "publishedAt": "2025-02-01T02:00:00.000Z",
                "highlight": False,
            }
        },
    )

    id: str = Field(..., description="Unique identifier of the announcement")
    title: str = Field(..., description="Announcement title")
    body: str = Field(..., description="Announcement body")
    published_at: str = Field(..., alias="publishedAt", description="UTC ISO8601 publication timestamp")
    highlight: bool = Field(default=False, description="Whether the announcement is emphasised")


class AnnouncementFeed(BaseModel):
    """Public feed envelope."""

    announcements: List[AnnouncementOut] = Field(..., description="Announcements, most recent first")


class OkResponse(BaseModel):
    ok: bool = True
