from __future__ import annotations

from typing import TypedDict


# PUBLIC_INTERFACE
class AnnouncementEntity(TypedDict):
    """
    A lightweight domain model representing one announcement as it is
    persisted (JSON file, key-value value, or in-memory list).

    Fields:
    - id: UUID4 string assigned at creation, never changed
    - title: Trimmed title
    - body: Trimmed body text, inner line breaks preserved
    - publishedAt: UTC ISO-8601 timestamp ('2025-01-31T13:45:00.000Z'), used for ordering
    - highlight: Whether the announcement is pinned/emphasised on the feed
    """

    id: str
    title: str
    body: str
    publishedAt: str
    highlight: bool
