from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from ..auth import require_admin
from ..repositories import AnnouncementStore
from ..schemas import AnnouncementCreate, AnnouncementFeed, AnnouncementOut, AnnouncementUpdate, OkResponse

public_router = APIRouter(
    prefix="/api/announcements",
    tags=["announcements"],
)

admin_router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    responses={
        401: {"description": "Missing or invalid bearer token"},
        500: {"description": "ADMIN_TOKEN not configured or storage failure"},
    },
)


def get_store(request: Request) -> AnnouncementStore:
    """
    Dependency returning the store handle created once by create_app.
    """
    return request.app.state.store


# PUBLIC_INTERFACE
@public_router.get(
    "",
    response_model=AnnouncementFeed,
    summary="List Announcements",
    description="Public feed of every announcement, most recent publishedAt first.",
)
def list_announcements(store: AnnouncementStore = Depends(get_store)) -> AnnouncementFeed:
    """
    List announcements for the public feed.
    """
    return AnnouncementFeed(announcements=[AnnouncementOut(**a) for a in store.list()])  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@admin_router.post(
    "/validate",
    response_model=OkResponse,
    summary="Validate Admin Token",
    description="Returns ok when the bearer token matches ADMIN_TOKEN; used by the admin console to sign in.",
)
def validate_token() -> OkResponse:
    return OkResponse()


# PUBLIC_INTERFACE
@admin_router.post(
    "/announcements",
    response_model=AnnouncementOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Announcement",
    description="Create a new announcement and return the created resource.",
    responses={
        201: {"description": "Announcement created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_announcement(payload: AnnouncementCreate, store: AnnouncementStore = Depends(get_store)) -> AnnouncementOut:
    """
    Create a new announcement.
    """
    created = store.create(
        title=payload.title,
        body=payload.body,
        published_at=payload.published_at,
        highlight=payload.highlight,
    )
    return AnnouncementOut(**created)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@admin_router.patch(
    "/announcements/{announcement_id}",
    response_model=AnnouncementOut,
    summary="Update Announcement",
    description="Partially update fields of an announcement; omitted fields keep their value.",
    responses={
        200: {"description": "Announcement updated"},
        404: {"description": "Announcement not found"},
        422: {"description": "Validation error"},
    },
)
def update_announcement(
    announcement_id: str,
    payload: AnnouncementUpdate,
    store: AnnouncementStore = Depends(get_store),
) -> AnnouncementOut:
    """
    Partial update of an announcement.
    """
    updated = store.update(announcement_id, payload.changes())
    return AnnouncementOut(**updated)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@admin_router.delete(
    "/announcements/{announcement_id}",
    response_model=OkResponse,
    summary="Delete Announcement",
    description="Delete an announcement by ID.",
    responses={
        200: {"description": "Announcement deleted"},
        404: {"description": "Announcement not found"},
    },
)
def delete_announcement(announcement_id: str, store: AnnouncementStore = Depends(get_store)) -> OkResponse:
    """
    Delete an announcement. Returns ok on success, 404 if not found.
    """
    store.delete(announcement_id)
    return OkResponse()
