"""Profile inspection endpoints."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from socialsignals.api.deps import DbSession
from socialsignals.repositories.profile_repo import ProfileRepository
from socialsignals.schemas.profile import ProfileListResponse, ProfileResponse

router = APIRouter()


@router.get("", response_model=ProfileListResponse)
async def list_profiles(
    db: DbSession,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    needs_enrichment: bool | None = None,
    search: str | None = Query(None, description="Search name, headline, URL, company"),
) -> ProfileListResponse:
    """List profiles with pagination and filtering."""
    repo = ProfileRepository(db)
    profiles, total = await repo.list_profiles(
        page=page,
        per_page=per_page,
        needs_enrichment=needs_enrichment,
        search=search,
    )
    return ProfileListResponse(
        items=profiles,
        total=total,
        page=page,
        per_page=per_page,
        pages=(total + per_page - 1) // per_page,
    )


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile(profile_id: UUID, db: DbSession) -> ProfileResponse:
    """Get a single profile."""
    repo = ProfileRepository(db)
    profile = await repo.get(profile_id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Profile {profile_id} not found",
        )
    return profile
