import logging
from datetime import date
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Response, status

from src.models import ReleasePayload, ReleaseResponse
from src.modules.api.base import ErrorHandlingBaseRoute
from src.services.filters import DateFilter, filter_releases
from src.services.identity import Pending, resolve_identity
from src.services.releases import ReleaseRepository
from src.settings import SettingsDep

__all__ = ("router", "get_release_repository")

logger = logging.getLogger(__name__)


def get_release_repository(settings: SettingsDep) -> ReleaseRepository:
    """Release repository bound to the app-wide session factory"""
    return ReleaseRepository(sync_strategy=settings.releases.sync_strategy)


ReleaseRepositoryDep = Annotated[ReleaseRepository, Depends(get_release_repository)]

router = APIRouter(
    prefix="/releases",
    tags=["releases"],
    responses={404: {"description": "Not found"}},
    route_class=ErrorHandlingBaseRoute,
)


@router.get("/", response_model=list[ReleaseResponse])
async def list_releases(
    repository: ReleaseRepositoryDep,
    category: str | None = None,
    date_filter: DateFilter = DateFilter.ALL,
    start: date | None = None,
    end: date | None = None,
    sort_order: Literal["asc", "desc"] = "desc",
) -> list[ReleaseResponse]:
    """Get list of releases (filtered and sorted like in the editor)"""
    logger.debug(
        "[API] Getting releases: category=%r, date_filter=%s, sort_order=%s",
        category,
        date_filter,
        sort_order,
    )
    releases = await repository.fetch_all()
    return filter_releases(
        releases,
        category=category,
        date_filter=date_filter,
        start=start,
        end=end,
        sort_order=sort_order,
    )


@router.get("/{release_id}/", response_model=ReleaseResponse)
async def get_release(release_id: str, repository: ReleaseRepositoryDep) -> ReleaseResponse:
    """Get release by ID"""
    logger.debug("[API] Getting release by ID: '%s'", release_id)
    return await repository.get(release_id)


@router.post("/", response_model=ReleaseResponse)
async def save_release(
    payload: ReleasePayload,
    response: Response,
    repository: ReleaseRepositoryDep,
) -> ReleaseResponse:
    """Create a new release or update the stored one (decided by payload's identity)"""
    created = isinstance(resolve_identity(payload.id, persisted=payload.persisted), Pending)
    release = await repository.save(payload)
    if created:
        response.status_code = status.HTTP_201_CREATED

    logger.info("[API] Release %s: '%s'", "created" if created else "updated", release.id)
    return release


@router.put("/{release_id}/", response_model=ReleaseResponse)
async def update_release(
    release_id: str,
    payload: ReleasePayload,
    repository: ReleaseRepositoryDep,
) -> ReleaseResponse:
    """Update stored release by ID (fields / relations missing in payload stay untouched)"""
    payload = payload.model_copy(update={"id": release_id, "persisted": True})
    release = await repository.save(payload)
    logger.info("[API] Release updated: '%s'", release.id)
    return release


@router.delete("/{release_id}/", status_code=status.HTTP_204_NO_CONTENT)
async def delete_release(release_id: str, repository: ReleaseRepositoryDep) -> None:
    """Delete release by ID (with its tag links and media)"""
    logger.debug("[API] Deleting release by ID: '%s'", release_id)
    await repository.delete(release_id)
    logger.info("[API] Release deleted: '%s'", release_id)
