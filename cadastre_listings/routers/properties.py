from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from structlog import get_logger

from cadastre_listings.config import settings
from cadastre_listings.core.exceptions import InvalidQueryError
from cadastre_listings.dependencies.listings import get_listing_service
from cadastre_listings.dependencies.rate_limit import rate_limit
from cadastre_listings.schemas.property import Property, PropertyQuery, PropertyResponse, PropertyStats
from cadastre_listings.services.collection import CollectionResult
from cadastre_listings.services.formatting import display_fields
from cadastre_listings.services.listings import ListingService
from cadastre_listings.services.query import compute_stats, filter_properties, search, sort_properties
from cadastre_listings.services.recommend import similar

logger = get_logger()
router = APIRouter(prefix="/api/v1", tags=["properties"])


def to_response(prop: Property) -> PropertyResponse:
    return PropertyResponse(**prop.model_dump(), **display_fields(prop))


async def load_snapshot(service: ListingService) -> CollectionResult:
    try:
        return await service.snapshot()
    except Exception as e:
        logger.error("Snapshot build failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load properties")


def published_by_id(snapshot: CollectionResult, id: str) -> Property:
    item = next((p for p in snapshot.properties if p.id == id and p.published), None)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return item


@router.get("/properties", response_model=List[PropertyResponse], dependencies=[Depends(rate_limit(times=30, seconds=60))])
async def list_properties(
    response: Response,
    query: PropertyQuery = Depends(),
    service: ListingService = Depends(get_listing_service),
):
    logger.info("Received properties request", query_params=query.model_dump(exclude_none=True))
    snapshot = await load_snapshot(service)
    if snapshot.source_errors:
        response.headers["X-Degraded-Sources"] = ",".join(k.value for k in snapshot.source_errors)

    try:
        results = search(snapshot.properties, query.q)
        results = filter_properties(results, query.criteria())
        results = sort_properties(results, query.sort_by)
    except InvalidQueryError as e:
        logger.warning("Invalid properties query", error=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if query.limit is not None:
        results = results[:query.limit]
    logger.info("Properties query completed", result_count=len(results), degraded=bool(snapshot.source_errors))
    return [to_response(p) for p in results]


@router.get("/properties/stats", response_model=PropertyStats, dependencies=[Depends(rate_limit(times=30, seconds=60))])
async def property_stats(service: ListingService = Depends(get_listing_service)):
    snapshot = await load_snapshot(service)
    return compute_stats(snapshot.properties)


@router.get("/properties/{id}", response_model=PropertyResponse, dependencies=[Depends(rate_limit(times=60, seconds=60))])
async def get_property(id: str, service: ListingService = Depends(get_listing_service)):
    snapshot = await load_snapshot(service)
    return to_response(published_by_id(snapshot, id))


@router.get("/properties/{id}/similar", response_model=List[PropertyResponse], dependencies=[Depends(rate_limit(times=30, seconds=60))])
async def similar_properties(
    id: str,
    limit: Optional[int] = Query(None, le=50),
    service: ListingService = Depends(get_listing_service),
):
    snapshot = await load_snapshot(service)
    target = published_by_id(snapshot, id)
    pool = [p for p in snapshot.properties if p.published]
    try:
        results = similar(
            target,
            pool,
            settings.SIMILAR_DEFAULT_LIMIT if limit is None else limit,
            price_tolerance=settings.SIMILAR_PRICE_TOLERANCE,
        )
    except InvalidQueryError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.info("Similar properties", id=id, result_count=len(results))
    return [to_response(p) for p in results]
