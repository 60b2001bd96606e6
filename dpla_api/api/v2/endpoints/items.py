"""
Item endpoints - search, fetch by ids, random item.
Design: Thin controller; the search service holds the pipeline. Errors are rendered by the app.
"""

from fastapi import APIRouter

from dpla_api.core.dependencies import RawParams, SearchServiceDep
from dpla_api.schemas.search import ErrorResponse

router = APIRouter()

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


@router.get("/items", responses=ERROR_RESPONSES)
async def search_items(svc: SearchServiceDep, raw_params: RawParams):
    """Search items. Every query parameter is validated against the DPLA MAP fields."""
    result = await svc.search(raw_params)
    return result.to_response()


@router.get("/items/{item_ids}", responses=ERROR_RESPONSES)
async def fetch_items(item_ids: str, svc: SearchServiceDep, raw_params: RawParams):
    """Fetch one or more items by comma-separated ids."""
    result = await svc.fetch(item_ids, raw_params)
    return result.to_response()


@router.get("/random", responses=ERROR_RESPONSES)
async def random_item(svc: SearchServiceDep, raw_params: RawParams):
    """One random item, optionally restricted by `filter`."""
    result = await svc.random(raw_params)
    return result.to_response()
