"""
Health checks - for load balancers, Kubernetes, and monitoring.
Challenge: Fast liveness; readiness pings the search backend.
"""

from typing import Annotated

from elasticsearch import AsyncElasticsearch
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dpla_api.config import get_settings
from dpla_api.search.elasticsearch_client import get_elasticsearch

router = APIRouter()
settings = get_settings()


@router.get("")
async def health():
    """Liveness: is the process up?"""
    return {"status": "ok", "app": settings.app_name}


@router.get("/ready")
async def ready(es: Annotated[AsyncElasticsearch, Depends(get_elasticsearch)]):
    """Readiness: can Elasticsearch be reached?"""
    if not await es.ping():
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ready"}
