import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..deps import get_store
from ..query import QueryEngine
from ..schemas import ErrorOut, PacketPage
from ..store import PacketStore, PacketStoreError

router = APIRouter(tags=["packets"])

logger = logging.getLogger(__name__)


@router.get("/packets", response_model=PacketPage, responses={500: {"model": ErrorOut}})
async def list_packets(
    page: int = Query(1, ge=1),
    limit: int = Query(25, ge=1, le=1000),
    search: str = "",
    store: PacketStore = Depends(get_store),
):
    try:
        return await QueryEngine(store).run(page=page, limit=limit, search=search)
    except PacketStoreError:
        logger.exception("Failed to retrieve packets (page=%s limit=%s search=%r)", page, limit, search)
        return JSONResponse(status_code=500, content={"error": "Failed to retrieve packets"})
