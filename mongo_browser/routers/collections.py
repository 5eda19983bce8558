from fastapi import APIRouter, HTTPException, Query
from typing import List

from ..schemas import CollectionInfo, SelectCollectionRequest
from ..services.mongo import conn_mgr

router = APIRouter(tags=["collections"])


@router.get("/collections", response_model=List[CollectionInfo], response_model_by_alias=True)
def list_collections(connection_id: str = Query(..., alias="connectionId")):
    session = conn_mgr.get(connection_id)
    if not session:
        raise HTTPException(status_code=404, detail="Connection not found")
    return list(session.state.collections)


@router.post("/collections/reload")
def reload_collections(connection_id: str = Query(..., alias="connectionId")):
    """Reload the collection list now, bypassing the debounce."""
    session = conn_mgr.get(connection_id)
    if not session:
        raise HTTPException(status_code=404, detail="Connection not found")
    return session.reload_collections().to_dict()


@router.post("/collections/select")
def select_collection(payload: SelectCollectionRequest, connection_id: str = Query(..., alias="connectionId")):
    session = conn_mgr.get(connection_id)
    if not session:
        raise HTTPException(status_code=404, detail="Connection not found")
    try:
        return session.select_collection(payload.name).to_dict()
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Collection not found: {payload.name}")
