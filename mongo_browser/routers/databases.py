from fastapi import APIRouter, HTTPException, Query

from ..schemas import DatabaseRequest
from ..services.mongo import conn_mgr

router = APIRouter(tags=["databases"])


@router.put("/browser/database")
def change_database(payload: DatabaseRequest, connection_id: str = Query(..., alias="connectionId")):
    """Switch the active database. The collection list reloads shortly after."""
    session = conn_mgr.get(connection_id)
    if not session:
        raise HTTPException(status_code=404, detail="Connection not found")
    session.change_database(payload.database)
    return session.state.to_dict()


@router.get("/browser/state")
def browser_state(connection_id: str = Query(..., alias="connectionId")):
    session = conn_mgr.get(connection_id)
    if not session:
        raise HTTPException(status_code=404, detail="Connection not found")
    return session.state.to_dict()
