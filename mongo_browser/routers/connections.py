from fastapi import APIRouter, HTTPException

from ..config import Settings
from ..schemas import ConnectRequest, ConnectResponse
from ..services.browser import BrowserSession
from ..services.generator import GeminiQueryGenerator
from ..services.mongo import MongoDataSource, conn_mgr

router = APIRouter(tags=["connections"])


def make_session(client) -> BrowserSession:
    settings = Settings.from_env()
    data_source = MongoDataSource(client)
    return BrowserSession(data_source, GeminiQueryGenerator(data_source, settings), settings)


@router.post("/connect", response_model=ConnectResponse)
def connect(req: ConnectRequest):
    try:
        conn_id = conn_mgr.create(req.uri, make_session)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Connection failed: {e}")
    if req.database:
        conn_mgr.get(conn_id).change_database(req.database)
    return {"connectionId": conn_id}


@router.get("/connections")
def list_connections():
    return {"connections": conn_mgr.list_ids()}


@router.delete("/connections/{connection_id}")
def close_connection(connection_id: str):
    ok = conn_mgr.close(connection_id)
    if not ok:
        raise HTTPException(status_code=404, detail="Connection not found")
    return {"closed": True}
