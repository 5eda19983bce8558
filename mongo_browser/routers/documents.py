from fastapi import APIRouter, HTTPException, Query

from ..query_params import QueryFieldError
from ..render import ViewMode, row_dicts
from ..schemas import PageRequest, PageSizeRequest, RawQueryFields
from ..services.mongo import conn_mgr

router = APIRouter(tags=["documents"])


@router.post("/documents/query")
def query_documents(payload: RawQueryFields, connection_id: str = Query(..., alias="connectionId")):
    """Run the query form: each field is JSON text (pipeline: one stage per line)."""
    session = conn_mgr.get(connection_id)
    if not session:
        raise HTTPException(status_code=404, detail="Connection not found")
    try:
        return session.run_manual_query(payload).to_dict()
    except QueryFieldError as e:
        raise HTTPException(status_code=422, detail={"message": str(e), "fields": e.errors})


@router.post("/documents/page")
def select_page(payload: PageRequest, connection_id: str = Query(..., alias="connectionId")):
    session = conn_mgr.get(connection_id)
    if not session:
        raise HTTPException(status_code=404, detail="Connection not found")
    return session.select_page(payload.page, payload.params).to_dict()


@router.post("/documents/page-size")
def change_page_size(payload: PageSizeRequest, connection_id: str = Query(..., alias="connectionId")):
    session = conn_mgr.get(connection_id)
    if not session:
        raise HTTPException(status_code=404, detail="Connection not found")
    try:
        return session.change_page_size(payload.page_size).to_dict()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/documents/view")
def view_documents(
    connection_id: str = Query(..., alias="connectionId"),
    mode: ViewMode = Query(ViewMode.TABLE),
):
    """Current page as a table (columns + formatted rows) or pretty JSON."""
    session = conn_mgr.get(connection_id)
    if not session:
        raise HTTPException(status_code=404, detail="Connection not found")
    renderer = session.renderer()
    if mode is ViewMode.JSON:
        return {"mode": mode.value, "json": renderer.to_json()}
    return {
        "mode": mode.value,
        "columns": ["#"] + renderer.columns,
        "rows": row_dicts(renderer),
    }
