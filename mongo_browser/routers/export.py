from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import FileResponse, Response
from starlette.background import BackgroundTask
import tempfile
import shutil
import os
import datetime

from ..config import Settings
from ..services.files import DirectoryFileSaver
from ..services.mongo import conn_mgr

router = APIRouter(tags=["export"])


@router.post("/export")
def export_collection(connection_id: str = Query(..., alias="connectionId")):
    """Export every document matching the last-run query as NDJSON into the export directory."""
    session = conn_mgr.get(connection_id)
    if not session:
        raise HTTPException(status_code=404, detail="Connection not found")
    saver = DirectoryFileSaver(Settings.from_env().export_dir)
    result = session.export_collection(saver)
    if result.cancelled:
        return {"success": False, "cancelled": True, "error": result.error}
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)
    return {"success": True, "filePath": result.file_path}


@router.get("/export/page")
def export_page(
    connection_id: str = Query(..., alias="connectionId"),
    format: str = Query("json", description="json|csv|excel"),
):
    """Download the page currently on screen."""
    session = conn_mgr.get(connection_id)
    if not session:
        raise HTTPException(status_code=404, detail="Connection not found")

    f = format.lower()
    if f not in ("json", "csv", "excel"):
        raise HTTPException(status_code=400, detail="Invalid format. Use json|csv|excel")

    renderer = session.renderer()
    collection = session.state.selected_collection or "documents"
    ts = datetime.datetime.now().strftime("%Y%m%d-%H%M%S")
    if f == "json":
        return Response(
            renderer.to_json(),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{collection}_page{renderer.page}_{ts}.json"'},
        )
    if f == "csv":
        return Response(
            renderer.to_csv(),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{collection}_page{renderer.page}_{ts}.csv"'},
        )

    safe_name = f"{collection}_page{renderer.page}_{ts}.xlsx"
    tmp_dir = tempfile.mkdtemp(prefix="export_")
    out_path = os.path.join(tmp_dir, safe_name)
    try:
        renderer.export_excel(out_path, collection)
    except Exception as e:
        shutil.rmtree(tmp_dir, ignore_errors=True)
        raise HTTPException(status_code=400, detail=str(e))
    return FileResponse(
        out_path,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        filename=safe_name,
        background=BackgroundTask(shutil.rmtree, tmp_dir, ignore_errors=True),
    )
