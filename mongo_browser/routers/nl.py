from fastapi import APIRouter, HTTPException, Query

from ..query_helper import NoCollectionSelected
from ..schemas import GenerateRequest
from ..services.mongo import conn_mgr

router = APIRouter(tags=["nl"])


@router.post("/nl/generate")
def generate(payload: GenerateRequest, connection_id: str = Query(..., alias="connectionId")):
    """
    payload: { prompt: string, shareSamples?: bool, autoRun?: bool }
    Returns: { kind, message?, params?, state }
    """
    session = conn_mgr.get(connection_id)
    if not session:
        raise HTTPException(status_code=404, detail="Connection not found")
    try:
        result = session.generate_query(payload.prompt, payload.share_samples, payload.auto_run)
    except NoCollectionSelected as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {
        "kind": result.kind.value,
        "message": result.message,
        "params": result.params.to_dict() if result.params is not None else None,
        "state": session.state.to_dict(),
    }
