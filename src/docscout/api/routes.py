import asyncio
import json
from pathlib import Path
from urllib.parse import urlparse

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse, StreamingResponse

from ..config.platforms import DEMO_PLATFORMS, get_platform_by_name
from .dto import DocumentRequest, ExploreRequest, SessionStartResponse

router = APIRouter()


def _validate_url(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise HTTPException(status_code=400, detail="Invalid URL format")


@router.get("/platforms")
def list_platforms():
    return [p.to_wire() for p in DEMO_PLATFORMS]


@router.get("/platforms/{name}")
def get_platform(name: str):
    platform = get_platform_by_name(name)
    if platform is None:
        raise HTTPException(status_code=404, detail=f"Unknown platform: {name}")
    return platform.to_wire()


@router.post("/sessions/docs")
async def start_documentation(req: DocumentRequest, request: Request):
    _validate_url(req.platform_url)
    try:
        session_id = await request.app.state.orchestrator.start_documentation(req.platform_name, req.platform_url)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    return SessionStartResponse(session_id=session_id).to_wire()


@router.post("/sessions/explore")
async def start_exploration(req: ExploreRequest, request: Request):
    _validate_url(req.url)
    try:
        session_id = await request.app.state.orchestrator.start_exploration(req.url)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    return SessionStartResponse(session_id=session_id).to_wire()


@router.get("/sessions/{session_id}")
def get_session(session_id: str, request: Request):
    progress = request.app.state.registry.get(session_id)
    if progress is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    documentation = request.app.state.doc_store.get_documentation(session_id)
    return {
        "session": progress.to_wire(),
        "documentation": documentation.to_wire() if documentation else None,
    }


@router.post("/sessions/{session_id}/cancel")
def cancel_session(session_id: str, request: Request):
    if not request.app.state.orchestrator.cancel(session_id):
        raise HTTPException(status_code=404, detail=f"No active session: {session_id}")
    return {"cancelled": True, "sessionId": session_id}


@router.get("/sessions/{session_id}/stream")
async def stream_session(session_id: str, request: Request):
    registry = request.app.state.registry
    interval = request.app.state.settings.progress_poll_seconds

    async def events():
        while True:
            progress = await registry.fetch(session_id)
            if progress is None:
                yield f"data: {json.dumps({'type': 'keepalive', 'sessionId': session_id})}\n\n"
            else:
                yield f"data: {json.dumps(progress.to_wire())}\n\n"
                if progress.status.is_terminal:
                    return
            await asyncio.sleep(interval)

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.get("/sessions/{session_id}/exploration")
def get_exploration(session_id: str, request: Request):
    result = request.app.state.doc_store.get_exploration(session_id)
    if result is None:
        raise HTTPException(status_code=404, detail=f"No exploration result for session: {session_id}")
    return result.to_wire()


@router.get("/sessions/{session_id}/screenshots/{filename}")
def get_screenshot(session_id: str, filename: str, request: Request):
    if Path(filename).name != filename or Path(session_id).name != session_id:
        raise HTTPException(status_code=400, detail="Invalid screenshot path")
    root = Path(request.app.state.settings.artifacts_root)
    path = root / "screenshots" / session_id / filename
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Screenshot not found")
    return FileResponse(path, media_type="image/png")


@router.get("/docs")
def list_documentation(request: Request):
    try:
        return request.app.state.doc_store.list_documentation()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/docs/{session_id}")
def get_documentation(session_id: str, request: Request):
    documentation = request.app.state.doc_store.get_documentation(session_id)
    if documentation is None:
        raise HTTPException(status_code=404, detail=f"No documentation for session: {session_id}")
    return documentation.to_wire()
