from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from arion_flow.modules.workspaces.probe import (
    WorkspaceProbe, ProbeFailed, is_probe_target, is_reachable_status
)
from arion_flow.modules.workspaces.schemas import WorkspaceCheckResponse
from typing import Optional

router = APIRouter(tags=["workspaces"])

# Statuses that cannot carry a JSON body
_BODYLESS_STATUSES = (204, 304)


def get_workspace_probe(request: Request) -> WorkspaceProbe:
    return request.app.state.probe


def _reply(status_code: int, payload: WorkspaceCheckResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=payload.model_dump())


@router.get("/check-workspace", response_model=WorkspaceCheckResponse)
def check_workspace(
    url: Optional[str] = None,
    workspace_url: Optional[str] = Query(None, alias="workspaceUrl"),
    probe: WorkspaceProbe = Depends(get_workspace_probe)
):
    """Probe a workspace URL; the response status mirrors the workspace's own status."""
    target = url or workspace_url
    if not is_probe_target(target):
        return _reply(400, WorkspaceCheckResponse(ok=False, status=0))
    try:
        status_code = probe.check(target)
    except ProbeFailed as e:
        return _reply(504 if e.timed_out else 502, WorkspaceCheckResponse(ok=False, status=0))
    payload = WorkspaceCheckResponse(ok=is_reachable_status(status_code), status=status_code)
    return _reply(200 if status_code in _BODYLESS_STATUSES else status_code, payload)
