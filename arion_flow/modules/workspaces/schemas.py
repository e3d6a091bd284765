from pydantic import BaseModel


class WorkspaceCheckResponse(BaseModel):
    ok: bool
    status: int
