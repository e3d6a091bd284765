from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from arion_flow.modules.orders.schemas import OrderResponse


class WorkspaceCard(BaseModel):
    order: OrderResponse
    status: str
    uptime: str
    workspace_online: bool = False
    telemetry: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class DashboardResponse(BaseModel):
    ok: bool = True
    message: str
    workspaces: List[WorkspaceCard] = []
