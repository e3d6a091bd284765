from fastapi import APIRouter, Depends, Request
from arion_flow.core.dependencies import (
    require_authorized, get_user_organization_ids, get_access_cache, is_arion_admin
)
from arion_flow.database.supabase_client import get_supabase_admin
from arion_flow.modules.dashboard.board import WorkspaceBoard, workspace_status, format_uptime
from arion_flow.modules.dashboard.schemas import DashboardResponse, WorkspaceCard
from arion_flow.modules.orders.routes import get_order_service
from arion_flow.modules.orders.service import OrderService
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def get_workspace_board(request: Request) -> WorkspaceBoard:
    return request.app.state.board


def summary_message(count: int) -> str:
    if count == 0:
        return "No active workspaces found."
    return f"Displaying {count} active workspace(s)."


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    user_data: Dict = Depends(require_authorized),
    service: OrderService = Depends(get_order_service),
    board: WorkspaceBoard = Depends(get_workspace_board),
    supabase: Client = Depends(get_supabase_admin),
    cache: Dict = Depends(get_access_cache)
):
    """Active workspaces visible to the user, merged with the latest polled telemetry"""
    if is_arion_admin(user_data):
        orders = service.list_orders(active_only=True)
    else:
        orders = service.list_orders(
            user_id=user_data["id"],
            organization_ids=get_user_organization_ids(user_data["id"], supabase, cache),
            active_only=True,
        )

    cards = []
    for order in orders:
        view = board.get(order.id)
        telemetry = view.telemetry if view else None
        uptime_seconds = telemetry.get("uptime_seconds") if telemetry else order.uptime_seconds
        cards.append(WorkspaceCard(
            order=order,
            status=workspace_status(view, order.runtime_status),
            uptime=format_uptime(uptime_seconds),
            workspace_online=view.workspace_online if view else False,
            telemetry=telemetry,
            error=view.error if view else None,
        ))
    return DashboardResponse(message=summary_message(len(cards)), workspaces=cards)
