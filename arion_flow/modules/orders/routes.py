from fastapi import APIRouter, Body, Depends
from arion_flow.config import Settings
from arion_flow.core.dependencies import (
    get_app_settings, get_runpod, require_authorized, check_order_access, check_organization_member,
    get_user_organization_ids, get_access_cache, is_arion_admin
)
from arion_flow.core.exceptions import PermissionDenied
from arion_flow.database.supabase_client import get_supabase_admin
from arion_flow.modules.orders.lifecycle import OrderLifecycleService
from arion_flow.modules.orders.provisioning import OrderProvisioner
from arion_flow.modules.orders.schemas import (
    OrderCreate, OrderEnvelope, OrderListResponse, ProvisionResponse,
    TerminateRequest, StopResponse, TerminateResponse, TelemetryResponse
)
from arion_flow.modules.orders.service import OrderService
from arion_flow.modules.runpod.client import RunPodClient
from supabase import Client
from typing import Dict, Optional

router = APIRouter(prefix="/orders", tags=["orders"])


def get_order_service(supabase: Client = Depends(get_supabase_admin)) -> OrderService:
    return OrderService(supabase)


def get_order_provisioner(
    order_service: OrderService = Depends(get_order_service),
    runpod: RunPodClient = Depends(get_runpod),
    settings: Settings = Depends(get_app_settings)
) -> OrderProvisioner:
    return OrderProvisioner(order_service, runpod, settings)


def get_lifecycle_service(
    order_service: OrderService = Depends(get_order_service),
    runpod: RunPodClient = Depends(get_runpod),
    settings: Settings = Depends(get_app_settings)
) -> OrderLifecycleService:
    return OrderLifecycleService(order_service, runpod, settings.workspace_port)


def resolve_order_organization(
    requested_id: Optional[str],
    user_data: Dict,
    supabase: Client,
    cache: Optional[Dict] = None
) -> Optional[str]:
    """Organization an order is placed under: the requested one if the user belongs to it, else their first."""
    if requested_id:
        check_organization_member(requested_id, user_data, supabase, cache)
        return requested_id
    organization_ids = get_user_organization_ids(user_data["id"], supabase, cache)
    if organization_ids:
        return organization_ids[0]
    if is_arion_admin(user_data):
        return None
    raise PermissionDenied("You must belong to an organization to place orders")


def load_accessible_order(order_id: str, user_data: Dict, service: OrderService, supabase: Client):
    order = service.get_order_by_id(order_id)
    check_order_access(order.model_dump(), user_data, supabase)
    return order


@router.post("", response_model=ProvisionResponse, response_model_by_alias=True)
def create_order(
    order_data: OrderCreate,
    user_data: Dict = Depends(require_authorized),
    provisioner: OrderProvisioner = Depends(get_order_provisioner),
    supabase: Client = Depends(get_supabase_admin),
    cache: Dict = Depends(get_access_cache)
):
    """
    Place an order and provision its workspace.
    Blocks until the pod is RUNNING or the readiness poll gives up.
    """
    provisioner.validate(order_data)
    organization_id = resolve_order_organization(order_data.organization_id, user_data, supabase, cache)
    return provisioner.provision(order_data, user_data["id"], organization_id)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    active: bool = False,
    user_data: Dict = Depends(require_authorized),
    service: OrderService = Depends(get_order_service),
    supabase: Client = Depends(get_supabase_admin),
    cache: Dict = Depends(get_access_cache)
):
    """Orders visible to the user (own + their organizations'; everything for arion_admin)"""
    if is_arion_admin(user_data):
        orders = service.list_orders(active_only=active)
    else:
        orders = service.list_orders(
            user_id=user_data["id"],
            organization_ids=get_user_organization_ids(user_data["id"], supabase, cache),
            active_only=active,
        )
    return OrderListResponse(orders=orders)


@router.get("/{order_id}", response_model=OrderEnvelope)
async def get_order(
    order_id: str,
    user_data: Dict = Depends(require_authorized),
    service: OrderService = Depends(get_order_service),
    supabase: Client = Depends(get_supabase_admin)
):
    return OrderEnvelope(order=load_accessible_order(order_id, user_data, service, supabase))


@router.post("/{order_id}/stop", response_model=StopResponse)
def stop_order(
    order_id: str,
    user_data: Dict = Depends(require_authorized),
    service: OrderService = Depends(get_order_service),
    lifecycle: OrderLifecycleService = Depends(get_lifecycle_service),
    supabase: Client = Depends(get_supabase_admin)
):
    """Stop the order's pod (the volume is kept)"""
    order = load_accessible_order(order_id, user_data, service, supabase)
    return lifecycle.stop(order)


@router.post("/{order_id}/terminate", response_model=TerminateResponse, response_model_by_alias=True)
def terminate_order(
    order_id: str,
    terminate_data: Optional[TerminateRequest] = Body(None),
    user_data: Dict = Depends(require_authorized),
    service: OrderService = Depends(get_order_service),
    lifecycle: OrderLifecycleService = Depends(get_lifecycle_service),
    supabase: Client = Depends(get_supabase_admin)
):
    """Terminate the pod, optionally deleting the network volume (deleteWorkspace)"""
    order = load_accessible_order(order_id, user_data, service, supabase)
    delete_workspace = terminate_data.delete_workspace if terminate_data else False
    return lifecycle.terminate(order, delete_workspace=delete_workspace)


@router.get("/{order_id}/telemetry", response_model=TelemetryResponse)
def get_order_telemetry(
    order_id: str,
    user_data: Dict = Depends(require_authorized),
    service: OrderService = Depends(get_order_service),
    lifecycle: OrderLifecycleService = Depends(get_lifecycle_service),
    supabase: Client = Depends(get_supabase_admin)
):
    """Refresh and return pod telemetry for the dashboard"""
    order = load_accessible_order(order_id, user_data, service, supabase)
    return TelemetryResponse(telemetry=lifecycle.refresh_telemetry(order))
