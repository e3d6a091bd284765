from supabase import Client
from arion_flow.core.exceptions import NotFoundError
from arion_flow.modules.orders.schemas import OrderResponse
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class OrderService:
    """Row access for the orders table"""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_order(
        self,
        user_id: str,
        organization_id: Optional[str],
        name: str,
        datacenter_id: str,
        storage_gb: int,
        gpu_type: str
    ) -> OrderResponse:
        """Insert a pending order"""
        try:
            result = self.supabase.table("orders").insert({
                "user_id": user_id,
                "organization_id": organization_id,
                "name": name,
                "datacenter_id": datacenter_id,
                "storage_gb": storage_gb,
                "gpu_type": gpu_type,
                "status": "pending",
            }).execute()
        except Exception as e:
            logger.error(f"Error creating order: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Supabase insert error: {str(e)}")

        if not result.data:
            raise HTTPException(status_code=500, detail="Supabase insert returned no row.")
        return OrderResponse(**result.data[0])

    def get_order_by_id(self, order_id: str) -> OrderResponse:
        try:
            result = self.supabase.table("orders")\
                .select("*")\
                .eq("id", order_id)\
                .maybe_single()\
                .execute()
        except Exception as e:
            logger.error(f"Error getting order: {str(e)}")
            raise HTTPException(status_code=500, detail=str(e))

        if not result or not result.data:
            raise NotFoundError("Order not found")
        return OrderResponse(**result.data)

    def update_order(self, order_id: str, update_data: Dict[str, Any]) -> Optional[OrderResponse]:
        """Update fields on an order. Raises on database errors."""
        update_data = {**update_data, "updated_at": _now()}
        result = self.supabase.table("orders")\
            .update(update_data)\
            .eq("id", order_id)\
            .execute()
        if result.data:
            return OrderResponse(**result.data[0])
        return None

    def mark_failed(self, order_id: str, reason: str) -> None:
        """Best-effort: record a provisioning failure on the order"""
        try:
            self.update_order(order_id, {"status": "failed", "failure_reason": reason})
        except Exception as e:
            logger.error(f"Failed to mark order {order_id} as failed: {str(e)}")

    def list_orders(
        self,
        user_id: Optional[str] = None,
        organization_ids: Optional[List[str]] = None,
        active_only: bool = False
    ) -> List[OrderResponse]:
        """List orders newest first.

        With neither ``user_id`` nor ``organization_ids`` every order is returned
        (arion_admin). Otherwise orders owned by the user or by any of the
        organizations are returned.
        """
        try:
            rows: Dict[str, Dict[str, Any]] = {}
            if user_id is None and organization_ids is None:
                query = self.supabase.table("orders").select("*")
                for row in query.order("created_at", desc=True).execute().data or []:
                    rows[row["id"]] = row
            else:
                queries = []
                if user_id is not None:
                    queries.append(self.supabase.table("orders").select("*").eq("user_id", user_id))
                if organization_ids:
                    queries.append(self.supabase.table("orders").select("*").in_("organization_id", organization_ids))
                for query in queries:
                    for row in query.execute().data or []:
                        rows[row["id"]] = row
        except Exception as e:
            logger.error(f"Error listing orders: {str(e)}")
            raise HTTPException(status_code=500, detail=str(e))

        orders = [OrderResponse(**row) for row in rows.values()]
        if active_only:
            orders = [o for o in orders if o.pod_id]
        orders.sort(key=lambda o: o.created_at.timestamp() if o.created_at else 0, reverse=True)
        return orders

    def list_running_orders(self) -> List[OrderResponse]:
        """Orders with a live pod, for background telemetry polling"""
        result = self.supabase.table("orders")\
            .select("*")\
            .eq("status", "running")\
            .execute()
        return [OrderResponse(**row) for row in result.data or [] if row.get("pod_id")]
