"""Stop, terminate and telemetry refresh for provisioned orders."""
import logging
from datetime import datetime, timezone
from typing import Optional

from arion_flow.core.exceptions import NotFoundError, UpstreamError
from arion_flow.modules.orders.schemas import (
    OrderResponse, StopResponse, TerminateResponse, Telemetry, telemetry_from_pod
)
from arion_flow.modules.orders.service import OrderService
from arion_flow.modules.runpod.client import RunPodClient, RunPodError
from arion_flow.modules.runpod.gpu_types import workspace_url_for

logger = logging.getLogger(__name__)

VOLUME_DELETED_STATUSES = (200, 204)


class OrderLifecycleService:
    def __init__(self, order_service: OrderService, runpod: RunPodClient, workspace_port: int = 8080):
        self.orders = order_service
        self.runpod = runpod
        self.workspace_port = workspace_port

    def _require_pod(self, order: OrderResponse, detail: str = "Order not found") -> str:
        if not order.pod_id:
            raise NotFoundError(detail)
        return order.pod_id

    def stop(self, order: OrderResponse) -> StopResponse:
        """Send podStop. The order row is left as is; telemetry picks up the new runtime status."""
        pod_id = self._require_pod(order)
        try:
            result = self.runpod.stop_pod(pod_id)
        except RunPodError as e:
            logger.error(f"Stopping pod {pod_id} for order {order.id} failed: {e.message}")
            raise UpstreamError("Failed to stop pod")
        logger.info(f"Stop sent for pod {pod_id} (order {order.id})")
        return StopResponse(result=result)

    def terminate(self, order: OrderResponse, delete_workspace: bool = False) -> TerminateResponse:
        pod_id = self._require_pod(order)
        try:
            result = self.runpod.terminate_pod(pod_id)
        except RunPodError as e:
            logger.error(f"Terminating pod {pod_id} for order {order.id} failed: {e.message}")
            raise UpstreamError(e.message)

        deleted_workspace = False
        if delete_workspace and order.volume_id:
            try:
                status_code = self.runpod.delete_network_volume(order.volume_id)
                deleted_workspace = status_code in VOLUME_DELETED_STATUSES
            except RunPodError as e:
                logger.error(f"Deleting volume {order.volume_id} for order {order.id} failed: {e.message}")

        update_data = {"status": "deleted", "pod_id": None}
        if deleted_workspace:
            update_data["volume_id"] = None
        try:
            self.orders.update_order(order.id, update_data)
        except Exception as e:
            logger.error(f"DB update error after terminating order {order.id}: {str(e)}")

        logger.info(f"Terminated pod {pod_id} (order {order.id}, workspace deleted: {deleted_workspace})")
        return TerminateResponse(deleted_workspace=deleted_workspace, result=result)

    def refresh_telemetry(self, order: OrderResponse) -> Telemetry:
        """Fetch pod runtime data and volume size, write status back onto the order."""
        pod_id = self._require_pod(order, "Order not found or missing pod_id")
        try:
            pod = self.runpod.get_pod_telemetry(pod_id)
        except RunPodError as e:
            raise UpstreamError(e.message)
        if not pod:
            raise NotFoundError("Pod not found")

        telemetry = telemetry_from_pod(
            pod,
            gpu_type=order.gpu_type,
            volume_size_gb=self._volume_size(order.volume_id),
            workspace_url=workspace_url_for(pod_id, self.workspace_port),
        )

        try:
            self.orders.update_order(order.id, {
                "runtime_status": telemetry.runtime_status,
                "uptime_seconds": telemetry.uptime_seconds,
                "last_checked": datetime.now(timezone.utc).isoformat(),
                "workspace_url": telemetry.workspace_url,
            })
        except Exception as e:
            logger.warning(f"Could not store telemetry for order {order.id}: {str(e)}")
        return telemetry

    def _volume_size(self, volume_id: Optional[str]) -> Optional[int]:
        if not volume_id:
            return None
        try:
            volume = self.runpod.get_network_volume(volume_id)
        except RunPodError as e:
            logger.warning(f"Could not fetch volume {volume_id}: {e.message}")
            return None
        return volume.get("size")
