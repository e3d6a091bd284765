"""
Order provisioning: network volume, pod, readiness poll, database update.

Runs inside the request that placed the order and blocks it for up to the poll
budget (12 x 5s by default). Each remote resource registers its removal on a
CompensationStack so a failure in a later step tears down what was already
created before the order is marked failed.
"""
import time
import logging
from typing import Any, Callable, Dict, Optional

from fastapi import HTTPException

from arion_flow.config import Settings
from arion_flow.core.compensation import CompensationStack
from arion_flow.core.exceptions import ValidationError, UpstreamError
from arion_flow.modules.orders.schemas import OrderCreate, ProvisionResponse
from arion_flow.modules.orders.service import OrderService
from arion_flow.modules.runpod.client import RunPodClient, RunPodError
from arion_flow.modules.runpod.gpu_types import (
    is_supported_datacenter, normalize_gpu_type, workspace_url_for
)

logger = logging.getLogger(__name__)

POD_RUNNING = "RUNNING"


class OrderProvisioner:
    def __init__(
        self,
        order_service: OrderService,
        runpod: RunPodClient,
        settings: Settings,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.orders = order_service
        self.runpod = runpod
        self.settings = settings
        self.sleep = sleep

    def validate(self, order_data: OrderCreate) -> None:
        if not is_supported_datacenter(order_data.datacenter_id):
            raise ValidationError(f"Region {order_data.datacenter_id} not supported.")
        if not self.settings.runpod_configured:
            raise HTTPException(status_code=500, detail="Missing required RUNPOD environment variables.")

    def provision(self, order_data: OrderCreate, user_id: str, organization_id: Optional[str]) -> ProvisionResponse:
        self.validate(order_data)

        gpu_type = order_data.gpu_type or self.settings.default_gpu_type
        order = self.orders.create_order(
            user_id=user_id,
            organization_id=organization_id,
            name=order_data.name,
            datacenter_id=order_data.datacenter_id,
            storage_gb=order_data.storage_gb,
            gpu_type=gpu_type,
        )
        logger.info(f"Order {order.id} created for user {user_id} in {order_data.datacenter_id}")

        compensation = CompensationStack(f"order {order.id}")

        try:
            volume = self.runpod.create_network_volume(
                name=f"{order_data.name}-volume",
                size_gb=order_data.storage_gb,
                datacenter_id=order_data.datacenter_id,
            )
        except RunPodError as e:
            reason = f"Volume creation failed: {e.message}"
            self._fail(order.id, compensation, reason)
            raise UpstreamError(reason)
        volume_id = volume["id"]
        compensation.push(f"delete network volume {volume_id}", lambda: self._delete_volume(volume_id))

        try:
            pod = self.runpod.create_pod(self._pod_payload(order_data, volume_id))
        except RunPodError as e:
            reason = f"Pod creation failed: {e.message}"
            self._fail(order.id, compensation, reason)
            raise UpstreamError(reason)
        pod_id = pod["id"]
        compensation.push(f"terminate pod {pod_id}", lambda: self.runpod.terminate_pod(pod_id))

        if not self.wait_until_running(pod_id):
            self._fail(order.id, compensation, "Pod did not reach RUNNING state")
            raise HTTPException(status_code=500, detail="Pod failed to start")

        workspace_url = workspace_url_for(pod_id, self.settings.workspace_port)
        try:
            self.orders.update_order(order.id, {
                "status": "running",
                "pod_id": pod_id,
                "volume_id": volume_id,
                "workspace_url": workspace_url,
            })
        except Exception as e:
            self._fail(order.id, compensation, f"Supabase update error: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Supabase update error: {str(e)}")

        compensation.clear()
        logger.info(f"Order {order.id} running on pod {pod_id} with volume {volume_id}")
        return ProvisionResponse(
            order_id=order.id,
            pod_id=pod_id,
            volume_id=volume_id,
            workspace_url=workspace_url,
            pod_ready=True,
        )

    def wait_until_running(self, pod_id: str) -> bool:
        """Poll the pod until it reports RUNNING. Sleeps before every attempt."""
        attempts = self.settings.pod_ready_poll_attempts
        for attempt in range(1, attempts + 1):
            self.sleep(self.settings.pod_ready_poll_interval_seconds)
            try:
                pod = self.runpod.get_pod(pod_id)
            except RunPodError as e:
                logger.warning(f"Pod {pod_id} status check {attempt}/{attempts} failed: {e.message}")
                continue
            status = pod.get("desiredStatus")
            logger.debug(f"Pod {pod_id} status check {attempt}/{attempts}: {status}")
            if status == POD_RUNNING:
                return True
        logger.warning(f"Pod {pod_id} not RUNNING after {attempts} checks")
        return False

    def _pod_payload(self, order_data: OrderCreate, volume_id: str) -> Dict[str, Any]:
        return {
            "cloudType": "SECURE",
            "computeType": "GPU",
            "gpuCount": 1,
            "gpuTypeIds": [normalize_gpu_type(order_data.gpu_type, self.settings.default_gpu_type)],
            "imageName": self.settings.pod_image_name,
            "name": order_data.name,
            "ports": self.settings.get_pod_ports_list(),
            "containerDiskInGb": self.settings.pod_container_disk_gb,
            "networkVolumeId": volume_id,
            "volumeMountPath": self.settings.pod_volume_mount_path,
            "dataCenterIds": [order_data.datacenter_id],
            "containerRegistryAuthId": self.settings.runpod_registry_auth_id,
        }

    def _delete_volume(self, volume_id: str) -> None:
        status_code = self.runpod.delete_network_volume(volume_id)
        if status_code not in (200, 204):
            raise RunPodError(f"Volume deletion returned status {status_code}", status_code=status_code)

    def _fail(self, order_id: str, compensation: CompensationStack, reason: str) -> None:
        logger.error(f"Provisioning order {order_id} failed: {reason}")
        compensation.unwind()
        self.orders.mark_failed(order_id, reason)
