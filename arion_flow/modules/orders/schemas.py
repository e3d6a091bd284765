from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime


class OrderCreate(BaseModel):
    name: str = Field(min_length=1)
    datacenter_id: str
    storage_gb: int = Field(gt=0)
    gpu_type: Optional[str] = None
    organization_id: Optional[str] = None


class OrderResponse(BaseModel):
    id: str
    user_id: str
    organization_id: Optional[str] = None
    name: str
    datacenter_id: str
    storage_gb: int
    gpu_type: Optional[str] = None
    status: str
    pod_id: Optional[str] = None
    volume_id: Optional[str] = None
    workspace_url: Optional[str] = None
    runtime_status: Optional[str] = None
    uptime_seconds: Optional[int] = None
    failure_reason: Optional[str] = None
    last_checked: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderEnvelope(BaseModel):
    ok: bool = True
    order: OrderResponse


class OrderListResponse(BaseModel):
    ok: bool = True
    orders: List[OrderResponse]


class ProvisionResponse(BaseModel):
    ok: bool = True
    order_id: str = Field(alias="orderId")
    pod_id: str = Field(alias="podId")
    volume_id: str = Field(alias="volumeId")
    workspace_url: str = Field(alias="workspaceUrl")
    pod_ready: bool = Field(alias="podReady")

    class Config:
        populate_by_name = True


class TerminateRequest(BaseModel):
    delete_workspace: bool = Field(False, alias="deleteWorkspace")

    class Config:
        populate_by_name = True


class StopResponse(BaseModel):
    ok: bool = True
    result: Optional[Any] = None


class TerminateResponse(BaseModel):
    ok: bool = True
    deleted_workspace: bool = Field(alias="deletedWorkspace")
    result: Optional[Any] = None

    class Config:
        populate_by_name = True


class GpuMetric(BaseModel):
    id: Optional[str] = None
    gpu_util_percent: Optional[float] = None
    memory_util_percent: Optional[float] = None


class ContainerMetrics(BaseModel):
    cpu_percent: Optional[float] = None
    memory_percent: Optional[float] = None


class PortMapping(BaseModel):
    ip: Optional[str] = None
    is_ip_public: Optional[bool] = None
    private_port: Optional[int] = None
    public_port: Optional[int] = None
    type: Optional[str] = None


class Telemetry(BaseModel):
    pod_id: str
    name: Optional[str] = None
    image: Optional[str] = None
    runtime_status: Optional[str] = None
    uptime_seconds: int = 0
    gpu_type: Optional[str] = None
    gpu_count: Optional[int] = None
    volume_size_gb: Optional[int] = None
    gpu_metrics: List[GpuMetric] = []
    container_metrics: ContainerMetrics = ContainerMetrics()
    ports: List[PortMapping] = []
    workspace_url: Optional[str] = None


class TelemetryResponse(BaseModel):
    ok: bool = True
    telemetry: Telemetry


def telemetry_from_pod(pod: Dict[str, Any], gpu_type: Optional[str], volume_size_gb: Optional[int], workspace_url: str) -> Telemetry:
    """Flatten a GraphQL ``pod`` object into the telemetry shape served to the dashboard."""
    runtime = pod.get("runtime") or {}
    container = runtime.get("container") or {}
    return Telemetry(
        pod_id=pod["id"],
        name=pod.get("name"),
        image=pod.get("imageName"),
        runtime_status=pod.get("desiredStatus"),
        uptime_seconds=runtime.get("uptimeInSeconds") or 0,
        gpu_type=gpu_type,
        gpu_count=pod.get("gpuCount"),
        volume_size_gb=volume_size_gb,
        gpu_metrics=[
            GpuMetric(
                id=g.get("id"),
                gpu_util_percent=g.get("gpuUtilPercent"),
                memory_util_percent=g.get("memoryUtilPercent"),
            )
            for g in runtime.get("gpus") or []
        ],
        container_metrics=ContainerMetrics(
            cpu_percent=container.get("cpuPercent"),
            memory_percent=container.get("memoryPercent"),
        ),
        ports=[
            PortMapping(
                ip=p.get("ip"),
                is_ip_public=p.get("isIpPublic"),
                private_port=p.get("privatePort"),
                public_port=p.get("publicPort"),
                type=p.get("type"),
            )
            for p in runtime.get("ports") or []
        ],
        workspace_url=workspace_url,
    )
