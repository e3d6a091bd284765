from fastapi import APIRouter, Depends, HTTPException, Query
from arion_flow.config import Settings
from arion_flow.core.dependencies import get_app_settings, get_runpod
from arion_flow.core.exceptions import ValidationError, UpstreamError
from arion_flow.modules.gpus.schemas import GpuListResponse
from arion_flow.modules.runpod.client import RunPodClient, RunPodError
from arion_flow.modules.runpod.gpu_types import extract_gpu_types, is_visible_stock_status
from typing import Optional

router = APIRouter(prefix="/gpus", tags=["gpus"])


@router.get("", response_model=GpuListResponse)
def list_available_gpus(
    data_center_id: Optional[str] = Query(None, alias="dataCenterId"),
    runpod: RunPodClient = Depends(get_runpod),
    settings: Settings = Depends(get_app_settings)
):
    """GPU types currently in stock in a datacenter (for the order form)"""
    if not data_center_id:
        raise ValidationError("Missing dataCenterId query parameter")
    if not settings.runpod_api_key:
        raise HTTPException(status_code=500, detail="RUNPOD_API_KEY is not configured")
    try:
        data = runpod.available_gpu_types(data_center_id)
    except RunPodError as e:
        raise UpstreamError(e.message)
    gpus = [gpu for gpu in extract_gpu_types(data) if is_visible_stock_status(gpu["stockStatus"])]
    return GpuListResponse(gpus=gpus)
