from pydantic import BaseModel
from typing import List, Optional


class GpuTypeResponse(BaseModel):
    id: str
    displayName: str
    memoryInGb: Optional[float] = None
    stockStatus: str


class GpuListResponse(BaseModel):
    ok: bool = True
    gpus: List[GpuTypeResponse]
