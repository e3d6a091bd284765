"""GPU catalogue helpers: label normalization and stock filtering."""
from typing import Any, Dict, List, Optional

DEFAULT_GPU_TYPE = "NVIDIA GeForce RTX 4090"

SUPPORTED_DATACENTERS = ("EUR-IS-1", "EU-RO-1", "EU-CZ-1", "US-KS-2", "US-CA-2")

# Tier labels shown on the order form and common shorthand -> RunPod gpuTypeId
GPU_TYPE_ALIASES = {
    "Budget — RTX A4000 (16GB)": "NVIDIA RTX A4000",
    "RTX A4000": "NVIDIA RTX A4000",
    "Starter — RTX 3090 / L4 (24GB)": "NVIDIA GeForce RTX 3090",
    "RTX 3090": "NVIDIA GeForce RTX 3090",
    "L4": "NVIDIA L4",
    "Creator — RTX 4090 / L40S (24–48GB)": "NVIDIA GeForce RTX 4090",
    "RTX 4090": "NVIDIA GeForce RTX 4090",
    "L40S": "NVIDIA L40S",
    "Studio — A40 / A6000 / RTX 6000 Ada (48GB)": "NVIDIA A40",
    "A40": "NVIDIA A40",
    "A6000": "NVIDIA RTX A6000",
    "RTX 6000 Ada": "NVIDIA RTX 6000 Ada Generation",
    "Pro — A100 (80GB)": "NVIDIA A100 80GB PCIe",
    "A100": "NVIDIA A100 80GB PCIe",
    "A100 PCIe": "NVIDIA A100 80GB PCIe",
    "A100 SXM": "NVIDIA A100-SXM4-80GB",
    "Enterprise — H100 / H200 (80–141GB)": "NVIDIA H100 PCIe",
    "H100": "NVIDIA H100 PCIe",
    "H100 PCIe": "NVIDIA H100 PCIe",
    "H100 SXM": "NVIDIA H100 80GB HBM3",
    "H100 NVL": "NVIDIA H100 NVL",
    "H200": "NVIDIA H200",
}

VISIBLE_STOCK_STATUSES = {
    "AVAILABLE",
    "HIGH",
    "MEDIUM",
    "LOW",
    "VERY_LOW",
    "LIMITED",
    "SPOT",
    "IN_STOCK",
}
_STOCK_KEYWORDS = ("SPOT", "LOW", "MEDIUM", "HIGH", "LIMITED", "RESERVE")


def is_supported_datacenter(datacenter_id: Optional[str]) -> bool:
    return datacenter_id in SUPPORTED_DATACENTERS


def normalize_gpu_type(label: Optional[str], default: str = DEFAULT_GPU_TYPE) -> str:
    """Map an order-form label or shorthand to the provider id. Unknown labels pass through."""
    if not label or not label.strip():
        return default
    trimmed = label.strip()
    return GPU_TYPE_ALIASES.get(trimmed, trimmed)


def extract_gpu_types(payload: Any) -> List[Dict[str, Any]]:
    """Find the first list of GPU type objects anywhere in a GraphQL ``data`` payload."""
    if not payload:
        return []
    if isinstance(payload, list):
        gpus = []
        for item in payload:
            if not isinstance(item, dict):
                continue
            if not isinstance(item.get("id"), str) or not isinstance(item.get("displayName"), str):
                continue
            memory = item.get("memoryInGb")
            stock = item.get("stockStatus")
            gpus.append({
                "id": item["id"],
                "displayName": item["displayName"],
                "memoryInGb": memory if isinstance(memory, (int, float)) and not isinstance(memory, bool) else None,
                "stockStatus": stock if isinstance(stock, str) else "UNKNOWN",
            })
        return gpus
    if isinstance(payload, dict):
        for value in payload.values():
            found = extract_gpu_types(value)
            if found:
                return found
    return []


def is_visible_stock_status(stock_status: str) -> bool:
    normalized = "_".join((stock_status or "").upper().split())
    if not normalized:
        return False
    if normalized in VISIBLE_STOCK_STATUSES or normalized.startswith("AVAILABLE"):
        return True
    return any(keyword in normalized for keyword in _STOCK_KEYWORDS)


def workspace_url_for(pod_id: str, port: int = 8080) -> str:
    return f"https://{pod_id}-{port}.proxy.runpod.net/"
