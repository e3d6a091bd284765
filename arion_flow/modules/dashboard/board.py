"""Thread-safe in-memory view of each workspace's latest telemetry and reachability."""
import threading
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger(__name__)

STATUS_OFFLINE = "Offline"
STATUS_NOT_READY = "Not Ready"
STATUS_ONLINE = "Online"


@dataclass
class WorkspaceView:
    order_id: str
    telemetry: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    workspace_online: bool = False
    telemetry_checked_at: Optional[datetime] = None
    workspace_checked_at: Optional[datetime] = None


class WorkspaceBoard:
    """Two pollers write here independently; the last write for a field wins."""

    def __init__(self):
        self._lock = threading.Lock()
        self._views: Dict[str, WorkspaceView] = {}

    def _view(self, order_id: str) -> WorkspaceView:
        view = self._views.get(order_id)
        if view is None:
            view = WorkspaceView(order_id=order_id)
            self._views[order_id] = view
        return view

    def record_telemetry(self, order_id: str, telemetry: Dict[str, Any]) -> None:
        with self._lock:
            view = self._view(order_id)
            view.telemetry = telemetry
            view.error = None
            view.telemetry_checked_at = datetime.now(timezone.utc)

    def record_telemetry_error(self, order_id: str, error: str) -> None:
        with self._lock:
            view = self._view(order_id)
            view.telemetry = None
            view.error = error
            view.telemetry_checked_at = datetime.now(timezone.utc)

    def record_workspace(self, order_id: str, online: bool) -> None:
        with self._lock:
            view = self._view(order_id)
            view.workspace_online = online
            view.workspace_checked_at = datetime.now(timezone.utc)

    def get(self, order_id: str) -> Optional[WorkspaceView]:
        with self._lock:
            view = self._views.get(order_id)
            return replace(view) if view else None

    def prune(self, active_order_ids: Iterable[str]) -> None:
        """Drop views of orders that are no longer active"""
        keep = set(active_order_ids)
        with self._lock:
            for order_id in [oid for oid in self._views if oid not in keep]:
                del self._views[order_id]


def workspace_status(view: Optional[WorkspaceView], stored_runtime_status: Optional[str] = None) -> str:
    """Status label; uses the runtime status stored on the order until telemetry has been polled."""
    telemetry = view.telemetry if view else None
    runtime_status = telemetry.get("runtime_status") if telemetry else stored_runtime_status
    if runtime_status != "RUNNING":
        return STATUS_OFFLINE
    if view is None or not view.workspace_online:
        return STATUS_NOT_READY
    return STATUS_ONLINE


def format_uptime(seconds: Optional[int]) -> str:
    minutes = (seconds or 0) // 60
    hours = minutes // 60
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    return f"{minutes}m"
