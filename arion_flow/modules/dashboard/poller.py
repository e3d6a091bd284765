import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from fastapi import HTTPException

from arion_flow.modules.dashboard.board import WorkspaceBoard
from arion_flow.modules.orders.lifecycle import OrderLifecycleService
from arion_flow.modules.orders.schemas import OrderResponse
from arion_flow.modules.orders.service import OrderService
from arion_flow.modules.workspaces.probe import WorkspaceProbe

logger = logging.getLogger(__name__)


class DashboardPoller:
    """
    Background refresh of the dashboard board for every running order.
    Telemetry and workspace reachability run on separate intervals and never
    block each other.
    """

    def __init__(
        self,
        board: WorkspaceBoard,
        order_service: OrderService,
        lifecycle: OrderLifecycleService,
        probe: WorkspaceProbe,
        telemetry_interval: float = 15,
        workspace_interval: float = 10,
    ):
        self.board = board
        self.orders = order_service
        self.lifecycle = lifecycle
        self.probe = probe
        self.telemetry_interval = telemetry_interval
        self.workspace_interval = workspace_interval
        self._tasks: List[asyncio.Task] = []

    async def _running_orders(self) -> List[OrderResponse]:
        orders = await asyncio.to_thread(self.orders.list_running_orders)
        self.board.prune(order.id for order in orders)
        return orders

    async def refresh_telemetry(self) -> None:
        orders = await self._running_orders()
        if not orders:
            logger.debug("No running orders to poll telemetry for")
            return
        for order in orders:
            try:
                telemetry = await asyncio.to_thread(self.lifecycle.refresh_telemetry, order)
                self.board.record_telemetry(order.id, telemetry.model_dump())
            except HTTPException as e:
                self.board.record_telemetry_error(order.id, str(e.detail))
            except Exception as e:
                logger.error(f"Error polling telemetry for order {order.id}: {str(e)}")
                self.board.record_telemetry_error(order.id, str(e))

    async def refresh_workspaces(self) -> None:
        for order in await self._running_orders():
            try:
                online = await asyncio.to_thread(self.probe.is_online, order.workspace_url)
            except Exception as e:
                logger.error(f"Error probing workspace for order {order.id}: {str(e)}")
                online = False
            self.board.record_workspace(order.id, online)

    async def _loop(self, name: str, refresh: Callable[[], Awaitable[None]], interval: float):
        while True:
            try:
                await refresh()
            except Exception as e:
                logger.error(f"Error in {name} poll loop: {str(e)}")
            await asyncio.sleep(interval)

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._loop("telemetry", self.refresh_telemetry, self.telemetry_interval)),
            asyncio.create_task(self._loop("workspace", self.refresh_workspaces, self.workspace_interval)),
        ]
        logger.info(
            f"Dashboard poller started (telemetry every {self.telemetry_interval}s, "
            f"workspaces every {self.workspace_interval}s)"
        )

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        if tasks:
            logger.info("Dashboard poller stopped")

    @property
    def running(self) -> bool:
        return bool(self._tasks)
