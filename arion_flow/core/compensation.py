"""Undo list for multi-step workflows that touch several external systems.

Each step that creates something pushes the action that removes it. If a later
step fails, ``unwind`` runs the registered actions newest first. Undo failures
are logged and never replace the original error.
"""
import logging
from typing import Callable, List, Tuple

logger = logging.getLogger(__name__)


class CompensationStack:
    def __init__(self, name: str = "workflow"):
        self.name = name
        self._actions: List[Tuple[str, Callable[[], object]]] = []

    def push(self, description: str, action: Callable[[], object]) -> None:
        self._actions.append((description, action))

    def clear(self) -> None:
        """Forget all registered actions (the workflow committed)."""
        self._actions.clear()

    @property
    def pending(self) -> List[str]:
        return [description for description, _ in self._actions]

    def unwind(self) -> List[str]:
        """Run registered actions in reverse order. Returns descriptions of the ones that failed."""
        failed = []
        while self._actions:
            description, action = self._actions.pop()
            try:
                logger.info(f"[{self.name}] compensating: {description}")
                action()
            except Exception as e:
                logger.error(f"[{self.name}] compensation '{description}' failed: {str(e)}")
                failed.append(description)
        return failed

    def __enter__(self) -> "CompensationStack":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.unwind()
        return False
