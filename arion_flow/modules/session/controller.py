"""
Session timeout state machine.

A fixed wall-clock timer started at sign-in (or token refresh): after
``idle_timeout`` seconds a warning with a ``countdown`` is raised; when the
countdown runs out, or the user chooses to log out, ``sign_out`` is called
once and the machine goes dormant until the next sign-in. User input is not
tracked, so "idle" means "time since the session was last (re)started".

The controller does not own a timer thread. Callers drive it with ``tick()``
(or ``run()`` in an asyncio task) and an injectable clock.
"""
import asyncio
import logging
import math
import time
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"


class SessionState(str, Enum):
    DORMANT = "dormant"
    ACTIVE = "active"
    WARNING = "warning"
    EXPIRED = "expired"


class SessionTimeoutController:
    def __init__(
        self,
        sign_out: Callable[[], None],
        idle_timeout: float = 300,
        countdown: float = 30,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Optional[Callable[[SessionState], None]] = None,
    ):
        self._sign_out = sign_out
        self.idle_timeout = idle_timeout
        self.countdown = countdown
        self._clock = clock
        self._on_state_change = on_state_change
        self.state = SessionState.DORMANT
        self._deadline: Optional[float] = None

    def _set_state(self, state: SessionState) -> None:
        if state == self.state:
            return
        logger.debug(f"Session timeout: {self.state.value} -> {state.value}")
        self.state = state
        if self._on_state_change:
            self._on_state_change(state)

    @property
    def warning_visible(self) -> bool:
        return self.state == SessionState.WARNING

    @property
    def countdown_remaining(self) -> Optional[int]:
        """Whole seconds left on the warning countdown, None outside WARNING."""
        if self.state != SessionState.WARNING or self._deadline is None:
            return None
        return max(0, math.ceil(self._deadline - self._clock()))

    def start(self) -> None:
        """(Re)start the main timer; hides any warning."""
        self._deadline = self._clock() + self.idle_timeout
        self._set_state(SessionState.ACTIVE)

    def stay(self) -> None:
        """User chose to stay signed in."""
        if self.state in (SessionState.ACTIVE, SessionState.WARNING):
            self.start()

    def logout_now(self) -> None:
        if self.state in (SessionState.ACTIVE, SessionState.WARNING):
            self._expire()

    def handle_auth_event(self, event: str) -> None:
        if event in (SIGNED_IN, TOKEN_REFRESHED):
            self.start()
        elif event == SIGNED_OUT:
            self._deadline = None
            self._set_state(SessionState.DORMANT)

    def tick(self) -> SessionState:
        now = self._clock()
        if self.state == SessionState.ACTIVE and now >= self._deadline:
            # Countdown starts when the warning is shown
            self._deadline = now + self.countdown
            self._set_state(SessionState.WARNING)
        elif self.state == SessionState.WARNING and now >= self._deadline:
            self._expire()
        return self.state

    def _expire(self) -> None:
        self._deadline = None
        self._set_state(SessionState.EXPIRED)
        try:
            logger.info("Session expiration reached. Signing out.")
            self._sign_out()
        except Exception as e:
            logger.error(f"Sign-out after session timeout failed: {e}")
        finally:
            self._set_state(SessionState.DORMANT)

    async def run(self, poll_interval: float = 1.0) -> None:
        """Drive the machine until cancelled"""
        while True:
            self.tick()
            await asyncio.sleep(poll_interval)
