"""One-time asynchronous initialization of the payment backend."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from ..errors import ErrorMessages
from ..logger import get_logger, sanitize_error


@dataclass(frozen=True)
class InitPending:
    status = "pending"


@dataclass(frozen=True)
class InitSuccess:
    status = "success"


@dataclass(frozen=True)
class InitFailed:
    error: BaseException
    status = "failed"


InitState = Union[InitPending, InitSuccess, InitFailed]

Initializer = Callable[[], Awaitable[None]]


class InitializationState:
    """Tracks pending -> success | failed for the backend setup.

    The initializer runs at most once, in a single task shared by every
    request. Terminal states are permanent; after a failure the middleware
    must be rebuilt to try again.
    """

    def __init__(
        self,
        initializer: Optional[Initializer] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._initializer = initializer
        self._logger = get_logger(logger, __name__)
        self._task: Optional[asyncio.Task[None]] = None
        self._state: InitState = InitPending() if initializer else InitSuccess()

        if initializer is not None:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                # No loop yet (module-level app setup); the first request starts it
                pass
            else:
                self._start()

    @property
    def state(self) -> InitState:
        return self._state

    @property
    def is_pending(self) -> bool:
        return isinstance(self._state, InitPending)

    @property
    def is_failed(self) -> bool:
        return isinstance(self._state, InitFailed)

    def _transition(self, new_state: InitState) -> None:
        if not isinstance(self._state, InitPending):
            raise RuntimeError(
                f"Initialization already finished with status {self._state.status!r}"
            )
        self._state = new_state

    def _start(self) -> asyncio.Task[None]:
        if self._task is None:
            self._task = asyncio.ensure_future(self._run())
        return self._task

    async def _run(self) -> None:
        initializer = self._initializer
        if initializer is None:
            return
        try:
            await initializer()
        except Exception as e:
            self._transition(InitFailed(error=e))
            self._logger.error(f"{ErrorMessages.LOG_INIT_FAILED} {sanitize_error(e)}")
        else:
            self._transition(InitSuccess())

    async def wait(self) -> InitState:
        """Wait for initialization to finish and return the terminal state."""
        if self.is_pending:
            # Cancelling a waiter must not cancel the shared task
            await asyncio.shield(self._start())
        return self._state
