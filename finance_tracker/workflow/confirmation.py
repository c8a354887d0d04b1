"""
Confirmation Workflow

A two-step gate in front of destructive or session-ending actions:
request -> confirm | cancel.

States:
    IDLE     nothing pending, no prompt shown
    PENDING  prompt visible with a message and a bound action
    RUNNING  the user confirmed, the action is being awaited
    FAILED   the action raised; message and action are kept so the user
             can confirm again (re-run) or cancel (discard)

CRITICAL: A bound action only ever runs from confirm(). Cancelling never
runs it, and a newer request replaces an older one (last request wins,
no queue). There is no timeout.
"""

import inspect
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union
from uuid import UUID, uuid4

import structlog

logger = structlog.get_logger(__name__)

Action = Callable[[], Union[Any, Awaitable[Any]]]


class ConfirmationState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    RUNNING = "running"
    FAILED = "failed"


class ConfirmationError(Exception):
    """The workflow cannot accept the request in its current state."""
    pass


class ConfirmationWorkflow:
    """Holds at most one action awaiting the user's yes or no."""

    def __init__(self):
        self._state = ConfirmationState.IDLE
        self._message: Optional[str] = None
        self._action: Optional[Action] = None
        self._request_id: Optional[UUID] = None
        self._error: Optional[BaseException] = None

    @property
    def state(self) -> ConfirmationState:
        return self._state

    @property
    def message(self) -> Optional[str]:
        """Prompt text for the pending (or failed) action."""
        return self._message

    @property
    def request_id(self) -> Optional[UUID]:
        """Identifies the current request; used as the audit correlation id."""
        return self._request_id

    @property
    def error(self) -> Optional[BaseException]:
        """What the last confirmed action raised, while in FAILED."""
        return self._error

    @property
    def is_pending(self) -> bool:
        """True when a prompt should be shown."""
        return self._state in (ConfirmationState.PENDING, ConfirmationState.FAILED)

    def request(self, message: str, action: Action) -> UUID:
        """
        Ask the user to confirm `action`.

        Replaces any pending or failed request.

        Returns:
            The id of the new request

        Raises:
            ConfirmationError: If a confirmed action is still running
        """
        if self._state == ConfirmationState.RUNNING:
            raise ConfirmationError("Wait for the current action to finish")

        if self._action is not None:
            logger.debug("confirmation_replaced", previous=self._message, message=message)

        self._state = ConfirmationState.PENDING
        self._message = message
        self._action = action
        self._request_id = uuid4()
        self._error = None
        return self._request_id

    async def confirm(self) -> Any:
        """
        Run the bound action and wait for it to settle.

        Success returns to IDLE and hands back the action's result.
        Failure moves to FAILED and re-raises; the action stays bound.
        With nothing pending this does nothing and returns None.
        """
        if self._state not in (ConfirmationState.PENDING, ConfirmationState.FAILED):
            logger.debug("confirm_ignored", state=self._state.value)
            return None

        action = self._action
        self._state = ConfirmationState.RUNNING
        self._error = None
        try:
            result = action()
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            self._state = ConfirmationState.FAILED
            self._error = e
            logger.warning("confirmed_action_failed", message=self._message, error=str(e))
            raise
        except BaseException:
            # Control-flow exits (cancellation, script reruns) end the request
            self._reset()
            raise

        self._reset()
        return result

    def cancel(self) -> bool:
        """
        Discard the pending or failed action without running it.

        Returns:
            True if something was discarded. False when idle, or while a
            confirmed action is running (in-flight work cannot be aborted).
        """
        if self._state == ConfirmationState.RUNNING:
            logger.debug("cancel_ignored_while_running", message=self._message)
            return False
        if self._state == ConfirmationState.IDLE:
            return False
        self._reset()
        return True

    def _reset(self) -> None:
        self._state = ConfirmationState.IDLE
        self._message = None
        self._action = None
        self._request_id = None
        self._error = None
