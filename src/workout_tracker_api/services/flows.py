"""Two-step confirmation flows (stage, then confirm or cancel)."""
import logging
from enum import Enum
from typing import Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

P = TypeVar("P")


class FlowStatus(str, Enum):
    IDLE = "idle"
    STAGED = "staged"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class FlowNotStagedError(RuntimeError):
    """Raised when confirming a flow that has nothing staged."""


class StagedFlow(Generic[P]):
    """idle -> staged(payload) -> confirmed | cancelled.

    A payload exists only while the flow is staged; confirming hands it
    back to the caller and leaves the flow terminal until it is staged again.
    """

    def __init__(self, name: str):
        self.name = name
        self._status = FlowStatus.IDLE
        self._payload: Optional[P] = None

    @property
    def status(self) -> FlowStatus:
        return self._status

    @property
    def is_staged(self) -> bool:
        return self._status == FlowStatus.STAGED

    @property
    def payload(self) -> Optional[P]:
        return self._payload if self.is_staged else None

    def stage(self, payload: P) -> None:
        logger.debug(f"Flow '{self.name}' staged")
        self._payload = payload
        self._status = FlowStatus.STAGED

    def confirm(self) -> P:
        if not self.is_staged:
            raise FlowNotStagedError(f"Flow '{self.name}' has nothing staged")
        payload = self._payload
        self._payload = None
        self._status = FlowStatus.CONFIRMED
        logger.debug(f"Flow '{self.name}' confirmed")
        return payload  # type: ignore[return-value]

    def cancel(self) -> None:
        if self.is_staged:
            logger.debug(f"Flow '{self.name}' cancelled")
            self._status = FlowStatus.CANCELLED
        self._payload = None

    def reset(self) -> None:
        self._payload = None
        self._status = FlowStatus.IDLE
