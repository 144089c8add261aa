"""User-visible notifications for long-running actions.

Each action gets a NotificationHandle with this lifecycle:

    PENDING --resolve(success|caution)--> SUCCESS | CAUTION
    PENDING | SUCCESS | CAUTION --dismiss()--> DISMISSED

Resolving a handle that is already terminal is ignored: the first resolve
wins. Dismissing twice is a no-op. Dismissal only hides the indicator; it
does not cancel the awaited work.
"""
import itertools
import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, TextIO, TypeVar

logger = logging.getLogger(__name__)

PENDING = "pending"
SUCCESS = "success"
CAUTION = "caution"
DISMISSED = "dismissed"

RESOLVED_STATES = (SUCCESS, CAUTION)

T = TypeVar("T")


@dataclass(frozen=True)
class Notification:
    """What the sink is asked to show (or hide, for ``dismissed``)."""
    handle_id: int
    message: str
    severity: str


Sink = Callable[[Notification], None]


class LoggingSink:
    """Default sink: notifications go to the log."""

    _levels = {
        PENDING: logging.INFO,
        SUCCESS: logging.INFO,
        CAUTION: logging.WARNING,
        DISMISSED: logging.DEBUG,
    }

    def __call__(self, notification: Notification) -> None:
        level = self._levels.get(notification.severity, logging.INFO)
        logger.log(level, f"[{notification.severity}] {notification.message}")


class ConsoleSink:
    """Sink for the CLI: one line per notification on stderr."""

    _prefixes = {PENDING: "...", SUCCESS: "OK", CAUTION: "!!"}

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    def __call__(self, notification: Notification) -> None:
        if notification.severity == DISMISSED:
            return
        stream = self._stream or sys.stderr
        prefix = self._prefixes.get(notification.severity, "")
        print(f"{prefix} {notification.message}", file=stream)


class NotificationHandle:
    """Lifecycle token for one in-flight user-visible action."""

    def __init__(self, handle_id: int, message: str, sink: Sink,
                 on_close: Callable[["NotificationHandle"], None]):
        self.id = handle_id
        self.message = message
        self.state = PENDING
        self._sink = sink
        self._on_close = on_close
        sink(Notification(handle_id, message, PENDING))

    @property
    def is_pending(self) -> bool:
        return self.state == PENDING

    @property
    def is_terminal(self) -> bool:
        return self.state != PENDING

    def resolve(self, severity: str, message: str) -> bool:
        """
        Replace the pending indicator with a success or caution message.

        Returns:
            True if the handle transitioned, False if it was already terminal
        """
        if severity not in RESOLVED_STATES:
            raise ValueError(f"Unsupported severity: {severity}")

        if self.state != PENDING:
            logger.debug(
                f"Ignoring resolve({severity}) on notification {self.id} in state {self.state}"
            )
            return False

        self.state = severity
        self.message = message
        self._sink(Notification(self.id, message, severity))
        self._on_close(self)
        return True

    def succeed(self, message: str) -> bool:
        return self.resolve(SUCCESS, message)

    def caution(self, message: str) -> bool:
        return self.resolve(CAUTION, message)

    def dismiss(self) -> None:
        if self.state == DISMISSED:
            return
        self.state = DISMISSED
        self._sink(Notification(self.id, self.message, DISMISSED))
        self._on_close(self)


class NotificationScheduler:
    """Opens notification handles and guarantees they are closed."""

    def __init__(self, sink: Optional[Sink] = None):
        self._sink = sink or LoggingSink()
        self._ids = itertools.count(1)
        self._open: Dict[int, NotificationHandle] = {}

    def start(self, message: str) -> NotificationHandle:
        handle = NotificationHandle(next(self._ids), message, self._sink, self._closed)
        self._open[handle.id] = handle
        return handle

    def notify(self, severity: str, message: str) -> NotificationHandle:
        """Show a one-shot success or caution message."""
        handle = self.start(message)
        handle.resolve(severity, message)
        return handle

    def open_handles(self) -> List[NotificationHandle]:
        """Handles still pending."""
        return list(self._open.values())

    def _closed(self, handle: NotificationHandle) -> None:
        self._open.pop(handle.id, None)

    @asynccontextmanager
    async def pending(self, message: str,
                      failure_message: Optional[str] = None) -> AsyncIterator[NotificationHandle]:
        """
        Keep a pending notification open for the duration of the block.

        On exit a still-pending handle is resolved as caution if an exception
        escaped (the exception propagates), otherwise it is dismissed.
        """
        handle = self.start(message)
        try:
            yield handle
        except Exception as e:
            if handle.is_pending:
                handle.caution(failure_message or f"{message} failed: {e}")
            raise
        finally:
            if handle.is_pending:
                handle.dismiss()

    async def track(
        self,
        message: str,
        action: Awaitable[T],
        success_message: str,
        failure_message: str,
    ) -> Optional[T]:
        """
        Await ``action`` under a pending notification.

        Returns:
            The action's result, or None if it raised (the error is logged
            and shown as a caution notification)
        """
        try:
            async with self.pending(message, failure_message) as handle:
                result = await action
                handle.succeed(success_message)
                return result
        except Exception as e:
            logger.error(f"{failure_message}: {e}")
            return None
