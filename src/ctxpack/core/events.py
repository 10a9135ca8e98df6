"""Typed change notifications for cached context.

External collaborators publish ContextChange events when the active
document, files, selection or git state change. Subscribers decide for
themselves whether to gather again; the notifier never does.

Delivery is a single ordered stream: every subscriber sees events in publish
order, whichever kind they are. A publish made while another event is being
delivered (re-entrantly from a handler, or from another thread) is queued and
delivered after it.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from enum import Enum
from types import TracebackType

from pydantic import BaseModel, ConfigDict

from ctxpack.core.console import get_logger

logger = get_logger(__name__)


class ContextChangeKind(str, Enum):
    ACTIVE_DOCUMENT_CHANGED = "active-document-changed"
    FILES_CHANGED = "files-changed"
    SELECTION_CHANGED = "selection-changed"
    GIT_CHANGED = "git-changed"


class ContextChange(BaseModel):
    kind: ContextChangeKind
    paths: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)


ChangeHandler = Callable[[ContextChange], None]


class Subscription:
    """Handle returned by ``ChangeNotifier.subscribe``.

    Calling ``unsubscribe`` more than once is harmless. Usable as a context
    manager that unsubscribes on exit.
    """

    def __init__(self, notifier: ChangeNotifier, handler: ChangeHandler) -> None:
        self._notifier = notifier
        self._handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._notifier._remove(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.unsubscribe()


class ChangeNotifier:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: list[Subscription] = []
        self._pending: deque[ContextChange] = deque()
        self._dispatching = False

    def subscribe(self, handler: ChangeHandler) -> Subscription:
        subscription = Subscription(self, handler)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            try:
                self._subscriptions.remove(subscription)
            except ValueError:
                pass

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, change: ContextChange) -> None:
        with self._lock:
            self._pending.append(change)
            if self._dispatching:
                return
            self._dispatching = True
        try:
            self._drain()
        except BaseException:
            with self._lock:
                self._dispatching = False
            raise

    def _drain(self) -> None:
        while True:
            with self._lock:
                if not self._pending:
                    self._dispatching = False
                    return
                change = self._pending.popleft()
                subscribers = list(self._subscriptions)
            for subscription in subscribers:
                if not subscription.active:
                    continue
                try:
                    subscription._handler(change)
                except Exception as exc:
                    logger.warning("Context change handler failed for %s: %s", change.kind.value, exc)


__all__ = [
    "ChangeHandler",
    "ChangeNotifier",
    "ContextChange",
    "ContextChangeKind",
    "Subscription",
]
