# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
from __future__ import annotations

import itertools
import logging
import threading
from collections import deque
from collections.abc import Callable
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

V = TypeVar('V')


class _Unset:
    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'UNSET'

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()
"""Value of a variable that has never been published."""


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """Notification passed to the subscribers of a :py:class:`Variable`."""

    group: str
    name: str
    value: Any
    old_value: Any
    sender: Any = None


Callback = Callable[[ChangeEvent], None]

_subscription_ids = itertools.count()


class Subscription:
    """Handle for a callback subscribed to a variable."""

    def __init__(self, variable: Variable, callback: Callback) -> None:
        self.id = next(_subscription_ids)
        self.callback = callback
        self._variable = variable
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Unsubscribe. Calling this more than once has no effect."""
        self._variable.unsubscribe(self)

    def __repr__(self) -> str:
        state = 'active' if self._active else 'cancelled'
        return f'Subscription({self.id}, {self._variable.name!r}, {state})'


class NotificationBatch:
    """
    Deferral of notifications shared by all variables of a group.

    While a batch is open, variables store new values immediately but postpone
    notifying their subscribers until the outermost batch closes. A variable that
    is notifying queues batched writes instead.
    """

    def __init__(self) -> None:
        self.depth = 0
        # Insertion ordered: variables notify in the order they were first modified.
        self.pending: dict[int, tuple[Variable, Any, Any]] = {}

    @property
    def open(self) -> bool:
        return self.depth > 0

    def record(self, variable: Variable, old_value: Any, sender: Any) -> None:
        key = id(variable)
        if key in self.pending:
            _, first_old, _ = self.pending[key]
            self.pending[key] = (variable, first_old, sender)
        else:
            self.pending[key] = (variable, old_value, sender)

    def flush(self) -> None:
        pending = list(self.pending.values())
        self.pending.clear()
        for variable, old_value, sender in pending:
            variable._notify_deferred(old_value, sender)


@dataclass(frozen=True, slots=True)
class _Publish:
    value: Any
    sender: Any
    # Only used when a batch already stored the value.
    old_value: Any = UNSET
    stored: bool = False


class Variable(Generic[V]):
    """
    A named, observable slot of shared state within a group.

    A publish fully replaces the current value and then notifies every subscriber,
    first subscribed first notified. Publishing from within a subscriber callback is
    queued and processed once the current notification pass has completed, so
    subscribers observe publishes in the order they were made.
    """

    def __init__(
        self,
        group: str,
        name: str,
        *,
        lock: AbstractContextManager | None = None,
        batch: NotificationBatch | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._group = group
        self._name = name
        self._lock = lock if lock is not None else threading.RLock()
        self._batch = batch
        self._logger = logger or logging.getLogger(__name__)
        self._value: V | _Unset = UNSET
        self._subscriptions: list[Subscription] = []
        self._queue: deque[_Publish] = deque()
        self._dispatching = False

    @property
    def group(self) -> str:
        return self._group

    @property
    def name(self) -> str:
        return self._name

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def get(self, default: Any = UNSET) -> V | Any:
        """Return the current value, or ``default`` if never published."""
        value = self._value
        return default if value is UNSET else value

    def set(self, value: V, *, sender: Any = None) -> None:
        """
        Replace the current value and notify subscribers.

        Parameters
        ----------
        value:
            The new value.
        sender:
            Optional originator of the change, passed on in the :py:class:`ChangeEvent`
            so subscribers can recognize their own publishes.
        """
        with self._lock:
            # While dispatching, batched writes join the queue so they cannot be
            # overwritten by earlier queued publishes.
            batching = self._batch is not None and self._batch.open
            if batching and not (self._dispatching or self._queue):
                self._batch.record(self, self._value, sender)
                self._value = value
                return
            self._queue.append(_Publish(value=value, sender=sender))
            if self._dispatching:
                self._logger.debug(
                    'Queued re-entrant publish on %s/%s', self._group, self._name
                )
                return
            self._drain()

    def _notify_deferred(self, old_value: Any, sender: Any) -> None:
        with self._lock:
            self._queue.append(
                _Publish(
                    value=self._value, sender=sender, old_value=old_value, stored=True
                )
            )
            if not self._dispatching:
                self._drain()

    def _drain(self) -> None:
        self._dispatching = True
        try:
            while self._queue:
                publish = self._queue.popleft()
                if publish.stored:
                    old_value = publish.old_value
                    self._value = publish.value
                else:
                    old_value = self._value
                    self._value = publish.value
                self._dispatch(
                    ChangeEvent(
                        group=self._group,
                        name=self._name,
                        value=publish.value,
                        old_value=old_value,
                        sender=publish.sender,
                    )
                )
        finally:
            self._dispatching = False

    def _dispatch(self, event: ChangeEvent) -> None:
        snapshot = list(self._subscriptions)
        self._logger.debug(
            'Notifying %d subscribers of %s/%s', len(snapshot), self._group, self._name
        )
        for subscription in snapshot:
            # Cancelled by an earlier callback of this same pass.
            if not subscription.active:
                continue
            self._invoke(subscription, event)

    def _invoke(self, subscription: Subscription, event: ChangeEvent) -> None:
        try:
            subscription.callback(event)
        except Exception:
            self._logger.exception(
                'Error in subscriber callback for %s/%s.', self._group, self._name
            )

    def subscribe(self, callback: Callback) -> Subscription:
        """
        Subscribe to changes of this variable.

        Subscribers added while a notification is in progress are first notified
        on the next publish.

        Returns
        -------
        :
            A handle that can be passed to :py:meth:`unsubscribe` or cancelled.
        """
        subscription = Subscription(self, callback)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription | Callback) -> bool:
        """
        Remove a subscription, given its handle or the subscribed callback.

        When given a callback, the earliest matching subscription is removed.
        Returns False if nothing was subscribed.
        """
        with self._lock:
            for i, candidate in enumerate(self._subscriptions):
                if candidate is subscription or (
                    not isinstance(subscription, Subscription)
                    and candidate.callback == subscription
                ):
                    del self._subscriptions[i]
                    candidate._active = False
                    return True
        return False

    def __repr__(self) -> str:
        return f'Variable({self._group!r}, {self._name!r}, value={self._value!r})'


def make_lock(thread_safe: bool) -> AbstractContextManager:
    """Return the lock shared by the variables of one group."""
    return threading.RLock() if thread_safe else nullcontext()
