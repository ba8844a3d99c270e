# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from typing import Any

import numpy as np

from .group import Group, GroupMembership
from .keys import Key, key_set, validate_keys
from .variable import Callback, Subscription, Variable


class DataHandle:
    """
    Binding between the keys of one dataset instance and a group.

    This is the object widgets talk to: it publishes and reads the group's selection
    and filter, and tracks the subscriptions made through it so they can be released
    together by :py:meth:`dispose`.
    """

    def __init__(
        self,
        group: Group,
        keys: Sequence[Any],
        *,
        handle_id: str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Parameters
        ----------
        group:
            The group to link this handle to.
        keys:
            Keys parallel to the dataset rows. They are validated before the handle
            is attached to the group, so an invalid handle is never observable.
        handle_id:
            Unique identifier of the handle. Generated if not given.
        logger:
            Logger to use, defaults to the module logger.
        """
        self._keys = validate_keys(keys)
        self._id = handle_id or f'handle_{uuid.uuid4().hex}'
        self._group = group
        self._logger = logger or logging.getLogger(__name__)
        self._subscriptions: list[Subscription] = []
        self._disposed = False
        self._membership = GroupMembership(
            handle_id=self._id,
            group_name=group.name,
            key_universe=frozenset(self._keys),
        )
        group.attach(self._membership)

    @property
    def id(self) -> str:
        return self._id

    @property
    def group(self) -> Group:
        return self._group

    @property
    def group_name(self) -> str:
        return self._group.name

    @property
    def keys(self) -> tuple[Key, ...]:
        return self._keys

    @property
    def membership(self) -> GroupMembership:
        return self._membership

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _skip_disposed(self, operation: str) -> bool:
        if self._disposed:
            self._logger.debug('Ignoring %s on disposed handle %s', operation, self._id)
        return self._disposed

    def publish_selection(self, keys: Iterable[Key], *, sender: Any = None) -> None:
        """
        Set the selection of the group.

        Keys are not required to belong to this handle, they may belong to another
        dataset linked through the same group.
        """
        if self._skip_disposed('publish_selection'):
            return
        self._group.selection.set(
            key_set(keys), sender=self if sender is None else sender
        )

    def clear_selection(self, *, sender: Any = None) -> None:
        if self._skip_disposed('clear_selection'):
            return
        self._group.selection.set(None, sender=self if sender is None else sender)

    def read_selection(self) -> frozenset[Key]:
        return self._group.read_selection()

    def publish_filter(self, keys: Iterable[Key] | None, *, sender: Any = None) -> None:
        """
        Set this handle's contribution to the group's filter.

        Parameters
        ----------
        keys:
            The keys this handle considers visible. An empty collection hides all
            rows, None removes the constraint.
        sender:
            Originator of the change, defaults to this handle.
        """
        if self._skip_disposed('publish_filter'):
            return
        self._group.aggregator.contribute(
            self._id, keys, sender=self if sender is None else sender
        )

    def clear_filter(self, *, sender: Any = None) -> None:
        self.publish_filter(None, sender=sender)

    @property
    def filter_contribution(self) -> frozenset[Key] | None:
        """This handle's own filter assertion, None if it asserts no constraint."""
        return self._group.aggregator.contribution(self._id)

    def read_filter(self) -> frozenset[Key] | None:
        """The effective filter of the group, None if no filter is active."""
        return self._group.read_filter()

    def _subscribe(self, variable: Variable, callback: Callback) -> Subscription:
        subscription = variable.subscribe(callback)
        if self._disposed:
            subscription.cancel()
        else:
            self._subscriptions.append(subscription)
        return subscription

    def on_selection_change(self, callback: Callback) -> Subscription:
        return self._subscribe(self._group.selection, callback)

    def on_filter_change(self, callback: Callback) -> Subscription:
        return self._subscribe(self._group.filter, callback)

    def on_change(self, name: str, callback: Callback) -> Subscription:
        """Subscribe to an arbitrary variable of the group."""
        return self._subscribe(self._group.var(name), callback)

    def selected_mask(self) -> np.ndarray:
        """Boolean mask of rows whose key is selected."""
        selection = self.read_selection()
        return np.fromiter(
            (key in selection for key in self._keys), dtype=bool, count=len(self._keys)
        )

    def filtered_mask(self) -> np.ndarray:
        """Boolean mask of rows passing the effective filter."""
        effective = self.read_filter()
        if effective is None:
            return np.ones(len(self._keys), dtype=bool)
        return np.fromiter(
            (key in effective for key in self._keys), dtype=bool, count=len(self._keys)
        )

    def dispose(self) -> None:
        """
        Release this handle.

        Cancels all subscriptions made through the handle, retracts its filter
        contribution and detaches it from the group. Calling this more than once
        has no effect.
        """
        with self._group.lock:
            if self._disposed:
                return
            self._disposed = True
            subscriptions, self._subscriptions = self._subscriptions, []
            for subscription in subscriptions:
                subscription.cancel()
            self._group.detach(self._id, sender=self)
        self._logger.debug('Disposed handle %s', self._id)

    def __enter__(self) -> DataHandle:
        return self

    def __exit__(self, *exc: object) -> None:
        self.dispose()

    def __repr__(self) -> str:
        state = ', disposed' if self._disposed else ''
        return (
            f'DataHandle({self._id!r}, group={self.group_name!r}, '
            f'keys={len(self._keys)}{state})'
        )
