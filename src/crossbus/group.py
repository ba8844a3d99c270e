# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from .filter_aggregator import FilterAggregator
from .variable import UNSET, NotificationBatch, Variable, make_lock

SELECTION = 'selection'
FILTER = 'filter'


@dataclass(frozen=True, slots=True)
class GroupMembership:
    """
    Link between a data handle and a group.

    Group identity is nominal: handles declaring the same group name are linked.
    Their key universes are recorded but never checked for consistency with each
    other.
    """

    handle_id: str
    group_name: str
    key_universe: frozenset[str]


class Group:
    """
    A named collection of shared variables.

    Every group has a ``selection`` and a ``filter`` variable, and any other
    variable is created on first access. The ``filter`` variable is owned by the
    group's :py:class:`FilterAggregator` and holds the effective filter.
    """

    def __init__(
        self,
        name: str,
        *,
        thread_safe: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self._name = name
        self._logger = logger or logging.getLogger(__name__)
        self._lock = make_lock(thread_safe)
        self._batch = NotificationBatch()
        self._variables: dict[str, Variable] = {}
        self._members: dict[str, GroupMembership] = {}
        # Keys stay in here after their handle detaches.
        self._seen_keys: set[str] = set()
        self._aggregator = FilterAggregator(self, logger=self._logger)

    @property
    def name(self) -> str:
        return self._name

    @property
    def lock(self):
        """Re-entrant lock guarding every variable of this group."""
        return self._lock

    @property
    def aggregator(self) -> FilterAggregator:
        return self._aggregator

    def var(self, name: str) -> Variable:
        """Return the variable with the given name, creating it if needed."""
        with self._lock:
            if (variable := self._variables.get(name)) is None:
                variable = Variable(
                    self._name,
                    name,
                    lock=self._lock,
                    batch=self._batch,
                    logger=self._logger,
                )
                self._variables[name] = variable
            return variable

    @property
    def selection(self) -> Variable:
        return self.var(SELECTION)

    @property
    def filter(self) -> Variable:
        return self.var(FILTER)

    @property
    def variable_names(self) -> tuple[str, ...]:
        return tuple(self._variables)

    def read_selection(self) -> frozenset[str]:
        """The selected keys, empty if nothing is selected."""
        value = self.selection.get(None)
        return frozenset() if value is None else frozenset(value)

    def read_filter(self) -> frozenset[str] | None:
        """The effective filter, or None if no filter is active."""
        value = self.filter.get(None)
        return None if value is None else frozenset(value)

    def attach(self, membership: GroupMembership) -> None:
        """Register a data handle as a member of this group."""
        if membership.group_name != self._name:
            raise ValueError(
                f'Membership for group {membership.group_name!r} cannot be attached '
                f'to group {self._name!r}.'
            )
        with self._lock:
            if membership.handle_id in self._members:
                raise ValueError(
                    f'Handle {membership.handle_id!r} is already attached to group '
                    f'{self._name!r}.'
                )
            self._members[membership.handle_id] = membership
            self._seen_keys.update(membership.key_universe)
            self._logger.debug(
                'Attached %s to group %s (%d members)',
                membership.handle_id,
                self._name,
                len(self._members),
            )
            # New keys enter the universe and pass any active filter.
            self._aggregator.refresh()

    def detach(self, handle_id: str, *, sender: Any = None) -> None:
        """Remove a member and retract its filter contribution."""
        with self._lock:
            if self._members.pop(handle_id, None) is None:
                return
            self._logger.debug(
                'Detached %s from group %s (%d members)',
                handle_id,
                self._name,
                len(self._members),
            )
            self._aggregator.retract(handle_id, sender=sender)

    @property
    def members(self) -> tuple[GroupMembership, ...]:
        return tuple(self._members.values())

    @property
    def member_count(self) -> int:
        return len(self._members)

    def membership(self, handle_id: str) -> GroupMembership | None:
        return self._members.get(handle_id)

    def key_universe(self) -> frozenset[str]:
        """Union of the key universes of all current members."""
        with self._lock:
            return frozenset().union(*(m.key_universe for m in self._members.values()))

    def seen_keys(self) -> frozenset[str]:
        """All keys ever attached to or asserted in this group."""
        with self._lock:
            return frozenset(self._seen_keys)

    def note_keys(self, keys: Iterable[str]) -> None:
        """Record keys asserted by a contributor that may not be a member."""
        with self._lock:
            self._seen_keys.update(keys)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Context manager for batching updates to the variables of this group.

        Values are stored immediately but subscribers are notified only when the
        outermost transaction exits, once per modified variable.
        """
        with self._lock:
            self._batch.depth += 1
            try:
                yield
            finally:
                self._batch.depth -= 1
                if not self._batch.open and self._batch.pending:
                    self._batch.flush()

    def __repr__(self) -> str:
        variable = self._variables.get(SELECTION)
        selection = UNSET if variable is None else variable.get()
        return (
            f'Group({self._name!r}, members={len(self._members)}, '
            f'selection={"unset" if selection is UNSET else len(selection or ())})'
        )
