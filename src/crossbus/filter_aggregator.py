# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from .keys import key_set

if TYPE_CHECKING:
    from .group import Group

_MISSING = object()


class FilterAggregator:
    """
    Combine the filter contributions of a group into one effective filter.

    Each contributor either asserts a set of visible keys or asserts no constraint
    (``None``). An empty set is a valid assertion meaning "no rows visible".

    Contributors may come from datasets with different key universes. A key is
    excluded only by contributors whose universe contains it, so the effective
    filter is the group's key universe minus the union, over all asserting
    contributors, of that contributor's universe minus its asserted keys. For
    contributors sharing one universe this is the plain intersection of their
    assertions. A contributor that is not a member of the group has no universe
    of its own and may exclude any key of the group.
    """

    def __init__(self, group: Group, *, logger: logging.Logger | None = None) -> None:
        self._group = group
        self._logger = logger or logging.getLogger(__name__)
        self._contributions: dict[str, frozenset[str] | None] = {}

    @property
    def contributions(self) -> dict[str, frozenset[str] | None]:
        return dict(self._contributions)

    @property
    def active(self) -> bool:
        """True if at least one contributor asserts a constraint."""
        return any(keys is not None for keys in self._contributions.values())

    def contribution(self, handle_id: str) -> frozenset[str] | None:
        return self._contributions.get(handle_id)

    def contribute(
        self, handle_id: str, keys: Iterable[str] | None, *, sender: Any = None
    ) -> None:
        """Register or replace a contribution and republish the effective filter."""
        with self._group.lock:
            asserted = None if keys is None else key_set(keys)
            self._contributions[handle_id] = asserted
            if asserted is not None:
                self._group.note_keys(asserted)
            self._publish(sender)

    def retract(self, handle_id: str, *, sender: Any = None) -> None:
        """Drop a contribution, if any, and republish the effective filter."""
        with self._group.lock:
            removed = self._contributions.pop(handle_id, _MISSING)
            if (removed is not _MISSING and removed is not None) or self.active:
                self._publish(sender)

    def refresh(self, *, sender: Any = None) -> None:
        """Republish after the group's key universe changed."""
        with self._group.lock:
            if self.active:
                self._publish(sender)

    def key_universe(self) -> frozenset[str]:
        """
        All keys ever seen by the group.

        This includes the universes of detached members and keys asserted by
        contributors, so disposing a handle never removes keys from the filter.
        """
        return self._group.seen_keys()

    def excluded_keys(self) -> frozenset[str]:
        """Keys hidden by at least one contributor."""
        universe = self.key_universe()
        excluded: set[str] = set()
        for handle_id, keys in self._contributions.items():
            if keys is None:
                continue
            membership = self._group.membership(handle_id)
            own = universe if membership is None else membership.key_universe
            excluded |= own - keys
        return frozenset(excluded)

    def effective(self) -> frozenset[str] | None:
        """The effective filter, or None if no contributor asserts a constraint."""
        with self._group.lock:
            if not self.active:
                return None
            return self.key_universe() - self.excluded_keys()

    def _publish(self, sender: Any) -> None:
        effective = self.effective()
        self._logger.debug(
            'Effective filter of group %s: %s',
            self._group.name,
            'unconstrained' if effective is None else f'{len(effective)} keys',
        )
        self._group.filter.set(effective, sender=sender)
