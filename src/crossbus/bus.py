# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Iterator
from typing import Any

from .config import BusSettings, load_settings
from .data_handle import DataHandle
from .group import Group
from .keys import make_keys
from .logging import configure_logging


class Bus:
    """
    Registry of the groups of one live document or session.

    A bus is constructed explicitly by whoever owns the session and passed to the
    components that need it. Groups are created on first reference and retained for
    the lifetime of the bus.
    """

    def __init__(
        self,
        settings: BusSettings | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings or BusSettings()
        self._logger = logger or logging.getLogger(__name__)
        self._groups: dict[str, Group] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, env: str | None = None, **kwargs: Any) -> Bus:
        """Create a bus with settings loaded from the packaged config defaults."""
        settings = load_settings(env)
        configure_logging(settings.log_level)
        return cls(settings, **kwargs)

    @property
    def settings(self) -> BusSettings:
        return self._settings

    def get_group(self, name: str) -> Group:
        """Return the group with the given name, creating it if needed."""
        with self._lock:
            if (group := self._groups.get(name)) is None:
                group = Group(
                    name, thread_safe=self._settings.thread_safe, logger=self._logger
                )
                self._groups[name] = group
                self._logger.debug('Created group %s', name)
            return group

    def __contains__(self, name: object) -> bool:
        return name in self._groups

    def __iter__(self) -> Iterator[Group]:
        return iter(list(self._groups.values()))

    def __len__(self) -> int:
        return len(self._groups)

    @property
    def group_names(self) -> tuple[str, ...]:
        return tuple(self._groups)

    def new_group_name(self) -> str:
        """Return a fresh group name that is not linked to anything."""
        return f'{self._settings.group_prefix}{uuid.uuid4().hex}'

    def share(
        self,
        dataset: Any,
        key: Any = None,
        *,
        group: str | None = None,
        handle_id: str | None = None,
    ) -> DataHandle:
        """
        Bind a dataset to a group and return its handle.

        Parameters
        ----------
        dataset:
            The dataset whose rows are shared.
        key:
            Key specification, see :py:func:`crossbus.keys.make_keys`. Defaults to
            row names or positional keys.
        group:
            Name of the group to link to. Datasets shared with the same group name are
            linked. A fresh, unlinked group is used if not given.
        handle_id:
            Identifier of the new handle. Generated if not given.
        """
        keys = make_keys(
            dataset, key, positional_start=self._settings.positional_key_start
        )
        name = group if group is not None else self.new_group_name()
        existing = self._groups.get(name)
        if (
            handle_id is not None
            and existing is not None
            and existing.membership(handle_id) is not None
        ):
            raise ValueError(
                f'Handle {handle_id!r} is already attached to group {name!r}.'
            )
        handle = DataHandle(
            self.get_group(name), keys, handle_id=handle_id, logger=self._logger
        )
        self._logger.debug(
            'Shared %d rows as %s in group %s', len(keys), handle.id, name
        )
        return handle

    def __repr__(self) -> str:
        return f'Bus(groups={list(self._groups)})'
