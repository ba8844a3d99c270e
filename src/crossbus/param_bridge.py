# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import param

from .variable import ChangeEvent, Variable


class VariableParam(param.Parameterized):
    """
    Mirror of a bus variable as a reactive parameter.

    Changes published on the bus are written to :py:attr:`value`, and assigning to
    :py:attr:`value` publishes on the bus. This lets reactive frameworks such as
    Panel drive or depend on the shared state like any other subscriber or
    publisher.
    """

    value = param.Parameter(default=None, doc="Current value of the bus variable.")

    def __init__(self, variable: Variable, **params: Any) -> None:
        super().__init__(**params)
        self._variable = variable
        self._mirroring = False
        with self._disable_publish():
            self.value = variable.get(None)
        self._subscription = variable.subscribe(self._on_bus_change)
        self._watcher = self.param.watch(self._on_param_change, 'value')

    @property
    def variable(self) -> Variable:
        return self._variable

    @contextmanager
    def _disable_publish(self) -> Iterator[None]:
        """Context manager to avoid echoing mirrored values back to the bus."""
        old_state = self._mirroring
        self._mirroring = True
        try:
            yield
        finally:
            self._mirroring = old_state

    def _on_bus_change(self, event: ChangeEvent) -> None:
        if event.sender is self:
            return
        with self._disable_publish():
            self.value = event.value

    def _on_param_change(self, event: param.parameterized.Event) -> None:
        if self._mirroring:
            return
        self._variable.set(event.new, sender=self)

    def dispose(self) -> None:
        """Stop mirroring. Calling this more than once has no effect."""
        self._subscription.cancel()
        if self._watcher is not None:
            self.param.unwatch(self._watcher)
            self._watcher = None
