# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
"""Exceptions raised while deriving keys and constructing data handles."""

from __future__ import annotations

from collections.abc import Sequence


class CrossbusError(Exception):
    """Base class for all crossbus errors."""


class InvalidKey(CrossbusError, ValueError):
    """
    One or more keys are null, empty or duplicated.

    Parameters
    ----------
    problems:
        Pairs of ``(row, key)`` for every offending row, in row order.
    """

    def __init__(self, problems: Sequence[tuple[int, object]], reason: str) -> None:
        self.rows = tuple(row for row, _ in problems)
        self.keys = tuple(key for _, key in problems)
        shown = ', '.join(f'row {row}: {key!r}' for row, key in problems[:10])
        if len(problems) > 10:
            shown += f', ... ({len(problems) - 10} more)'
        super().__init__(f'{reason} ({shown})')


class KeyLengthMismatch(CrossbusError, ValueError):
    """The number of keys does not match the number of dataset rows."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f'Got {actual} keys for a dataset with {expected} rows. '
            'Keys must be parallel to the dataset rows.'
        )


class InvalidKeySpec(CrossbusError, TypeError):
    """The key specification cannot be resolved against the dataset."""
