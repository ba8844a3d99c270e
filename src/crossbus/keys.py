# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
"""
Derivation and validation of row keys.

Keys are the only vocabulary shared across the bus. Every dataset bound to a group
exposes one key per row, and keys are validated eagerly so a broken dataset is
rejected before any widget can observe it.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping, Sequence, Sized
from dataclasses import dataclass
from typing import Any

import numpy as np
import scipp as sc

from .errors import InvalidKey, InvalidKeySpec, KeyLengthMismatch

Key = str


@dataclass(frozen=True, slots=True)
class Explicit:
    """Keys given as an explicit sequence, parallel to the dataset rows."""

    keys: Sequence[Any]


@dataclass(frozen=True, slots=True)
class ColumnRef:
    """Keys taken from a named column (or coord) of the dataset."""

    name: str


@dataclass(frozen=True, slots=True)
class Deriving:
    """Keys computed from the dataset by a function."""

    fn: Callable[[Any], Sequence[Any]]


KeySpec = Explicit | ColumnRef | Deriving


def as_key_spec(spec: Any) -> KeySpec:
    """
    Coerce a loosely specified key specification into a :py:data:`KeySpec`.

    Strings are column references, callables derive keys and any other sized iterable,
    such as a list, array or series, is taken as the explicit keys.
    """
    if isinstance(spec, Explicit | ColumnRef | Deriving):
        return spec
    if isinstance(spec, str):
        return ColumnRef(spec)
    if callable(spec):
        return Deriving(spec)
    if isinstance(spec, sc.Variable | np.ndarray | Sequence):
        return Explicit(spec)
    # Array-likes such as pandas Series are sized iterables but not Sequences.
    if isinstance(spec, Sized) and isinstance(spec, Iterable) and not isinstance(
        spec, Mapping
    ):
        return Explicit(spec)
    raise InvalidKeySpec(
        f'Cannot use object of type {type(spec).__name__} as a key specification. '
        'Expected a key sequence, a column name or a function.'
    )


def _is_scipp(dataset: Any) -> bool:
    return isinstance(dataset, sc.DataArray | sc.Dataset)


def row_count(dataset: Any) -> int:
    """Return the number of rows of a dataset."""
    if _is_scipp(dataset):
        sizes = dataset.sizes
        if len(sizes) != 1:
            raise InvalidKeySpec(
                f'Keyed datasets must be one-dimensional, got dims {tuple(sizes)}.'
            )
        return next(iter(sizes.values()))
    if isinstance(dataset, Mapping):
        lengths = {name: len(values) for name, values in dataset.items()}
        if len(set(lengths.values())) > 1:
            raise InvalidKeySpec(f'Columns have differing lengths: {lengths}')
        return next(iter(lengths.values()), 0)
    return len(dataset)


def column(dataset: Any, name: str) -> Any:
    """Return the values of a column of the dataset."""
    try:
        if _is_scipp(dataset):
            if name in dataset.coords:
                return dataset.coords[name].values
            if isinstance(dataset, sc.Dataset):
                return dataset[name].values
            raise KeyError(name)
        return dataset[name]
    except (KeyError, IndexError, ValueError):
        raise InvalidKeySpec(f'Dataset has no column named {name!r}.') from None


def _is_null(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, float | np.floating) and bool(np.isnan(value))


def _to_key(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode('utf-8')
    return str(value)


def validate_keys(values: Iterable[Any]) -> tuple[Key, ...]:
    """
    Materialise keys as strings and check that they are non-empty and unique.

    Raises
    ------
    InvalidKey:
        If any key is null, empty or duplicated. The error lists every offending row.
    """
    if isinstance(values, sc.Variable):
        if values.ndim != 1:
            raise InvalidKeySpec(f'Keys must be one-dimensional, got {values.dims}.')
        values = values.values
    keys: list[Key] = []
    missing: list[tuple[int, Any]] = []
    rows_by_key: dict[Key, list[int]] = defaultdict(list)
    for row, value in enumerate(values):
        key = '' if _is_null(value) else _to_key(value)
        if not key:
            missing.append((row, value))
        else:
            rows_by_key[key].append(row)
        keys.append(key)
    if missing:
        raise InvalidKey(missing, 'Keys must not be null or empty')
    duplicates = sorted(
        (row, key)
        for key, rows in rows_by_key.items()
        if len(rows) > 1
        for row in rows
    )
    if duplicates:
        raise InvalidKey(duplicates, 'Keys must be unique')
    return tuple(keys)


def key_set(keys: Iterable[Key]) -> frozenset[Key]:
    """Collect published keys into a set, treating a single string as one key."""
    if isinstance(keys, str):
        return frozenset((keys,))
    return frozenset(keys)


def default_keys(dataset: Any, *, start: int = 1) -> Sequence[Any]:
    """Row names of the dataset if it has any, else positional keys."""
    index = None if _is_scipp(dataset) else getattr(dataset, 'index', None)
    if index is not None and not callable(index):
        return list(index)
    return [str(i) for i in range(start, start + row_count(dataset))]


def make_keys(
    dataset: Any, spec: Any = None, *, positional_start: int = 1
) -> tuple[Key, ...]:
    """
    Derive the validated key sequence for a dataset.

    Parameters
    ----------
    dataset:
        A scipp DataArray or Dataset, a mapping of column name to values, or any
        object supporting ``len`` and column lookup by name.
    spec:
        Explicit keys, a column name, a deriving function or any :py:data:`KeySpec`.
        If None, row names or positional keys are used.
    positional_start:
        The first positional key when falling back to positional keys.
    """
    nrows = row_count(dataset)
    if spec is None:
        values = default_keys(dataset, start=positional_start)
    else:
        match as_key_spec(spec):
            case Explicit(keys=keys):
                values = keys
            case ColumnRef(name=name):
                values = column(dataset, name)
            case Deriving(fn=fn):
                values = fn(dataset)
    if isinstance(values, sc.Variable):
        values = values.values
    values = list(values)
    if len(values) != nrows:
        raise KeyLengthMismatch(expected=nrows, actual=len(values))
    return validate_keys(values)
