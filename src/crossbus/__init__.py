# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
# ruff: noqa: E402, F401, I

import importlib.metadata

try:
    __version__ = importlib.metadata.version(__package__ or __name__)
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0"

del importlib

from .bus import Bus
from .config import BusSettings
from .data_handle import DataHandle
from .errors import CrossbusError, InvalidKey, InvalidKeySpec, KeyLengthMismatch
from .filter_aggregator import FilterAggregator
from .group import FILTER, SELECTION, Group, GroupMembership
from .keys import ColumnRef, Deriving, Explicit, KeySpec, make_keys
from .variable import UNSET, ChangeEvent, Subscription, Variable

__all__ = [
    "FILTER",
    "SELECTION",
    "UNSET",
    "Bus",
    "BusSettings",
    "ChangeEvent",
    "ColumnRef",
    "CrossbusError",
    "DataHandle",
    "Deriving",
    "Explicit",
    "FilterAggregator",
    "Group",
    "GroupMembership",
    "InvalidKey",
    "InvalidKeySpec",
    "KeyLengthMismatch",
    "KeySpec",
    "Subscription",
    "Variable",
    "make_keys",
]
