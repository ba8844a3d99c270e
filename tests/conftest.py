# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
import numpy as np
import pytest
import scipp as sc

from crossbus import Bus


@pytest.fixture
def bus() -> Bus:
    return Bus()


@pytest.fixture
def keys() -> list[str]:
    return ['k1', 'k2', 'k3', 'k4']


@pytest.fixture
def columns(keys: list[str]) -> dict[str, list]:
    """A dataset given as a mapping of column name to values."""
    return {'id': list(keys), 'mpg': [21.0, 22.8, 21.4, 18.7]}


@pytest.fixture
def data_array(keys: list[str]) -> sc.DataArray:
    return sc.DataArray(
        sc.array(dims=['row'], values=[21.0, 22.8, 21.4, 18.7]),
        coords={
            'id': sc.array(dims=['row'], values=list(keys)),
            'cyl': sc.array(dims=['row'], values=np.array([6, 4, 6, 8])),
        },
    )
