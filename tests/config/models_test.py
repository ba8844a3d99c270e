# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
import pydantic
import pytest

from crossbus.config import BusSettings


def test_defaults() -> None:
    settings = BusSettings()
    assert settings.group_prefix == 'group_'
    assert settings.positional_key_start == 1
    assert settings.thread_safe
    assert settings.log_level == 'INFO'


@pytest.mark.parametrize(
    'field',
    [
        {'group_prefix': ''},
        {'positional_key_start': -1},
        {'log_level': 'LOUD'},
        {'unknown': True},
    ],
)
def test_invalid_settings_raise(field: dict) -> None:
    with pytest.raises(pydantic.ValidationError):
        BusSettings(**field)


def test_settings_are_frozen() -> None:
    settings = BusSettings()
    with pytest.raises(pydantic.ValidationError):
        settings.group_prefix = 'other'
