# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
"""
Models for the settings of a bus.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

LogLevel = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR']


class BusSettings(BaseModel):
    """Settings shared by all groups of a bus."""

    model_config = ConfigDict(frozen=True, extra='forbid')

    group_prefix: str = Field(
        default='group_',
        min_length=1,
        description="Prefix of auto-generated group names.",
    )
    positional_key_start: int = Field(
        default=1,
        ge=0,
        description="First key when falling back to positional row keys.",
    )
    thread_safe: bool = Field(
        default=True,
        description="Guard each group with a lock so it can be driven from threads.",
    )
    log_level: LogLevel = Field(default='INFO', description="Level of the bus logger.")
