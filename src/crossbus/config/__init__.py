# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
from .config_loader import load_config, load_settings
from .models import BusSettings

__all__ = ["BusSettings", "load_config", "load_settings"]
