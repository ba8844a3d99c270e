# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Scipp contributors (https://github.com/scipp)
import os
from importlib import resources

import yaml

from .models import BusSettings


def load_config(*, namespace: str, env: str | None = None) -> dict:
    """Load configuration based on environment.

    Parameters
    ----------
    namespace:
        Configuration namespace (e.g. 'bus')
    env:
        Environment name ('dev', 'test', 'prod').
        Defaults to value of CROSSBUS_ENV environment variable. Set to an empty string
        if the config file is independent of an environment.
    """
    env = env if env is not None else os.getenv('CROSSBUS_ENV', 'dev')
    env = f'_{env}' if env else ''
    config_file = f'{namespace}{env}.yaml'

    config_path = resources.files('crossbus.config.defaults')
    try:
        with config_path.joinpath(config_file).open() as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise FileNotFoundError(
            f"{config_file} not found in config defaults"
        ) from None


def load_settings(env: str | None = None) -> BusSettings:
    """Load and validate the bus settings for an environment."""
    return BusSettings.model_validate(load_config(namespace='bus', env=env))
