#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Configuration for tidyprep
============================

A small dataclass tree holding the defaults recipes and steps fall back
on when the caller leaves an option unset:

    Config
      ├── steps            StepDefaults   (PCA component count, prefix, role)
      ├── logging          LoggingConfig  (passed to ``setup_logging``)
      ├── collision_policy 'error' | 'rename'
      └── random_state     seed for randomized tie-breaks

Usage:
------
    >>> from tidyprep.config import Config
    >>> config = Config.from_dict({'steps': {'pca_num_comp': 3}})
    >>> config = Config.from_json('configs/recipes.json')
    >>> config = Config.from_env()   # TIDYPREP_* variables
    >>> config.configure_logging()
"""

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from tidyprep.errors import InvalidArgumentError
from tidyprep.utils.checkpoint import load_json
from tidyprep.utils.logging_utils import setup_logging

COLLISION_POLICIES = ('error', 'rename')


@dataclass(frozen=True)
class StepDefaults:
    """Defaults applied by the step constructors."""
    pca_num_comp: int = 5
    pca_prefix: str = 'PC'
    default_role: str = 'predictor'


@dataclass(frozen=True)
class LoggingConfig:
    """Arguments forwarded to :func:`tidyprep.utils.logging_utils.setup_logging`."""
    level: str = 'INFO'
    log_dir: Optional[str] = None
    use_rich: bool = True


@dataclass(frozen=True)
class Config:
    """Top-level configuration."""
    steps: StepDefaults = field(default_factory=StepDefaults)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    collision_policy: str = 'error'
    random_state: Optional[int] = None

    def __post_init__(self):
        if self.collision_policy not in COLLISION_POLICIES:
            raise InvalidArgumentError(
                f"collision_policy must be one of {COLLISION_POLICIES}, "
                f"got '{self.collision_policy}'"
            )
        if not isinstance(self.steps.pca_num_comp, int) or self.steps.pca_num_comp <= 0:
            raise InvalidArgumentError(
                f"steps.pca_num_comp must be a positive integer, got {self.steps.pca_num_comp!r}"
            )
        if not self.steps.pca_prefix:
            raise InvalidArgumentError("steps.pca_prefix must be a non-empty string")

    # ----- Construction -------------------------------------------------

    @classmethod
    def from_dict(cls, spec: Dict[str, Any]) -> 'Config':
        """Build a config from a (possibly partial) nested dict."""
        spec = dict(spec or {})
        unknown = set(spec) - {f.name for f in fields(cls)}
        if unknown:
            raise InvalidArgumentError(f"Unknown config keys: {sorted(unknown)}")

        steps = _section(StepDefaults, spec.pop('steps', None), 'steps')
        log_cfg = _section(LoggingConfig, spec.pop('logging', None), 'logging')
        return cls(steps=steps, logging=log_cfg, **spec)

    @classmethod
    def from_json(cls, filepath: Union[str, Path]) -> 'Config':
        """Load a config from a JSON file."""
        return cls.from_dict(load_json(filepath))

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> 'Config':
        """
        Build a config from ``TIDYPREP_*`` environment variables.

        Recognised: ``TIDYPREP_LOG_LEVEL``, ``TIDYPREP_LOG_DIR``,
        ``TIDYPREP_RANDOM_STATE``, ``TIDYPREP_COLLISION_POLICY``.
        """
        env = os.environ if environ is None else environ
        spec: Dict[str, Any] = {}
        log_spec: Dict[str, Any] = {}

        if 'TIDYPREP_LOG_LEVEL' in env:
            log_spec['level'] = env['TIDYPREP_LOG_LEVEL'].upper()
        if 'TIDYPREP_LOG_DIR' in env:
            log_spec['log_dir'] = env['TIDYPREP_LOG_DIR']
        if 'TIDYPREP_COLLISION_POLICY' in env:
            spec['collision_policy'] = env['TIDYPREP_COLLISION_POLICY'].lower()
        if 'TIDYPREP_RANDOM_STATE' in env:
            try:
                spec['random_state'] = int(env['TIDYPREP_RANDOM_STATE'])
            except ValueError:
                raise InvalidArgumentError(
                    f"TIDYPREP_RANDOM_STATE must be an integer, "
                    f"got '{env['TIDYPREP_RANDOM_STATE']}'"
                ) from None

        if log_spec:
            spec['logging'] = log_spec
        return cls.from_dict(spec)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def configure_logging(self, force: bool = False, **kwargs) -> "logging.Logger":
        """
        Call :func:`~tidyprep.utils.logging_utils.setup_logging` with the
        ``logging`` section.  Extra keyword arguments override it.
        """
        options = {**asdict(self.logging), **kwargs}
        return setup_logging(force=force, **options)


def _section(section_cls, spec: Optional[Dict[str, Any]], name: str):
    if spec is None:
        return section_cls()
    unknown = set(spec) - {f.name for f in fields(section_cls)}
    if unknown:
        raise InvalidArgumentError(f"Unknown keys in config section '{name}': {sorted(unknown)}")
    return section_cls(**spec)
