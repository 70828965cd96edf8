#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Utilities Package for tidyprep
===============================

Shared utility modules:
    - checkpoint: JSON / joblib save and load primitives
    - logging_utils: Centralized logging configuration
"""

from tidyprep.utils.checkpoint import (
    save_pickle,
    load_pickle,
    save_json,
    load_json,
    ensure_dir,
)

from tidyprep.utils.logging_utils import (
    get_logger,
    setup_logging,
    log_stage_header,
    log_dataframe_info,
    LogTimer,
)

__all__ = [
    # Checkpoint utilities
    "save_pickle",
    "load_pickle",
    "save_json",
    "load_json",
    "ensure_dir",
    # Logging utilities
    "get_logger",
    "setup_logging",
    "log_stage_header",
    "log_dataframe_info",
    "LogTimer",
]
