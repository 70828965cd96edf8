#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Core Package for tidyprep
==========================

Modules:
    - metadata: Column metadata table, deltas and name-collision checks
    - selectors: Selector expressions resolved against the metadata
    - recipe: Recipe value, training and application
    - persistence: Saving and loading recipes

``recipe`` and ``persistence`` depend on ``tidyprep.steps``, so they are
imported from their modules (or from the top-level package) rather than
here.
"""

from tidyprep.core.metadata import (
    ColumnInfo,
    ColumnMetadata,
    MetadataDelta,
    infer_type,
    resolve_new_names,
)

__all__ = [
    "ColumnInfo",
    "ColumnMetadata",
    "MetadataDelta",
    "infer_type",
    "resolve_new_names",
]
