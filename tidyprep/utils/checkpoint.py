#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Checkpoint Utilities for tidyprep
===================================

Low-level save/load primitives used to persist trained recipes:
    - JSON with a serializer that understands numpy / pandas / sets
    - joblib pickles for recipes that carry retained training data
    - Directory management

The recipe-aware layer (``tidyprep.core.persistence``) builds on these.

Usage:
------
    >>> from tidyprep.utils.checkpoint import save_json, load_json
    >>> save_json(recipe.to_dict(), 'artifacts/recipe.json')
    >>> spec = load_json('artifacts/recipe.json')
"""

import json
import pickle
from pathlib import Path
from typing import Any, Union
from datetime import datetime

import joblib
import numpy as np
import pandas as pd


# =============================================================================
# DIRECTORY UTILITIES
# =============================================================================

def ensure_dir(path: Union[str, Path], parents: bool = True) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    If ``path`` has a suffix it is treated as a file path and its
    parent directory is created instead.

    Examples
    --------
    >>> ensure_dir('/outputs/recipes/credit.json')
    PosixPath('/outputs/recipes')
    """
    path = Path(path)
    dir_path = path.parent if path.suffix else path
    dir_path.mkdir(parents=parents, exist_ok=True)
    return dir_path


# =============================================================================
# PICKLE SAVE / LOAD
# =============================================================================

def save_pickle(
    data: Any,
    filepath: Union[str, Path],
    compress: int = 3,
    protocol: int = pickle.HIGHEST_PROTOCOL,
) -> Path:
    """
    Save an object with joblib.

    joblib stores the numpy arrays inside trained steps efficiently,
    which is why it is used instead of plain pickle.

    Parameters
    ----------
    data : Any
        Object to serialize.
    filepath : str or Path
        Destination file path.
    compress : int
        Compression level (0–9).
    protocol : int
        Pickle protocol version.

    Returns
    -------
    Path
        Path to the saved file.
    """
    filepath = Path(filepath)
    ensure_dir(filepath)
    joblib.dump(data, filepath, compress=compress, protocol=protocol)
    return filepath


def load_pickle(filepath: Union[str, Path]) -> Any:
    """
    Load an object saved with :func:`save_pickle`.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Checkpoint file not found: {filepath}")
    return joblib.load(filepath)


# =============================================================================
# JSON SAVE / LOAD
# =============================================================================

def _json_default_serializer(obj: Any) -> Any:
    """
    Serializer for objects the default JSON encoder rejects.

    Handles: datetime, Path, sets, numpy scalars/arrays, pandas timestamps
    and missing values.
    """
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, pd.Timestamp):
        return obj.isoformat()
    if obj is pd.NA or obj is pd.NaT:
        return None

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def save_json(
    data: Any,
    filepath: Union[str, Path],
    indent: int = 2,
    sort_keys: bool = False,
) -> Path:
    """
    Save data to a JSON file.

    Parameters
    ----------
    data : Any
        JSON-compatible structure (dict, list, ...).
    filepath : str or Path
        Destination file path.
    indent : int
        Indentation level for pretty-printing.
    sort_keys : bool
        Sort dictionary keys.

    Returns
    -------
    Path
        Path to the saved file.
    """
    filepath = Path(filepath)
    ensure_dir(filepath)

    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(
            data, f,
            indent=indent,
            sort_keys=sort_keys,
            ensure_ascii=False,
            default=_json_default_serializer,
        )

    return filepath


def load_json(filepath: Union[str, Path]) -> Any:
    """
    Load data from a JSON file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    """
    filepath = Path(filepath)

    if not filepath.exists():
        raise FileNotFoundError(f"JSON file not found: {filepath}")

    with open(filepath, 'r', encoding='utf-8') as f:
        return json.load(f)
