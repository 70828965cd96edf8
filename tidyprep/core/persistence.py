#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Saving and Loading Recipes
===========================

Two on-disk formats:

    ``.json``   portable; steps, selectors, metadata and config only
    otherwise   joblib pickle of the whole recipe, retained data included

Usage:
------
    >>> save_recipe(trained, 'artifacts/credit_recipe.json')
    >>> trained = load_recipe('artifacts/credit_recipe.json')
    >>> out = trained.apply(new_df)
"""

from pathlib import Path
from typing import Union

from tidyprep.core.recipe import Recipe
from tidyprep.errors import InvalidArgumentError
from tidyprep.utils.checkpoint import load_json, load_pickle, save_json, save_pickle
from tidyprep.utils.logging_utils import get_logger

logger = get_logger(__name__)

FORMAT_VERSION = 1


def save_recipe(recipe: Recipe, filepath: Union[str, Path]) -> Path:
    """Write ``recipe`` to ``filepath``; the suffix picks the format."""
    filepath = Path(filepath)
    if filepath.suffix == '.json':
        spec = {'format_version': FORMAT_VERSION, **recipe.to_dict()}
        path = save_json(spec, filepath)
    else:
        path = save_pickle(recipe, filepath)
    logger.info("Saved recipe (%d steps, trained=%s) to %s", len(recipe), recipe.trained, path)
    return path


def load_recipe(filepath: Union[str, Path]) -> Recipe:
    """Read a recipe written by :func:`save_recipe`."""
    filepath = Path(filepath)
    if filepath.suffix == '.json':
        spec = load_json(filepath)
        version = spec.pop('format_version', FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise InvalidArgumentError(
                f"Unsupported recipe format version {version} in {filepath}"
            )
        recipe = Recipe.from_dict(spec)
    else:
        recipe = load_pickle(filepath)
        if not isinstance(recipe, Recipe):
            raise InvalidArgumentError(f"{filepath} does not contain a Recipe")
    logger.debug("Loaded recipe with %d steps from %s", len(recipe), filepath)
    return recipe
