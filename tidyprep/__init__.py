#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
tidyprep
=========

Declarative preprocessing recipes for tabular data.

A recipe is an ordered list of steps (imputation, PCA, role bookkeeping,
...) written against *selectors* over column metadata instead of fixed
column names.  Training estimates every step's parameters from a
training table; applying replays the steps on any table using only those
frozen parameters.

Usage:
------
    >>> from tidyprep import (
    ...     recipe, step_impute_mode, step_pca, update_role,
    ...     train, apply, describe,
    ...     all_nominal, all_numeric_predictors,
    ... )
    >>>
    >>> rec = recipe(df, outcomes=['churned'])
    >>> rec = update_role(rec, 'customer_id', new_role='id')
    >>> rec = step_impute_mode(rec, all_nominal())
    >>> rec = step_pca(rec, all_numeric_predictors(), threshold=0.9)
    >>>
    >>> trained = train(rec, df_train, random_state=1)
    >>> X_test = apply(trained, df_test)
    >>> describe(trained, 2)
"""

from tidyprep.config import Config
from tidyprep.core.metadata import ColumnInfo, ColumnMetadata, MetadataDelta
from tidyprep.core.selectors import (
    all_dates,
    all_nominal,
    all_nominal_predictors,
    all_numeric,
    all_numeric_predictors,
    all_outcomes,
    all_predictors,
    contains,
    ends_with,
    everything,
    has_role,
    has_type,
    matches,
    resolve,
    starts_with,
    var,
)
from tidyprep.steps import (
    AddRoleStep,
    ImputeModeStep,
    PCAStep,
    Step,
    UpdateRoleStep,
    add_role,
    list_steps,
    register_step,
    step_impute_mode,
    step_pca,
    update_role,
)
from tidyprep.core.recipe import Recipe, apply, describe, juice, recipe, summary, train
from tidyprep.core.persistence import load_recipe, save_recipe
from tidyprep.errors import (
    ColumnTypeError,
    ImputeError,
    InvalidArgumentError,
    MissingColumnError,
    NameCollisionError,
    NotTrainedError,
    RecipeError,
    RoleAlreadyPresentWarning,
    RoleNotFoundError,
    SelectionError,
    StepFitError,
    TrainingError,
)

__version__ = "0.3.0"

__all__ = [
    # Recipe
    "Recipe",
    "recipe",
    "train",
    "apply",
    "juice",
    "describe",
    "summary",
    "save_recipe",
    "load_recipe",
    "Config",
    # Metadata
    "ColumnInfo",
    "ColumnMetadata",
    "MetadataDelta",
    # Selectors
    "resolve",
    "var",
    "everything",
    "has_type",
    "has_role",
    "all_numeric",
    "all_nominal",
    "all_dates",
    "all_predictors",
    "all_outcomes",
    "all_numeric_predictors",
    "all_nominal_predictors",
    "starts_with",
    "ends_with",
    "contains",
    "matches",
    # Steps
    "Step",
    "register_step",
    "list_steps",
    "ImputeModeStep",
    "PCAStep",
    "AddRoleStep",
    "UpdateRoleStep",
    "step_impute_mode",
    "step_pca",
    "add_role",
    "update_role",
    # Errors
    "RecipeError",
    "SelectionError",
    "ColumnTypeError",
    "InvalidArgumentError",
    "NotTrainedError",
    "MissingColumnError",
    "NameCollisionError",
    "RoleNotFoundError",
    "StepFitError",
    "ImputeError",
    "TrainingError",
    "RoleAlreadyPresentWarning",
]
