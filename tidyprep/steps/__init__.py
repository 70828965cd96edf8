#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Step Variants for tidyprep
===========================

Modules:
    - base: Step contract, training context and the tag registry
    - impute_mode: Mode imputation of nominal columns
    - pca: PCA signal extraction
    - roles: Role bookkeeping (``add_role`` / ``update_role``)

Importing this package registers every built-in variant.
"""

from tidyprep.steps.base import (
    Step,
    TrainContext,
    register_step,
    get_step_class,
    list_steps,
    step_from_dict,
)
from tidyprep.steps.impute_mode import ImputeModeStep, step_impute_mode
from tidyprep.steps.pca import PCAStep, step_pca
from tidyprep.steps.roles import AddRoleStep, UpdateRoleStep, add_role, update_role

__all__ = [
    "Step",
    "TrainContext",
    "register_step",
    "get_step_class",
    "list_steps",
    "step_from_dict",
    "ImputeModeStep",
    "PCAStep",
    "AddRoleStep",
    "UpdateRoleStep",
    "step_impute_mode",
    "step_pca",
    "add_role",
    "update_role",
]
