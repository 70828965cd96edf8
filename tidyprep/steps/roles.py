#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Role Assignment
================

``add_role`` and ``update_role`` only touch the metadata table: they
learn nothing from the data and pass the data through unchanged, so a
column they name (typically an outcome) may be absent from data the
recipe is applied to.  Both run in recipe order, so selectors of later
steps see the new roles.

    add_role     append a role to each selected column.  A column that
                 already has it is left alone with a
                 ``RoleAlreadyPresentWarning``.
    update_role  replace ``old_role`` with ``new_role`` (every selected
                 column must carry ``old_role``), or, without
                 ``old_role``, replace the whole role set.

Either may override the detected column type with ``new_type``.
"""

import warnings
from dataclasses import dataclass
from typing import List, Optional, Tuple

import pandas as pd

from tidyprep.core.metadata import COLUMN_TYPES, ColumnMetadata, MetadataDelta, with_roles
from tidyprep.core.selectors import combine
from tidyprep.errors import InvalidArgumentError, RoleAlreadyPresentWarning, RoleNotFoundError
from tidyprep.steps.base import Step, TrainContext, register_step


@dataclass(frozen=True, eq=False)
class _RoleStep(Step):
    new_role: str = 'predictor'
    new_type: Optional[str] = None

    checks_columns_on_apply = False

    def __post_init__(self):
        super().__post_init__()
        if not isinstance(self.new_role, str) or not self.new_role:
            raise InvalidArgumentError("`new_role` should be a non-empty string")
        if self.new_type is not None and self.new_type not in COLUMN_TYPES:
            raise InvalidArgumentError(
                f"`new_type` should be one of {COLUMN_TYPES}, got '{self.new_type}'"
            )

    def _bake(self, data: pd.DataFrame) -> pd.DataFrame:
        return data

    def _tidy(self, **kwargs) -> pd.DataFrame:
        return pd.DataFrame({'terms': list(self.columns), 'role': self.new_role})

    def _tidy_untrained(self, terms: List[str], **kwargs) -> pd.DataFrame:
        return pd.DataFrame({'terms': terms, 'role': self.new_role})


@register_step
@dataclass(frozen=True, eq=False)
class AddRoleStep(_RoleStep):
    tag = 'add_role'
    description = 'Add role'

    def _fit(
        self,
        data: pd.DataFrame,
        metadata: ColumnMetadata,
        columns: List[str],
        context: TrainContext,
    ) -> Tuple[Step, MetadataDelta]:
        modified = []
        for col in columns:
            info = metadata[col]
            if info.has_role(self.new_role):
                warnings.warn(
                    f"Role '{self.new_role}' already exists for column '{col}'; "
                    f"leaving it unchanged",
                    RoleAlreadyPresentWarning,
                    stacklevel=2,
                )
                if self.new_type and self.new_type != info.type:
                    modified.append(with_roles(info, info.roles, self.new_type))
                continue
            modified.append(with_roles(info, info.roles + (self.new_role,), self.new_type))

        return self._trained_copy(columns), MetadataDelta(modified=tuple(modified))


@register_step
@dataclass(frozen=True, eq=False)
class UpdateRoleStep(_RoleStep):
    old_role: Optional[str] = None

    tag = 'update_role'
    description = 'Update role'

    def _fit(
        self,
        data: pd.DataFrame,
        metadata: ColumnMetadata,
        columns: List[str],
        context: TrainContext,
    ) -> Tuple[Step, MetadataDelta]:
        if self.old_role is not None:
            stale = [c for c in columns if not metadata[c].has_role(self.old_role)]
            if stale:
                raise RoleNotFoundError(
                    f"Column(s) {stale} do not have role '{self.old_role}'"
                )

        modified = []
        for col in columns:
            info = metadata[col]
            if self.old_role is None:
                roles = (self.new_role,)
            else:
                roles = tuple(self.new_role if r == self.old_role else r for r in info.roles)
            modified.append(with_roles(info, roles, self.new_type))

        return self._trained_copy(columns), MetadataDelta(modified=tuple(modified))


def add_role(
    recipe: 'Recipe',
    *selectors: 'SelectorLike',
    new_role: str = 'predictor',
    new_type: Optional[str] = None,
    id: Optional[str] = None,
) -> 'Recipe':
    """Append a step adding ``new_role`` to the selected columns."""
    return recipe.add_step(AddRoleStep(
        terms=combine(selectors),
        new_role=new_role,
        new_type=new_type,
        id=id or '',
    ))


def update_role(
    recipe: 'Recipe',
    *selectors: 'SelectorLike',
    new_role: str = 'predictor',
    old_role: Optional[str] = None,
    new_type: Optional[str] = None,
    id: Optional[str] = None,
) -> 'Recipe':
    """
    Append a step changing the roles of the selected columns.

    With ``old_role`` only that role is swapped for ``new_role``; without
    it the whole role set becomes ``{new_role}``.
    """
    return recipe.add_step(UpdateRoleStep(
        terms=combine(selectors),
        new_role=new_role,
        old_role=old_role,
        new_type=new_type,
        id=id or '',
    ))
