#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Mode Imputation
================

Replaces missing values of nominal columns with the most frequent value
seen in the training data.  When several values share the highest count
one of them is drawn with the recipe's random state, so results are
reproducible only when a seed is given.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from tidyprep.core.metadata import ColumnMetadata, MetadataDelta
from tidyprep.core.selectors import combine
from tidyprep.errors import ImputeError
from tidyprep.steps.base import Step, TrainContext, register_step
from tidyprep.utils.logging_utils import get_logger

logger = get_logger(__name__)


def estimate_mode(values: pd.Series, random_state: np.random.RandomState) -> Any:
    """
    Most frequent non-missing value of ``values``.

    Ties are broken by a uniform draw over the tied values, sorted by
    their string form so the draw only depends on the seed.

    Raises
    ------
    ImputeError
        If every value is missing.
    """
    observed = values.dropna()
    if observed.empty:
        raise ImputeError(f"Column '{values.name}' has no observed values")

    counts = observed.value_counts(sort=False)
    tied = sorted(counts.index[counts == counts.max()], key=str)
    if len(tied) == 1:
        mode = tied[0]
    else:
        mode = tied[random_state.randint(len(tied))]
    return mode.item() if isinstance(mode, np.generic) else mode


@register_step
@dataclass(frozen=True, eq=False)
class ImputeModeStep(Step):
    """
    Trained parameters
    ------------------
    modes : tuple of (column, value)
        Mode per column.  Columns that were entirely missing at training
        time have no entry.
    """
    modes: Tuple[Tuple[str, Any], ...] = ()

    tag = 'impute_mode'
    description = 'Mode imputation'

    @property
    def mode_map(self) -> Dict[str, Any]:
        return dict(self.modes)

    def _fit(
        self,
        data: pd.DataFrame,
        metadata: ColumnMetadata,
        columns: List[str],
        context: TrainContext,
    ) -> Tuple[Step, MetadataDelta]:
        self._check_types(metadata, columns, ('nominal',))

        modes = []
        for col in columns:
            try:
                modes.append((col, estimate_mode(data[col], context.random_state)))
            except ImputeError:
                logger.warning(
                    "Step '%s': column '%s' is entirely missing; no mode estimated",
                    self.id, col,
                )

        return self._trained_copy(columns, modes=tuple(modes)), MetadataDelta()

    def _bake(self, data: pd.DataFrame) -> pd.DataFrame:
        modes = self.mode_map
        out = data.copy()

        for col in self.columns:
            if col not in modes:
                raise ImputeError(
                    f"Step '{self.id}' has no mode for column '{col}' "
                    f"(it had no observed values in the training data)"
                )
            if not out[col].isna().any():
                continue

            value = modes[col]
            series = out[col]
            if isinstance(series.dtype, pd.CategoricalDtype) and value not in series.cat.categories:
                series = series.cat.add_categories([value])
            out[col] = series.fillna(value)

        return out

    def _tidy(self, **kwargs) -> pd.DataFrame:
        modes = self.mode_map
        return pd.DataFrame({
            'terms': list(self.columns),
            'value': [modes.get(c, np.nan) for c in self.columns],
        })


def step_impute_mode(
    recipe: 'Recipe',
    *selectors: 'SelectorLike',
    skip: bool = False,
    id: Optional[str] = None,
) -> 'Recipe':
    """
    Append a mode-imputation step.

    Parameters
    ----------
    recipe : Recipe
        Recipe to extend (left unchanged).
    *selectors : Selector or str
        Nominal columns to impute.
    skip : bool
        Leave the step out when applying to new data.
    id : str, optional
        Step id.  Generated when omitted.

    Returns
    -------
    Recipe
        A new recipe with the untrained step appended.
    """
    return recipe.add_step(ImputeModeStep(
        terms=combine(selectors),
        skip=skip,
        id=id or '',
    ))
