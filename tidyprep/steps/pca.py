#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
PCA Signal Extraction
======================

Replaces a group of numeric columns with their principal component
scores.

Training runs a dense SVD over the selected columns.  By default the data
is neither centred nor scaled (do that with earlier steps, or pass
``center=True`` / ``scale=True`` to freeze column means and standard
deviations at train time).  The number of retained components is either

    - ``min(num_comp, number of selected columns)``, or
    - when ``threshold`` is set, the smallest count whose cumulative share
      of the total variance reaches ``threshold``.

Output columns are named ``{prefix}{i}`` with ``i`` zero-padded to the
width of the largest retained index (``PC1``..``PC9``, ``PC001``..``PC101``).
The source columns are dropped.

Usage:
------
    >>> rec = step_pca(rec, all_numeric_predictors(), threshold=0.9)
    >>> trained = train(rec, df)
    >>> describe(trained, 0)                    # loadings
    >>> describe(trained, 0, type='variance')   # variance explained
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import linalg
from sklearn.utils.extmath import svd_flip

from tidyprep.core.metadata import (
    ColumnInfo,
    ColumnMetadata,
    MetadataDelta,
    check_no_collisions,
    resolve_new_names,
)
from tidyprep.core.selectors import combine
from tidyprep.errors import InvalidArgumentError, StepFitError
from tidyprep.steps.base import Step, TrainContext, register_step
from tidyprep.utils.logging_utils import get_logger

logger = get_logger(__name__)


def component_names(prefix: str, n: int) -> List[str]:
    """``prefix`` followed by 1..n, zero-padded to the width of ``n``."""
    width = len(str(n))
    return [f"{prefix}{i:0{width}d}" for i in range(1, n + 1)]


def n_components_for_threshold(sdev: np.ndarray, threshold: float) -> int:
    """Smallest component count whose cumulative variance share reaches ``threshold``."""
    variances = sdev ** 2
    cumulative = np.cumsum(variances / variances.sum())
    # Rounding can leave the last cumulative share a hair under 1.0
    reached = np.flatnonzero(cumulative >= threshold - 1e-10)
    if reached.size == 0:
        return len(sdev)
    return int(reached[0]) + 1


@register_step
@dataclass(frozen=True, eq=False)
class PCAStep(Step):
    """
    Options
    -------
    num_comp : int
        Components to keep (capped at the number of selected columns).
    threshold : float, optional
        Fraction of variance to capture, in (0, 1].  Overrides ``num_comp``.
    prefix : str
        Prefix of the new column names.
    center, scale : bool
        Centre / scale the columns before the decomposition.

    Trained parameters
    ------------------
    rotation : np.ndarray
        Full loading matrix, ``(n_columns, n_available_components)``.
    sdev : np.ndarray
        Standard deviations of all components.
    means, scales : np.ndarray or None
        Frozen centring / scaling vectors.
    n_retained : int
        Components written to the output.
    new_names : tuple of str
        Names of the output columns.
    """
    num_comp: int = 5
    threshold: Optional[float] = None
    prefix: str = 'PC'
    center: bool = False
    scale: bool = False

    rotation: Optional[np.ndarray] = None
    sdev: Optional[np.ndarray] = None
    means: Optional[np.ndarray] = None
    scales: Optional[np.ndarray] = None
    n_retained: int = 0
    new_names: Tuple[str, ...] = ()

    tag = 'pca'
    description = 'PCA extraction'

    def __post_init__(self):
        super().__post_init__()
        if isinstance(self.num_comp, bool) or not isinstance(self.num_comp, (int, np.integer)) or self.num_comp <= 0:
            raise InvalidArgumentError(f"`num_comp` should be a positive integer, got {self.num_comp!r}")
        if self.threshold is not None and not (0 < self.threshold <= 1):
            raise InvalidArgumentError("`threshold` should be on (0, 1].")
        if not isinstance(self.prefix, str) or not self.prefix:
            raise InvalidArgumentError("`prefix` should be a non-empty string")

    def _fit(
        self,
        data: pd.DataFrame,
        metadata: ColumnMetadata,
        columns: List[str],
        context: TrainContext,
    ) -> Tuple[Step, MetadataDelta]:
        self._check_types(metadata, columns, ('numeric',))

        X = data[columns].to_numpy(dtype=float)
        if np.isnan(X).any():
            bad = [c for c in columns if data[c].isna().any()]
            raise StepFitError(f"PCA step '{self.id}': missing values in {bad}")

        means = X.mean(axis=0) if self.center else None
        scales = None
        if self.scale:
            scales = X.std(axis=0, ddof=1)
            constant = [c for c, s in zip(columns, scales) if not s > 0]
            if constant:
                raise StepFitError(
                    f"PCA step '{self.id}': cannot rescale constant column(s) {constant}"
                )

        Xc = _standardize(X, means, scales)
        U, s, Vt = linalg.svd(Xc, full_matrices=False)
        U, Vt = svd_flip(U, Vt)
        sdev = s / np.sqrt(max(X.shape[0] - 1, 1))

        if not (sdev ** 2).sum() > 0:
            raise StepFitError(f"PCA step '{self.id}': selected columns have zero variance")

        if self.threshold is not None:
            n_retained = n_components_for_threshold(sdev, self.threshold)
        else:
            n_retained = min(self.num_comp, len(columns), len(sdev))

        names = resolve_new_names(
            component_names(self.prefix, n_retained),
            existing=metadata.names,
            policy=context.collision_policy,
        )

        rotation = Vt.T
        for arr in (rotation, sdev, means, scales):
            if arr is not None:
                arr.setflags(write=False)

        logger.debug(
            "PCA step '%s': %d columns -> %d components (%.1f%% variance)",
            self.id, len(columns), n_retained,
            100 * (sdev[:n_retained] ** 2).sum() / (sdev ** 2).sum(),
        )

        trained = self._trained_copy(
            columns,
            rotation=rotation,
            sdev=sdev,
            means=means,
            scales=scales,
            n_retained=n_retained,
            new_names=tuple(names),
        )
        delta = MetadataDelta(
            added=tuple(
                ColumnInfo(name=n, type='numeric', roles=(self.role or 'predictor',), source='derived')
                for n in names
            ),
            removed=tuple(columns),
        )
        return trained, delta

    def _bake(self, data: pd.DataFrame) -> pd.DataFrame:
        check_no_collisions(self.new_names, data.columns)

        X = _standardize(data[list(self.columns)].to_numpy(dtype=float), self.means, self.scales)
        scores = X @ self.rotation[:, :self.n_retained]

        kept = data.drop(columns=list(self.columns))
        comps = pd.DataFrame(scores, index=data.index, columns=list(self.new_names))
        return pd.concat([kept, comps], axis=1)

    def explained_variance(self) -> pd.DataFrame:
        """Variance, cumulative variance and their percentages per component."""
        variances = self.sdev ** 2
        share = variances / variances.sum()
        return pd.DataFrame({
            'component': np.arange(1, len(variances) + 1),
            'variance': variances,
            'cumulative variance': np.cumsum(variances),
            'percent variance': 100 * share,
            'cumulative percent variance': 100 * np.cumsum(share),
        })

    def _tidy(self, type: str = 'coef', **kwargs) -> pd.DataFrame:
        if type == 'variance':
            wide = self.explained_variance()
            return wide.melt(id_vars='component', var_name='terms', value_name='value')[
                ['terms', 'value', 'component']
            ]
        if type != 'coef':
            raise InvalidArgumentError(f"type should be 'coef' or 'variance', got '{type}'")

        n_vars, n_comp = self.rotation.shape
        return pd.DataFrame({
            'terms': np.tile(np.asarray(self.columns, dtype=object), n_comp),
            'value': self.rotation.T.ravel(),
            'component': np.repeat([f"PC{j}" for j in range(1, n_comp + 1)], n_vars),
        })

    def _tidy_untrained(self, terms: List[str], **kwargs) -> pd.DataFrame:
        return pd.DataFrame({'terms': terms, 'value': np.nan, 'component': pd.NA})


def _standardize(X: np.ndarray, means: Optional[np.ndarray], scales: Optional[np.ndarray]) -> np.ndarray:
    if means is not None:
        X = X - means
    if scales is not None:
        X = X / scales
    return X


def step_pca(
    recipe: 'Recipe',
    *selectors: 'SelectorLike',
    num_comp: Optional[int] = None,
    threshold: Optional[float] = None,
    prefix: Optional[str] = None,
    role: Optional[str] = None,
    center: bool = False,
    scale: bool = False,
    skip: bool = False,
    id: Optional[str] = None,
) -> 'Recipe':
    """
    Append a PCA step.

    Unset options fall back on ``recipe.config.steps`` (``pca_num_comp``,
    ``pca_prefix``, ``default_role``).  An invalid ``num_comp`` or a
    ``threshold`` outside (0, 1] raises ``InvalidArgumentError`` here,
    not at training time.

    Returns
    -------
    Recipe
        A new recipe with the untrained step appended.
    """
    defaults = recipe.config.steps
    return recipe.add_step(PCAStep(
        terms=combine(selectors),
        role=role or defaults.default_role,
        num_comp=defaults.pca_num_comp if num_comp is None else num_comp,
        threshold=threshold,
        prefix=defaults.pca_prefix if prefix is None else prefix,
        center=center,
        scale=scale,
        skip=skip,
        id=id or '',
    ))
