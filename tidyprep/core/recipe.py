#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Recipes: Ordered, Trainable Step Pipelines
============================================

A :class:`Recipe` is an immutable value holding

    - the template metadata inferred from the data it was created from,
    - an ordered tuple of steps,
    - the metadata table as it stands after the trained steps,
    - a :class:`~tidyprep.config.Config`.

Every call that adds a step returns a new recipe.  Training returns a new
recipe with each step replaced by its trained counterpart; applying never
changes the recipe, so one trained recipe can serve concurrent callers.

Training walks the steps in order.  Each untrained step resolves its
selector against the current metadata, estimates its parameters, and is
then applied to a working copy of the training data so that later steps
see its output.  Steps that are already trained are only applied.  When a
step fails, the :class:`~tidyprep.errors.TrainingError` carries the
recipe with every earlier step trained (``partial_recipe``); training that
recipe again resumes at the failing step.  The recipe passed in is never
modified.

Usage:
------
    >>> from tidyprep import recipe, step_impute_mode, step_pca, train, apply
    >>> from tidyprep.core.selectors import all_nominal, all_numeric_predictors
    >>>
    >>> rec = recipe(df, outcomes=['y'])
    >>> rec = step_impute_mode(rec, all_nominal())
    >>> rec = step_pca(rec, all_numeric_predictors(), num_comp=2)
    >>> trained = train(rec, df, random_state=42)
    >>> out = apply(trained, new_df)
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.utils import check_random_state

from tidyprep.config import Config
from tidyprep.core.metadata import ColumnMetadata
from tidyprep.core.selectors import SelectorLike, resolve
from tidyprep.errors import (
    InvalidArgumentError,
    MissingColumnError,
    NotTrainedError,
    SelectionError,
    TrainingError,
)
from tidyprep.steps import Step, TrainContext, step_from_dict
from tidyprep.utils.logging_utils import (
    LogTimer,
    get_logger,
    log_dataframe_info,
    log_stage_header,
)

logger = get_logger(__name__)


# =============================================================================
# RECIPE
# =============================================================================

@dataclass(frozen=True, eq=False)
class Recipe:
    """
    Ordered preprocessing steps plus the column metadata they act on.

    Attributes
    ----------
    template : ColumnMetadata
        Columns, types and roles of the data the recipe was created from.
    steps : tuple of Step
        Steps in authoring order.
    metadata : ColumnMetadata
        Metadata after the trained steps (equal to ``template`` before
        training).
    config : Config
        Defaults for step options, collision policy and seeding.
    retained : pd.DataFrame, optional
        Processed training data, kept when trained with ``retain=True``.
    """
    template: ColumnMetadata
    steps: Tuple[Step, ...] = ()
    metadata: Optional[ColumnMetadata] = None
    config: Config = field(default_factory=Config)
    retained: Optional[pd.DataFrame] = field(default=None, repr=False)

    def __post_init__(self):
        if self.metadata is None:
            object.__setattr__(self, 'metadata', self.template)
        object.__setattr__(self, 'steps', tuple(self.steps))

    # ----- State ---------------------------------------------------------

    @property
    def trained(self) -> bool:
        """True when every step is trained."""
        return all(s.trained for s in self.steps)

    @property
    def original_schema(self) -> Dict[str, str]:
        """Column name -> type of the data the recipe was created from."""
        return {c.name: c.type for c in self.template}

    def _n_trained(self) -> int:
        n = 0
        for step in self.steps:
            if not step.trained:
                break
            n += 1
        return n

    # ----- Authoring ----------------------------------------------------

    def add_step(self, step: Step) -> 'Recipe':
        """Return a new recipe with ``step`` appended."""
        if not isinstance(step, Step):
            raise InvalidArgumentError(f"Expected a Step, got {type(step).__name__}")
        if step.trained:
            raise InvalidArgumentError(f"Step '{step.id}' is already trained")
        if any(s.id == step.id for s in self.steps):
            raise InvalidArgumentError(f"A step with id '{step.id}' already exists")
        return replace(self, steps=self.steps + (step,))

    # ----- Training -----------------------------------------------------

    def train(
        self,
        data: pd.DataFrame,
        retain: bool = True,
        random_state: Union[None, int, np.random.RandomState] = None,
    ) -> 'Recipe':
        """
        Estimate the parameters of every untrained step.

        Parameters
        ----------
        data : pd.DataFrame
            Training data.  Must hold every template column.
        retain : bool
            Keep the processed training data (see :meth:`juice`).
        random_state : int or RandomState, optional
            Seed for randomized tie-breaks.  Defaults to
            ``config.random_state``.

        Returns
        -------
        Recipe
            New recipe with all steps trained.

        Raises
        ------
        MissingColumnError
            If ``data`` lacks a template column.
        TrainingError
            If a step fails; ``partial_recipe`` holds the progress so far.
        """
        missing = [n for n in self.template.names if n not in data.columns]
        if missing:
            raise MissingColumnError(f"Training data is missing recipe column(s) {missing}")

        if random_state is None:
            random_state = self.config.random_state
        context = TrainContext(
            random_state=check_random_state(random_state),
            collision_policy=self.config.collision_policy,
        )

        n_done = self._n_trained()
        log_stage_header(
            logger, 'train',
            f"{len(self.steps) - n_done} of {len(self.steps)} steps to estimate",
            level=logging.DEBUG,
        )
        log_dataframe_info(logger, data, name='training data', level=logging.DEBUG)

        working = data[self.template.names]
        steps = list(self.steps)
        metadata = self.template if n_done == 0 else self.metadata

        for i, step in enumerate(steps):
            try:
                if i < n_done:
                    working = step.apply(working)
                    if i == n_done - 1:
                        metadata = metadata.reconcile(working.columns)
                    continue

                with LogTimer(logger, f"step {i} '{step.id}' ({step.tag})"):
                    trained, delta = step.train(working, metadata, context)
                    working = trained.apply(working)
                    metadata = metadata.merge(delta).reconcile(working.columns)
            except Exception as exc:
                partial = replace(self, steps=tuple(steps), metadata=metadata, retained=None)
                raise TrainingError(
                    f"Step {i} '{step.id}' ({step.tag}) failed: {exc}",
                    step_index=i,
                    step_id=step.id,
                    partial_recipe=partial,
                ) from exc

            steps[i] = trained

        logger.info(
            "Trained recipe: %d steps, %d -> %d columns",
            len(steps), len(self.template), len(metadata),
        )

        return replace(
            self,
            steps=tuple(steps),
            metadata=metadata,
            retained=working if retain else None,
        )

    # ----- Application --------------------------------------------------

    def apply(
        self,
        data: pd.DataFrame,
        select: Optional[Union[SelectorLike, Sequence[SelectorLike]]] = None,
    ) -> pd.DataFrame:
        """
        Run every non-skipped step, in order, on ``data``.

        Columns the recipe does not know about are dropped first and the
        rest put in template order.  Only frozen parameters are used;
        ``data`` is not modified.

        Parameters
        ----------
        data : pd.DataFrame
            New data.
        select : selector, optional
            Restrict the output to these columns (resolved against the
            trained metadata).

        Raises
        ------
        NotTrainedError
            If any step is untrained.
        MissingColumnError
            If a step's input column is absent from ``data``.
        """
        untrained = [s.id for s in self.steps if not s.trained]
        if untrained:
            raise NotTrainedError(f"Recipe has untrained steps: {untrained}; call train() first")

        out = data[[c for c in self.template.names if c in data.columns]]
        for step in self.steps:
            if step.skip:
                logger.debug("Skipping step '%s' (%s)", step.id, step.tag)
                continue
            out = step.apply(out)

        return self._select(out, select)

    def juice(
        self,
        select: Optional[Union[SelectorLike, Sequence[SelectorLike]]] = None,
    ) -> pd.DataFrame:
        """
        Processed training data kept by ``train(retain=True)``.

        Unlike :meth:`apply` this includes the effect of skipped steps.
        """
        if not self.trained:
            raise NotTrainedError("Recipe must be trained before juice()")
        if self.retained is None:
            raise InvalidArgumentError("Training data was not retained; train with retain=True")
        return self._select(self.retained.copy(), select)

    def _select(self, out: pd.DataFrame, select) -> pd.DataFrame:
        if select is None:
            return out
        present = self.metadata.subset([n for n in self.metadata.names if n in out.columns])
        return out[resolve(select, present)]

    # ----- Inspection ---------------------------------------------------

    def describe(self, number: Optional[int] = None, id: Optional[str] = None, **kwargs) -> pd.DataFrame:
        """
        Tidy summary.

        Without arguments, one row per step (``number, operation, type,
        trained, skip, id``).  With a zero-based ``number`` (or a step
        ``id``), that step's own tidy frame.  Extra keyword arguments go to
        the step (e.g. ``type='variance'`` for PCA).
        """
        if number is None and id is None:
            return pd.DataFrame({
                'number': list(range(len(self.steps))),
                'operation': 'step',
                'type': [s.tag for s in self.steps],
                'trained': [s.trained for s in self.steps],
                'skip': [s.skip for s in self.steps],
                'id': [s.id for s in self.steps],
            }, columns=['number', 'operation', 'type', 'trained', 'skip', 'id'])

        return self.get_step(number=number, id=id).describe(**kwargs)

    def get_step(self, number: Optional[int] = None, id: Optional[str] = None) -> Step:
        """Look a step up by zero-based position or by id."""
        if id is not None:
            for step in self.steps:
                if step.id == id:
                    return step
            raise InvalidArgumentError(f"No step with id '{id}'")
        if isinstance(number, bool) or not isinstance(number, (int, np.integer)):
            raise InvalidArgumentError(f"Step number must be an integer, got {number!r}")
        if not 0 <= number < len(self.steps):
            raise InvalidArgumentError(
                f"Step number {number} is out of range; the recipe has {len(self.steps)} steps"
            )
        return self.steps[number]

    def summary(self) -> pd.DataFrame:
        """Current metadata, one row per (variable, role)."""
        return self.metadata.to_frame()

    # ----- Serialisation ------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible representation (retained data excluded)."""
        return {
            'template': self.template.to_dict(),
            'metadata': self.metadata.to_dict(),
            'steps': [s.to_dict() for s in self.steps],
            'config': self.config.to_dict(),
        }

    @classmethod
    def from_dict(cls, spec: Mapping[str, Any]) -> 'Recipe':
        return cls(
            template=ColumnMetadata.from_dict(spec['template']),
            steps=tuple(step_from_dict(s) for s in spec.get('steps', [])),
            metadata=ColumnMetadata.from_dict(spec['metadata']) if 'metadata' in spec else None,
            config=Config.from_dict(spec.get('config') or {}),
        )

    # ----- Display ------------------------------------------------------

    def __len__(self) -> int:
        return len(self.steps)

    def __repr__(self) -> str:
        return (
            f"Recipe(columns={len(self.template)}, steps={[s.tag for s in self.steps]}, "
            f"trained={self.trained})"
        )

    def __str__(self) -> str:
        roles: Dict[str, int] = {}
        for col in self.template:
            for role in col.roles:
                roles[role] = roles.get(role, 0) + 1
        lines = ["Recipe", "", "Inputs:"]
        lines += [f"  {role:>10s}: {n}" for role, n in roles.items()]
        if self.steps:
            lines += ["", "Operations:"]
            lines += [f"  {s}" for s in self.steps]
        return "\n".join(lines)


# =============================================================================
# CONSTRUCTION
# =============================================================================

def recipe(
    data: pd.DataFrame,
    outcomes: Iterable[str] = (),
    predictors: Optional[Iterable[str]] = None,
    roles: Optional[Mapping[str, Union[str, Sequence[str]]]] = None,
    config: Optional[Config] = None,
) -> Recipe:
    """
    Create an untrained recipe from template data.

    Parameters
    ----------
    data : pd.DataFrame
        Template data; only column names and dtypes are used.
    outcomes : iterable of str
        Columns with role 'outcome'.
    predictors : iterable of str, optional
        Columns with role 'predictor'.  When None, every column that is
        not an outcome.  When given, columns that are neither listed nor
        mapped in ``roles`` are not part of the recipe.
    roles : mapping of str to str or list of str, optional
        Extra roles per column (e.g. ``{'customer_id': 'id'}``).
    config : Config, optional
        Recipe configuration.

    Raises
    ------
    SelectionError
        If a named column is not in ``data``.
    InvalidArgumentError
        If a column label is not a string.
    """
    labels = [c for c in data.columns if not isinstance(c, str)]
    if labels:
        raise InvalidArgumentError(
            f"Column labels must be strings, got {labels!r}; rename the columns first"
        )

    outcomes = [str(c) for c in outcomes]
    mapped = {
        str(k): [v] if isinstance(v, str) else list(v)
        for k, v in (roles or {}).items()
    }
    named = outcomes + list(mapped) + ([] if predictors is None else [str(p) for p in predictors])
    unknown = [c for c in named if c not in data.columns]
    if unknown:
        raise SelectionError(f"Column(s) not found in data: {unknown}")

    if predictors is None:
        predictors = [c for c in data.columns if c not in outcomes and c not in mapped]
    predictors = [str(p) for p in predictors]

    column_roles: Dict[str, List[str]] = {}
    for name in data.columns:
        name = str(name)
        assigned = []
        if name in outcomes:
            assigned.append('outcome')
        if name in predictors:
            assigned.append('predictor')
        assigned += mapped.get(name, [])
        if assigned:
            column_roles[name] = assigned

    included = [c for c in data.columns if str(c) in column_roles]
    template = ColumnMetadata.from_data(data[included], roles=column_roles)

    logger.debug("Created recipe with %d columns: %s", len(template), template.names)
    return Recipe(template=template, config=config or Config())


# =============================================================================
# FUNCTIONAL ENTRY POINTS
# =============================================================================

def train(
    recipe: Recipe,
    data: pd.DataFrame,
    retain: bool = True,
    random_state: Union[None, int, np.random.RandomState] = None,
) -> Recipe:
    """Train ``recipe`` on ``data``.  See :meth:`Recipe.train`."""
    return recipe.train(data, retain=retain, random_state=random_state)


def apply(recipe: Recipe, data: pd.DataFrame, select=None) -> pd.DataFrame:
    """Apply a trained ``recipe`` to ``data``.  See :meth:`Recipe.apply`."""
    return recipe.apply(data, select=select)


def juice(recipe: Recipe, select=None) -> pd.DataFrame:
    """Processed training data.  See :meth:`Recipe.juice`."""
    return recipe.juice(select=select)


def describe(recipe: Recipe, number: Optional[int] = None, **kwargs) -> pd.DataFrame:
    """Tidy summary of the recipe or of step ``number``.  See :meth:`Recipe.describe`."""
    return recipe.describe(number, **kwargs)


def summary(recipe: Recipe) -> pd.DataFrame:
    """Current metadata as a DataFrame."""
    return recipe.summary()
