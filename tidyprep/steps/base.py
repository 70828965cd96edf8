#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Step Contract and Registry
============================

Every recipe step is a frozen dataclass deriving from :class:`Step`.
A step is created untrained; ``train`` returns a *new* trained instance
together with the :class:`MetadataDelta` describing the columns it adds,
removes or modifies.  A trained step is never changed afterwards.

The public contract, implemented once here:

    train(data, metadata, context) -> (trained_step, delta)
    apply(data)                    -> transformed copy of ``data``
    describe()                     -> tidy DataFrame of fitted parameters

Concrete variants fill in three hooks:

    _fit(data, metadata, columns, context)  estimate parameters
    _bake(data)                             transform with frozen parameters
    _tidy() / _tidy_untrained(terms)        describe parameters

Variants register under a tag with :func:`register_step`; the registry is
how serialised recipes find their step classes again.
"""

import uuid
from dataclasses import dataclass, fields, replace
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple, Type, Union, get_args, get_origin

import numpy as np
import pandas as pd
from numpy.random import RandomState

from tidyprep.core.metadata import ColumnMetadata, MetadataDelta
from tidyprep.core.selectors import Selector, resolve, selector_from_dict, selector_terms
from tidyprep.errors import (
    ColumnTypeError,
    InvalidArgumentError,
    MissingColumnError,
    NotTrainedError,
)
from tidyprep.utils.logging_utils import get_logger

logger = get_logger(__name__)


# =============================================================================
# TRAINING CONTEXT
# =============================================================================

@dataclass(frozen=True, eq=False)
class TrainContext:
    """Engine-level settings handed to every step while it trains."""
    random_state: RandomState
    collision_policy: str = 'error'


def rand_id(prefix: str) -> str:
    """Default step id: the step tag plus five random hex characters."""
    return f"{prefix}_{uuid.uuid4().hex[:5]}"


# =============================================================================
# STEP BASE
# =============================================================================

@dataclass(frozen=True, eq=False)
class Step:
    """
    Base class for recipe steps.

    Attributes
    ----------
    terms : Selector
        Which columns the step acts on; resolved at train time.
    role : str, optional
        Role given to columns the step creates.
    trained : bool
        Set on the instance returned by ``train``.
    skip : bool
        Leave the step out when applying to new data.  It still runs
        while the recipe trains.
    id : str
        Unique identifier within a recipe.
    columns : tuple of str
        Columns the selector resolved to at train time.
    """
    terms: Selector
    role: Optional[str] = None
    trained: bool = False
    skip: bool = False
    id: str = ''
    columns: Tuple[str, ...] = ()

    tag: ClassVar[str] = ''
    description: ClassVar[str] = ''
    requires_selection: ClassVar[bool] = True
    # False for steps that never read their columns when applied
    checks_columns_on_apply: ClassVar[bool] = True

    def __post_init__(self):
        if not isinstance(self.terms, Selector):
            raise InvalidArgumentError(
                f"{type(self).__name__}.terms must be a Selector, got {type(self.terms).__name__}"
            )
        if not self.id:
            object.__setattr__(self, 'id', rand_id(self.tag or 'step'))

    # ----- Contract -----------------------------------------------------

    def train(
        self,
        data: pd.DataFrame,
        metadata: ColumnMetadata,
        context: TrainContext,
    ) -> Tuple['Step', MetadataDelta]:
        """
        Estimate parameters from ``data``.

        ``data`` and ``metadata`` are read only.  The selector is resolved
        against ``metadata`` as it stands now.
        """
        columns = resolve(self.terms, metadata, required=self.requires_selection)
        self._check_present(data, columns)
        trained, delta = self._fit(data, metadata, columns, context)
        return trained, delta

    def apply(self, data: pd.DataFrame) -> pd.DataFrame:
        """Transform ``data`` with the frozen parameters and return a new frame."""
        if not self.trained:
            raise NotTrainedError(
                f"Step '{self.id}' ({self.tag}) must be trained before it is applied"
            )
        if self.checks_columns_on_apply:
            self._check_present(data, self.columns)
        return self._bake(data)

    def describe(self, **kwargs) -> pd.DataFrame:
        """
        Tidy summary of the step.

        Untrained steps return placeholder rows (selector terms, NA values).
        """
        if self.trained:
            tidy = self._tidy(**kwargs)
        else:
            tidy = self._tidy_untrained(selector_terms(self.terms), **kwargs)
        tidy = tidy.reset_index(drop=True)
        tidy['id'] = self.id
        return tidy

    # ----- Hooks --------------------------------------------------------

    def _fit(
        self,
        data: pd.DataFrame,
        metadata: ColumnMetadata,
        columns: List[str],
        context: TrainContext,
    ) -> Tuple['Step', MetadataDelta]:
        raise NotImplementedError

    def _bake(self, data: pd.DataFrame) -> pd.DataFrame:
        raise NotImplementedError

    def _tidy(self, **kwargs) -> pd.DataFrame:
        raise NotImplementedError

    def _tidy_untrained(self, terms: List[str], **kwargs) -> pd.DataFrame:
        return pd.DataFrame({'terms': terms, 'value': np.nan})

    # ----- Helpers ------------------------------------------------------

    def _check_present(self, data: pd.DataFrame, columns: Sequence[str]) -> None:
        missing = [c for c in columns if c not in data.columns]
        if missing:
            raise MissingColumnError(
                f"Step '{self.id}' ({self.tag}) needs column(s) {missing} "
                f"which are not in the data"
            )

    def _check_types(self, metadata: ColumnMetadata, columns: Sequence[str], allowed: Sequence[str]) -> None:
        wrong = {c: metadata[c].type for c in columns if metadata[c].type not in allowed}
        if wrong:
            raise ColumnTypeError(
                f"Step '{self.id}' ({self.tag}) only handles {list(allowed)} columns; "
                f"got {wrong}"
            )

    def _trained_copy(self, columns: Sequence[str], **params) -> 'Step':
        return replace(self, trained=True, columns=tuple(columns), **params)

    # ----- Serialisation ------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible representation, keyed by the registry tag."""
        spec: Dict[str, Any] = {'tag': self.tag}
        for f in fields(self):
            spec[f.name] = _encode(getattr(self, f.name))
        return spec

    @classmethod
    def from_dict(cls, spec: Mapping[str, Any]) -> 'Step':
        kwargs = {}
        for f in fields(cls):
            if f.name in spec:
                kwargs[f.name] = _coerce(f.type, _decode(spec[f.name]))
        return cls(**kwargs)

    def __str__(self) -> str:
        state = 'trained' if self.trained else 'untrained'
        targets = ', '.join(self.columns) if self.trained else self.terms.describe()
        return f"{self.description or self.tag} for {targets} [{state}]"


# =============================================================================
# REGISTRY
# =============================================================================

STEP_REGISTRY: Dict[str, Type[Step]] = {}


def register_step(cls: Type[Step]) -> Type[Step]:
    """Class decorator adding a step variant to the registry under its tag."""
    if not cls.tag:
        raise InvalidArgumentError(f"{cls.__name__} must define a tag")
    if cls.tag in STEP_REGISTRY and STEP_REGISTRY[cls.tag] is not cls:
        raise InvalidArgumentError(f"Step tag '{cls.tag}' is already registered")
    STEP_REGISTRY[cls.tag] = cls
    return cls


def get_step_class(tag: str) -> Type[Step]:
    """
    Look up a step class by tag.

    Raises
    ------
    KeyError
        If the tag is unknown.
    """
    if tag not in STEP_REGISTRY:
        available = ', '.join(sorted(STEP_REGISTRY))
        raise KeyError(f"Unknown step type: '{tag}'. Available: {available}")
    return STEP_REGISTRY[tag]


def list_steps() -> List[str]:
    """Return sorted list of registered step tags."""
    return sorted(STEP_REGISTRY)


def step_from_dict(spec: Mapping[str, Any]) -> Step:
    """Rebuild any registered step from :meth:`Step.to_dict` output."""
    return get_step_class(spec['tag']).from_dict(spec)


# =============================================================================
# ENCODING HELPERS
# =============================================================================

def _encode(value: Any) -> Any:
    if isinstance(value, Selector):
        return {'__selector__': value.to_dict()}
    if isinstance(value, np.ndarray):
        return {'__ndarray__': value.tolist(), 'dtype': str(value.dtype)}
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (tuple, list)):
        return [_encode(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _encode(v) for k, v in value.items()}
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        if '__selector__' in value:
            return selector_from_dict(value['__selector__'])
        if '__ndarray__' in value:
            arr = np.asarray(value['__ndarray__'], dtype=value.get('dtype'))
            arr.setflags(write=False)
            return arr
        return {k: _decode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


def _coerce(annotation: Any, value: Any) -> Any:
    """Turn decoded lists back into the tuples a field is declared with."""
    if value is None:
        return None
    origin = get_origin(annotation)
    if origin is Union:
        for arg in get_args(annotation):
            if arg is not type(None):
                return _coerce(arg, value)
    if origin is tuple and isinstance(value, list):
        args = get_args(annotation)
        inner = args[0] if args else Any
        return tuple(_coerce(inner, v) for v in value)
    return value
