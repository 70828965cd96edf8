#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Variable Selectors
===================

Steps never hold fixed column lists.  They hold *selector expressions*,
small immutable trees that are resolved against the metadata table at
the moment the step trains, so a selector like ``all_nominal()`` also
sees columns created by earlier steps.

Leaf selectors:
    - by name:     ``var('x1', 'x2')`` (plain strings are coerced to this)
    - by type:     ``has_type('numeric')``, ``all_numeric()``, ``all_nominal()``, ``all_dates()``
    - by role:     ``has_role('id')``, ``all_predictors()``, ``all_outcomes()``
    - by pattern:  ``starts_with``, ``ends_with``, ``contains``, ``matches`` (regex)
    - ``everything()``

Combinators use operators::

    all_numeric() & all_predictors()     # intersection
    starts_with('x') | var('z')          # union
    ~has_role('id')                      # negation
    all_predictors() - var('zip')        # difference

Usage:
------
    >>> from tidyprep.core.selectors import all_numeric, has_role, resolve
    >>> resolve(all_numeric() - has_role('outcome'), metadata)
    ['x1', 'x2', 'x3']
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

from tidyprep.core.metadata import COLUMN_TYPES, ColumnMetadata
from tidyprep.errors import InvalidArgumentError, SelectionError

PATTERN_KINDS = ('starts_with', 'ends_with', 'contains', 'matches')


# =============================================================================
# BASE
# =============================================================================

class Selector:
    """Base class of the selector expression tree."""

    kind: str = ''

    def select(self, metadata: ColumnMetadata) -> List[str]:
        """Return matching column names in a deterministic order."""
        raise NotImplementedError

    def describe(self) -> str:
        """Readable form, e.g. ``all_numeric() & -var(id)``."""
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError

    def __and__(self, other: 'SelectorLike') -> 'Selector':
        return And(self, as_selector(other))

    def __or__(self, other: 'SelectorLike') -> 'Selector':
        return Or(self, as_selector(other))

    def __sub__(self, other: 'SelectorLike') -> 'Selector':
        return Minus(self, as_selector(other))

    def __invert__(self) -> 'Selector':
        return Not(self)

    def __str__(self) -> str:
        return self.describe()


SelectorLike = Union[Selector, str]


# =============================================================================
# LEAVES
# =============================================================================

@dataclass(frozen=True, eq=True)
class Names(Selector):
    """Literal column names, returned in the order given."""
    names: Tuple[str, ...]
    kind = 'names'

    def select(self, metadata: ColumnMetadata) -> List[str]:
        unknown = [n for n in self.names if n not in metadata]
        if unknown:
            raise SelectionError(
                f"Column(s) not found: {unknown}. Available: {metadata.names}"
            )
        return list(dict.fromkeys(self.names))

    def describe(self) -> str:
        if len(self.names) == 1:
            return self.names[0]
        return f"var({', '.join(self.names)})"

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'names': list(self.names)}


@dataclass(frozen=True, eq=True)
class Everything(Selector):
    kind = 'everything'

    def select(self, metadata: ColumnMetadata) -> List[str]:
        return metadata.names

    def describe(self) -> str:
        return 'everything()'

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind}


@dataclass(frozen=True, eq=True)
class HasType(Selector):
    types: Tuple[str, ...]
    kind = 'has_type'

    def __post_init__(self):
        bad = [t for t in self.types if t not in COLUMN_TYPES]
        if bad:
            raise InvalidArgumentError(f"Unknown column type(s) {bad}; expected {COLUMN_TYPES}")

    def select(self, metadata: ColumnMetadata) -> List[str]:
        return [c.name for c in metadata if c.type in self.types]

    def describe(self) -> str:
        if self.types == ('numeric',):
            return 'all_numeric()'
        if self.types == ('nominal',):
            return 'all_nominal()'
        if self.types == ('date',):
            return 'all_dates()'
        return f"has_type({', '.join(self.types)})"

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'types': list(self.types)}


@dataclass(frozen=True, eq=True)
class HasRole(Selector):
    roles: Tuple[str, ...]
    kind = 'has_role'

    def select(self, metadata: ColumnMetadata) -> List[str]:
        return [c.name for c in metadata if any(c.has_role(r) for r in self.roles)]

    def describe(self) -> str:
        if self.roles == ('predictor',):
            return 'all_predictors()'
        if self.roles == ('outcome',):
            return 'all_outcomes()'
        return f"has_role({', '.join(self.roles)})"

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'roles': list(self.roles)}


@dataclass(frozen=True, eq=True)
class Pattern(Selector):
    """Name pattern; ``how`` is one of ``PATTERN_KINDS``."""
    how: str
    pattern: str
    ignore_case: bool = True
    kind = 'pattern'

    def __post_init__(self):
        if self.how not in PATTERN_KINDS:
            raise InvalidArgumentError(f"Unknown pattern kind '{self.how}'")
        if self.how == 'matches':
            try:
                re.compile(self.pattern)
            except re.error as exc:
                raise InvalidArgumentError(f"Invalid regex '{self.pattern}': {exc}") from exc

    def _test(self, name: str) -> bool:
        if self.how == 'matches':
            flags = re.IGNORECASE if self.ignore_case else 0
            return re.search(self.pattern, name, flags) is not None

        subject, pattern = name, self.pattern
        if self.ignore_case:
            subject, pattern = subject.lower(), pattern.lower()
        if self.how == 'starts_with':
            return subject.startswith(pattern)
        if self.how == 'ends_with':
            return subject.endswith(pattern)
        return pattern in subject

    def select(self, metadata: ColumnMetadata) -> List[str]:
        return [n for n in metadata.names if self._test(n)]

    def describe(self) -> str:
        return f"{self.how}({self.pattern!r})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'how': self.how,
            'pattern': self.pattern,
            'ignore_case': self.ignore_case,
        }


# =============================================================================
# COMBINATORS
# =============================================================================

@dataclass(frozen=True, eq=True)
class And(Selector):
    left: Selector
    right: Selector
    kind = 'and'

    def select(self, metadata: ColumnMetadata) -> List[str]:
        right = set(self.right.select(metadata))
        return [n for n in self.left.select(metadata) if n in right]

    def describe(self) -> str:
        return f"({self.left.describe()} & {self.right.describe()})"

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'left': self.left.to_dict(), 'right': self.right.to_dict()}


@dataclass(frozen=True, eq=True)
class Or(Selector):
    left: Selector
    right: Selector
    kind = 'or'

    def select(self, metadata: ColumnMetadata) -> List[str]:
        return list(dict.fromkeys(self.left.select(metadata) + self.right.select(metadata)))

    def describe(self) -> str:
        return f"({self.left.describe()} | {self.right.describe()})"

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'left': self.left.to_dict(), 'right': self.right.to_dict()}


@dataclass(frozen=True, eq=True)
class Minus(Selector):
    left: Selector
    right: Selector
    kind = 'minus'

    def select(self, metadata: ColumnMetadata) -> List[str]:
        right = set(self.right.select(metadata))
        return [n for n in self.left.select(metadata) if n not in right]

    def describe(self) -> str:
        return f"{self.left.describe()} - {self.right.describe()}"

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'left': self.left.to_dict(), 'right': self.right.to_dict()}


@dataclass(frozen=True, eq=True)
class Not(Selector):
    inner: Selector
    kind = 'not'

    def select(self, metadata: ColumnMetadata) -> List[str]:
        excluded = set(self.inner.select(metadata))
        return [n for n in metadata.names if n not in excluded]

    def describe(self) -> str:
        return f"-{self.inner.describe()}"

    def to_dict(self) -> Dict[str, Any]:
        return {'kind': self.kind, 'inner': self.inner.to_dict()}


# =============================================================================
# CONSTRUCTORS
# =============================================================================

def var(*names: str) -> Names:
    if not names:
        raise InvalidArgumentError("var() needs at least one column name")
    return Names(tuple(str(n) for n in names))


def everything() -> Everything:
    return Everything()


def has_type(*types: str) -> HasType:
    return HasType(tuple(types))


def all_numeric() -> HasType:
    return HasType(('numeric',))


def all_nominal() -> HasType:
    return HasType(('nominal',))


def all_dates() -> HasType:
    return HasType(('date',))


def has_role(*roles: str) -> HasRole:
    if not roles:
        raise InvalidArgumentError("has_role() needs at least one role")
    return HasRole(tuple(roles))


def all_predictors() -> HasRole:
    return HasRole(('predictor',))


def all_outcomes() -> HasRole:
    return HasRole(('outcome',))


def all_numeric_predictors() -> Selector:
    return And(HasType(('numeric',)), HasRole(('predictor',)))


def all_nominal_predictors() -> Selector:
    return And(HasType(('nominal',)), HasRole(('predictor',)))


def starts_with(prefix: str, ignore_case: bool = True) -> Pattern:
    return Pattern('starts_with', prefix, ignore_case)


def ends_with(suffix: str, ignore_case: bool = True) -> Pattern:
    return Pattern('ends_with', suffix, ignore_case)


def contains(text: str, ignore_case: bool = True) -> Pattern:
    return Pattern('contains', text, ignore_case)


def matches(regex: str, ignore_case: bool = True) -> Pattern:
    return Pattern('matches', regex, ignore_case)


# =============================================================================
# RESOLUTION
# =============================================================================

def as_selector(expr: SelectorLike) -> Selector:
    """Coerce a bare string into a literal-name selector."""
    if isinstance(expr, Selector):
        return expr
    if isinstance(expr, str):
        return Names((expr,))
    raise InvalidArgumentError(
        f"Expected a selector or column name, got {type(expr).__name__}"
    )


def combine(selectors: Sequence[SelectorLike]) -> Selector:
    """Fold several selectors into one union, keeping argument order."""
    if not selectors:
        raise InvalidArgumentError("At least one selector is required")
    result = as_selector(selectors[0])
    for sel in selectors[1:]:
        result = Or(result, as_selector(sel))
    return result


def resolve(
    expr: Union[SelectorLike, Sequence[SelectorLike]],
    metadata: ColumnMetadata,
    required: bool = True,
) -> List[str]:
    """
    Resolve a selector expression against the metadata table.

    Parameters
    ----------
    expr : Selector, str, or sequence of them
        A sequence is treated as the union of its items.
    metadata : ColumnMetadata
        The table current at the time of the call.
    required : bool
        Raise if nothing matches.

    Returns
    -------
    list of str
        Matching column names.

    Raises
    ------
    SelectionError
        If a literal name is unknown, or nothing matches and
        ``required`` is True.
    """
    if isinstance(expr, (list, tuple)):
        selector = combine(list(expr))
    else:
        selector = as_selector(expr)

    selected = selector.select(metadata)
    if required and not selected:
        raise SelectionError(f"Selector '{selector.describe()}' matched no columns")
    return selected


def selector_terms(selector: Selector) -> List[str]:
    """
    Term names for an untrained step: literal names are listed one by one,
    any other expression is shown by its description.
    """
    if isinstance(selector, Names):
        return list(selector.names)
    if isinstance(selector, Or):
        return selector_terms(selector.left) + selector_terms(selector.right)
    return [selector.describe()]


# =============================================================================
# SERIALISATION
# =============================================================================

def selector_from_dict(spec: Mapping[str, Any]) -> Selector:
    """Rebuild a selector from :meth:`Selector.to_dict` output."""
    kind = spec.get('kind')
    if kind == 'names':
        return Names(tuple(spec['names']))
    if kind == 'everything':
        return Everything()
    if kind == 'has_type':
        return HasType(tuple(spec['types']))
    if kind == 'has_role':
        return HasRole(tuple(spec['roles']))
    if kind == 'pattern':
        return Pattern(spec['how'], spec['pattern'], spec.get('ignore_case', True))
    if kind in ('and', 'or', 'minus'):
        cls = {'and': And, 'or': Or, 'minus': Minus}[kind]
        return cls(selector_from_dict(spec['left']), selector_from_dict(spec['right']))
    if kind == 'not':
        return Not(selector_from_dict(spec['inner']))
    raise InvalidArgumentError(f"Unknown selector kind: {kind!r}")
