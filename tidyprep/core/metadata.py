#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Column Metadata for Recipes
=============================

The metadata table describes every column a recipe currently tracks:

    name     unique column name
    type     'numeric' | 'nominal' | 'date' | 'other'
    roles    ordered, non-empty tuple of role tags ('predictor', 'outcome', ...)
    source   'original' (came with the data) | 'derived' (made by a step)

Tables are immutable.  Steps never edit one; they return a
:class:`MetadataDelta` that the trainer merges into a new table.

This module also hosts the name-collision check used by every step that
manufactures columns.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import pandas as pd
from pandas.api import types as ptypes

from tidyprep.errors import InvalidArgumentError, NameCollisionError, SelectionError

COLUMN_TYPES = ('numeric', 'nominal', 'date', 'other')
SOURCES = ('original', 'derived')


# =============================================================================
# TYPE DETECTION
# =============================================================================

def infer_type(series: pd.Series) -> str:
    """
    Map a pandas dtype onto a column type.

    Booleans count as nominal: they are categories, not quantities.
    """
    dtype = series.dtype
    if ptypes.is_bool_dtype(dtype):
        return 'nominal'
    if ptypes.is_timedelta64_dtype(dtype):
        return 'other'
    if ptypes.is_numeric_dtype(dtype):
        return 'numeric'
    if ptypes.is_datetime64_any_dtype(dtype):
        return 'date'
    if (
        isinstance(dtype, pd.CategoricalDtype)
        or ptypes.is_string_dtype(dtype)
        or ptypes.is_object_dtype(dtype)
    ):
        return 'nominal'
    return 'other'


# =============================================================================
# ROWS AND DELTAS
# =============================================================================

@dataclass(frozen=True)
class ColumnInfo:
    """One metadata row."""
    name: str
    type: str
    roles: Tuple[str, ...]
    source: str = 'original'

    def __post_init__(self):
        if self.type not in COLUMN_TYPES:
            raise InvalidArgumentError(f"Unknown column type '{self.type}' for '{self.name}'")
        if self.source not in SOURCES:
            raise InvalidArgumentError(f"Unknown source '{self.source}' for '{self.name}'")
        roles = tuple(dict.fromkeys(self.roles))
        if not roles:
            raise InvalidArgumentError(f"Column '{self.name}' must carry at least one role")
        object.__setattr__(self, 'roles', roles)

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type': self.type,
            'roles': list(self.roles),
            'source': self.source,
        }

    @classmethod
    def from_dict(cls, spec: Mapping[str, Any]) -> 'ColumnInfo':
        return cls(
            name=spec['name'],
            type=spec['type'],
            roles=tuple(spec['roles']),
            source=spec.get('source', 'original'),
        )


@dataclass(frozen=True)
class MetadataDelta:
    """
    Changes a trained step makes to the metadata table.

    ``removed`` names are dropped first, ``modified`` rows then replace
    rows of the same name, and ``added`` rows are appended last.
    """
    added: Tuple[ColumnInfo, ...] = ()
    removed: Tuple[str, ...] = ()
    modified: Tuple[ColumnInfo, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)


# =============================================================================
# METADATA TABLE
# =============================================================================

@dataclass(frozen=True)
class ColumnMetadata:
    """Ordered, immutable table of :class:`ColumnInfo` rows."""
    columns: Tuple[ColumnInfo, ...] = ()
    _index: Dict[str, int] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        columns = tuple(self.columns)
        index: Dict[str, int] = {}
        for i, col in enumerate(columns):
            if col.name in index:
                raise NameCollisionError(f"Duplicate column name in metadata: '{col.name}'")
            index[col.name] = i
        object.__setattr__(self, 'columns', columns)
        object.__setattr__(self, '_index', index)

    # ----- Construction -------------------------------------------------

    @classmethod
    def from_data(
        cls,
        data: pd.DataFrame,
        roles: Optional[Mapping[str, Sequence[str]]] = None,
        default_role: str = 'predictor',
    ) -> 'ColumnMetadata':
        """
        Build a table from a DataFrame.

        Parameters
        ----------
        data : pd.DataFrame
            Template data; only column names and dtypes are read.
        roles : mapping of str to sequence of str, optional
            Roles per column.  Columns missing from the mapping get
            ``default_role``.
        default_role : str
            Role for unmapped columns.
        """
        roles = roles or {}
        if data.columns.has_duplicates:
            dupes = sorted(set(data.columns[data.columns.duplicated()]))
            raise NameCollisionError(f"Data has duplicate column names: {dupes}")
        return cls(tuple(
            ColumnInfo(
                name=str(name),
                type=infer_type(data[name]),
                roles=tuple(roles.get(name, (default_role,))),
            )
            for name in data.columns
        ))

    # ----- Access -------------------------------------------------------

    @property
    def names(self) -> List[str]:
        return [c.name for c in self.columns]

    def __len__(self) -> int:
        return len(self.columns)

    def __iter__(self) -> Iterator[ColumnInfo]:
        return iter(self.columns)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __getitem__(self, name: str) -> ColumnInfo:
        try:
            return self.columns[self._index[name]]
        except KeyError:
            raise SelectionError(f"Column '{name}' is not in the recipe metadata") from None

    # ----- Updates (return new tables) ----------------------------------

    def merge(self, delta: MetadataDelta) -> 'ColumnMetadata':
        """Return a new table with ``delta`` applied."""
        if delta.is_empty:
            return self

        for name in delta.removed:
            if name not in self:
                raise SelectionError(f"Cannot remove unknown column '{name}'")
        removed = set(delta.removed)
        rows = [c for c in self.columns if c.name not in removed]

        position = {c.name: i for i, c in enumerate(rows)}
        for new in delta.modified:
            if new.name not in position:
                raise SelectionError(f"Cannot modify unknown column '{new.name}'")
            rows[position[new.name]] = new

        for new in delta.added:
            if new.name in position:
                raise NameCollisionError(
                    f"Step added column '{new.name}' which already exists"
                )
            rows.append(new)
            position[new.name] = len(rows) - 1

        return ColumnMetadata(tuple(rows))

    def reconcile(self, data_columns: Iterable[str]) -> 'ColumnMetadata':
        """
        Reorder rows to match ``data_columns``.

        Raises ``InvalidArgumentError`` if the table and the data disagree on
        which columns exist.
        """
        data_columns = [str(c) for c in data_columns]
        missing = [n for n in data_columns if n not in self]
        extra = sorted(set(self.names) - set(data_columns))
        if missing or extra:
            raise InvalidArgumentError(
                f"Metadata out of sync with data: untracked columns {missing}, "
                f"tracked but absent {extra}"
            )
        if data_columns == self.names:
            return self
        return ColumnMetadata(tuple(self[n] for n in data_columns))

    def subset(self, names: Iterable[str]) -> 'ColumnMetadata':
        return ColumnMetadata(tuple(self[n] for n in names))

    # ----- Export -------------------------------------------------------

    def to_frame(self) -> pd.DataFrame:
        """One row per (variable, role) pair: ``variable, type, role, source``."""
        records = [
            {'variable': c.name, 'type': c.type, 'role': role, 'source': c.source}
            for c in self.columns
            for role in c.roles
        ]
        return pd.DataFrame.from_records(
            records, columns=['variable', 'type', 'role', 'source'],
        )

    def to_dict(self) -> List[Dict[str, Any]]:
        return [c.to_dict() for c in self.columns]

    @classmethod
    def from_dict(cls, rows: Sequence[Mapping[str, Any]]) -> 'ColumnMetadata':
        return cls(tuple(ColumnInfo.from_dict(r) for r in rows))


def with_roles(info: ColumnInfo, roles: Sequence[str], new_type: Optional[str] = None) -> ColumnInfo:
    """Copy of ``info`` with new roles (and optionally a new type)."""
    return replace(info, roles=tuple(roles), type=new_type or info.type)


# =============================================================================
# NAME COLLISIONS
# =============================================================================

def resolve_new_names(
    new_names: Sequence[str],
    existing: Iterable[str],
    policy: str = 'error',
) -> List[str]:
    """
    Check names a step wants to create against existing columns.

    ``existing`` must include columns the same step is about to remove.

    Parameters
    ----------
    new_names : sequence of str
        Candidate names, in output order.
    existing : iterable of str
        Names already present.
    policy : {'error', 'rename'}
        'error' raises on any clash; 'rename' appends ``_1``, ``_2``, ...
        to a clashing name until it is unique.

    Returns
    -------
    list of str
        Final names, same length and order as ``new_names``.

    Raises
    ------
    NameCollisionError
        Under 'error', when any candidate clashes; always, when the
        candidates themselves contain duplicates.
    """
    if len(set(new_names)) != len(new_names):
        raise NameCollisionError(f"Step would create duplicate columns: {list(new_names)}")

    taken = set(existing)
    clashes = [n for n in new_names if n in taken]

    if clashes and policy == 'error':
        raise NameCollisionError(
            f"New column names already exist in the data: {clashes}"
        )
    if policy not in ('error', 'rename'):
        raise InvalidArgumentError(f"Unknown collision policy '{policy}'")

    # Candidates reserve their own names first so a rename never lands on one
    taken.update(new_names)
    resolved = []
    for name in new_names:
        if name not in clashes:
            resolved.append(name)
            continue
        i = 1
        while f"{name}_{i}" in taken:
            i += 1
        candidate = f"{name}_{i}"
        taken.add(candidate)
        resolved.append(candidate)
    return resolved


def check_no_collisions(new_names: Sequence[str], data_columns: Iterable[str]) -> None:
    """Raise ``NameCollisionError`` if any frozen output name is already in the data."""
    present = set(data_columns)
    clashes = [n for n in new_names if n in present]
    if clashes:
        raise NameCollisionError(
            f"New column names already exist in the data: {clashes}"
        )
